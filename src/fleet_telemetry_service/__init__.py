"""Robot-fleet telemetry ingestion and aggregation service."""

__version__ = "0.1.0"
