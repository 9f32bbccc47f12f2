"""Unit tests for the metric name <-> payload path table."""
from __future__ import annotations

import pytest

from fleet_telemetry_service.domain.schema_registry import (
    MetricField,
    SchemaRegistry,
    get_path,
    registry,
    set_path,
)


class TestRegistryShape:
    def test_names_and_paths_are_unique(self):
        names = [f.name for f in registry.fields]
        paths = [f.path for f in registry.fields]
        assert len(names) == len(set(names))
        assert len(paths) == len(set(paths))

    @pytest.mark.parametrize(
        "name, path",
        [
            ("position.x", ("position", "x")),
            ("joint.3.angle", ("jointAngles", "joint3")),
            ("joint.8.velocity", ("velocity", "joint", "joint8")),
            ("temperature.motor.joint2", ("temperature", "motor", "joint2")),
            ("gps.satellite_count", ("gpsPosition", "satelliteCount")),
            ("gps.accuracy.horizontal", ("gpsPosition", "accuracy", "horizontal")),
            ("navigation.eta", ("navigation", "estimatedTimeToTarget")),
            ("safety.emergency_stop", ("safety", "emergencyStop")),
            ("tool.position.rz", ("toolData", "position", "rz")),
        ],
    )
    def test_known_names(self, name, path):
        item = registry.field(name)
        assert item is not None
        assert item.path == path

    def test_section_units_come_from_payload(self):
        item = registry.field("temperature.ambient")
        assert item.unit_path == ("temperature", "unit")
        assert item.resolve_unit({"temperature": {"unit": "K"}}) == "K"

    def test_fixed_units(self):
        assert registry.field("position.x").unit == "mm"
        assert registry.field("position.rx").unit == "rad"
        assert registry.field("gps.latitude").unit == "deg"


class TestFamilies:
    def test_custom_family(self):
        family, key = registry.family("custom.vacuum_kpa")
        assert family.path == ("custom",)
        assert key == "vacuum_kpa"

    def test_custom_key_with_dots_is_kept_whole(self):
        _, key = registry.family("custom.arm.left.load")
        assert key == "arm.left.load"

    def test_longest_prefix_wins(self):
        family, key = registry.family("tool.custom.grip_width")
        assert family.path == ("toolData", "custom")
        assert key == "grip_width"

    def test_bare_prefix_is_unknown(self):
        assert registry.family("custom.") is None
        assert not registry.is_known("custom.")

    def test_unknown_name(self):
        assert registry.field("spindle.rpm") is None
        assert registry.family("spindle.rpm") is None
        assert registry.metric_type("spindle.rpm") == "numeric"


class TestMetricType:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("position.x", "position"),
            ("temperature.motor.joint1", "temperature"),
            ("power.total", "power"),
            ("velocity.linear.magnitude", "velocity"),
            ("safety.custom.fence_ok", "safety"),
            ("custom.anything", "numeric"),
            # substring matching would have called this one "position"
            ("gps.latitude", "gps"),
        ],
    )
    def test_types_come_from_registry(self, name, expected):
        assert registry.metric_type(name) == expected


class TestRegistryValidation:
    def test_duplicate_name_rejected(self):
        fields = [
            MetricField(name="a.b", path=("a", "b"), metric_type="numeric"),
            MetricField(name="a.b", path=("a", "c"), metric_type="numeric"),
        ]
        with pytest.raises(ValueError):
            SchemaRegistry(fields, ())

    def test_duplicate_path_rejected(self):
        fields = [
            MetricField(name="a.b", path=("a", "b"), metric_type="numeric"),
            MetricField(name="a.c", path=("a", "b"), metric_type="numeric"),
        ]
        with pytest.raises(ValueError):
            SchemaRegistry(fields, ())


class TestPathHelpers:
    def test_get_path_missing(self):
        assert get_path({"a": {"b": 1}}, ("a", "c")) is None
        assert get_path({"a": 5}, ("a", "b")) is None

    def test_set_path_creates_parents(self):
        target: dict = {}
        set_path(target, ("a", "b", "c"), 1.0)
        assert target == {"a": {"b": {"c": 1.0}}}
