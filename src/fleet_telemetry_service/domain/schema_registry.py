"""Declarative mapping between nested telemetry payloads and flat metric names.

Every supported scalar leaf is declared once as a :class:`MetricField`:

* ``name`` - dotted metric name stored in ``robot_telemetry.metric_name``;
* ``path`` - keys leading to the leaf in the wire payload;
* ``unit`` or ``unit_path`` - a fixed unit, or the payload key holding the
  section's declared unit;
* ``metadata_paths`` - structural/enum siblings (``frame``, ``fix``...) stored
  in the row's metadata instead of as standalone metrics.

Open-ended maps (``custom``, ``toolData.custom``, ``safety.customSafety``) are
declared as a :class:`MetricFamily` with a name prefix.

The extractor walks this table forward and the reconstructor walks it
backwards, so adding a sensor category is a change to ``_build_fields`` only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Literal, Mapping

MetricKind = Literal["number", "bool"]

Path = tuple[str, ...]

JOINTS = tuple(range(1, 9))


@dataclass(frozen=True, slots=True)
class MetricField:
    name: str
    path: Path
    metric_type: str
    kind: MetricKind = "number"
    unit: str | None = None
    unit_path: Path | None = None
    metadata_paths: tuple[Path, ...] = ()

    def resolve_unit(self, payload: Mapping[str, Any]) -> str:
        if self.unit_path is not None:
            value = get_path(payload, self.unit_path)
            return "" if value is None else str(value)
        return self.unit or ""


@dataclass(frozen=True, slots=True)
class MetricFamily:
    prefix: str
    path: Path
    metric_type: str
    unit: str
    kind: MetricKind = "number"

    def metric_name(self, key: str) -> str:
        return f"{self.prefix}{key}"


def get_path(payload: Mapping[str, Any], path: Path) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


def set_path(target: dict[str, Any], path: Path, value: Any) -> None:
    node = target
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value


def _fields(
    prefix: str,
    section: Path,
    leaves: Iterable[tuple[str, str]],
    *,
    metric_type: str,
    kind: MetricKind = "number",
    unit: str | None = None,
    unit_from_section: bool = False,
    metadata: Iterable[Path] = (),
) -> Iterator[MetricField]:
    unit_path = section + ("unit",) if unit_from_section else None
    metadata_paths = tuple(metadata)
    for payload_key, metric_leaf in leaves:
        yield MetricField(
            name=f"{prefix}.{metric_leaf}",
            path=section + (payload_key,),
            metric_type=metric_type,
            kind=kind,
            unit=unit,
            unit_path=unit_path,
            metadata_paths=metadata_paths,
        )


def _same(*keys: str) -> list[tuple[str, str]]:
    return [(key, key) for key in keys]


def _motor_fields(section: str, metric_type: str) -> Iterator[MetricField]:
    for i in JOINTS:
        yield MetricField(
            name=f"{section}.motor.joint{i}",
            path=(section, "motor", f"joint{i}"),
            metric_type=metric_type,
            unit_path=(section, "unit"),
        )


def _position_fields(prefix: str, section: Path, metadata: tuple[Path, ...]) -> Iterator[MetricField]:
    frame = (section + ("frame",),)
    yield from _fields(
        prefix, section, _same("x", "y", "z"),
        metric_type="position", unit="mm", metadata=frame + metadata,
    )
    yield from _fields(
        prefix, section, _same("rx", "ry", "rz"),
        metric_type="position", unit="rad", metadata=frame + metadata,
    )


def _build_fields() -> Iterator[MetricField]:
    yield from _position_fields("position", ("position",), ())

    for i in JOINTS:
        yield MetricField(
            name=f"joint.{i}.angle",
            path=("jointAngles", f"joint{i}"),
            metric_type="joint_angle",
            unit_path=("jointAngles", "unit"),
        )

    for section in ("velocity", "acceleration"):
        yield from _fields(
            f"{section}.linear", (section, "linear"), _same("x", "y", "z", "magnitude"),
            metric_type=section, unit_from_section=True,
        )
        yield from _fields(
            f"{section}.angular", (section, "angular"), _same("rx", "ry", "rz"),
            metric_type=section, unit_from_section=True,
        )
    for i in JOINTS:
        yield MetricField(
            name=f"joint.{i}.velocity",
            path=("velocity", "joint", f"joint{i}"),
            metric_type="velocity",
            unit_path=("velocity", "joint", "unit"),
        )

    yield from _fields(
        "force", ("force",), _same("x", "y", "z", "magnitude"),
        metric_type="force", unit_from_section=True,
    )
    yield from _fields(
        "torque", ("torque",), _same("rx", "ry", "rz", "magnitude"),
        metric_type="torque", unit_from_section=True,
    )

    yield from _fields(
        "temperature", ("temperature",), _same("ambient", "controller"),
        metric_type="temperature", unit_from_section=True,
    )
    yield from _motor_fields("temperature", "temperature")

    for section, head in (("voltage", "supply"), ("current", "total"), ("power", "total")):
        yield from _fields(
            section, (section,), _same(head, "controller"),
            metric_type=section, unit_from_section=True,
        )
        yield from _motor_fields(section, section)

    program_meta = (("programState", "executionMode"), ("programState", "currentProgram"))
    for payload_key, metric_leaf, unit in (
        ("currentLine", "current_line", "count"),
        ("cycleTime", "cycle_time", "s"),
        ("remainingTime", "remaining_time", "s"),
        ("completionPercentage", "completion", "%"),
    ):
        yield MetricField(
            name=f"program.{metric_leaf}",
            path=("programState", payload_key),
            metric_type="program",
            unit=unit,
            metadata_paths=program_meta,
        )

    tool_meta = (("toolData", "toolId"),)
    yield MetricField(
        name="tool.temperature",
        path=("toolData", "temperature"),
        metric_type="temperature",
        unit="°C",
        metadata_paths=tool_meta,
    )
    yield MetricField(
        name="tool.active",
        path=("toolData", "active"),
        metric_type="boolean",
        kind="bool",
        unit="bool",
        metadata_paths=tool_meta,
    )
    yield from _position_fields("tool.position", ("toolData", "position"), tool_meta)
    yield from _fields(
        "tool.force", ("toolData", "force"), _same("x", "y", "z", "magnitude"),
        metric_type="force", unit_from_section=True, metadata=tool_meta,
    )
    yield from _fields(
        "tool.torque", ("toolData", "torque"), _same("rx", "ry", "rz", "magnitude"),
        metric_type="torque", unit_from_section=True, metadata=tool_meta,
    )

    yield from _fields(
        "safety", ("safety",),
        [
            ("emergencyStop", "emergency_stop"),
            ("protectiveStop", "protective_stop"),
            ("reducedMode", "reduced_mode"),
            ("safetyZoneViolation", "safety_zone_violation"),
            ("doorOpen", "door_open"),
            ("lightCurtain", "light_curtain"),
            ("pressureMat", "pressure_mat"),
        ],
        metric_type="safety", kind="bool", unit="bool",
    )

    gps_meta = (("gpsPosition", "fix"),)
    for payload_key, metric_leaf, unit in (
        ("latitude", "latitude", "deg"),
        ("longitude", "longitude", "deg"),
        ("altitude", "altitude", "m"),
        ("heading", "heading", "deg"),
        ("speed", "speed", "m/s"),
        ("satelliteCount", "satellite_count", "count"),
    ):
        yield MetricField(
            name=f"gps.{metric_leaf}",
            path=("gpsPosition", payload_key),
            metric_type="gps",
            unit=unit,
            metadata_paths=gps_meta,
        )
    yield from _fields(
        "gps.accuracy", ("gpsPosition", "accuracy"), _same("horizontal", "vertical"),
        metric_type="gps", unit="m", metadata=gps_meta,
    )

    yield from _fields(
        "navigation", ("navigation",),
        [("pathDeviation", "path_deviation")], metric_type="navigation", unit="m",
    )
    yield from _fields(
        "navigation", ("navigation",),
        [("estimatedTimeToTarget", "eta")], metric_type="navigation", unit="s",
    )
    yield from _fields(
        "navigation", ("navigation",),
        [("missionProgress", "mission_progress")], metric_type="navigation", unit="%",
    )
    yield from _fields(
        "navigation", ("navigation",),
        [("obstacleDetected", "obstacle_detected")],
        metric_type="navigation", kind="bool", unit="bool",
    )


_FAMILIES = (
    MetricFamily(prefix="custom.", path=("custom",), metric_type="numeric", unit="custom"),
    MetricFamily(prefix="tool.custom.", path=("toolData", "custom"), metric_type="numeric", unit="custom"),
    MetricFamily(
        prefix="safety.custom.",
        path=("safety", "customSafety"),
        metric_type="safety",
        unit="bool",
        kind="bool",
    ),
)


class SchemaRegistry:
    """Bidirectional lookup over the declared fields and families."""

    def __init__(self, fields: Iterable[MetricField], families: Iterable[MetricFamily]) -> None:
        self._fields = tuple(fields)
        # longest prefix first so "tool.custom." wins over any shorter prefix
        self._families = tuple(sorted(families, key=lambda f: len(f.prefix), reverse=True))
        self._by_name: dict[str, MetricField] = {}
        by_path: dict[Path, str] = {}
        for item in self._fields:
            if item.name in self._by_name:
                raise ValueError(f"Duplicate metric name: {item.name}")
            if item.path in by_path:
                raise ValueError(f"Payload path {item.path} mapped twice ({by_path[item.path]}, {item.name})")
            for family in self._families:
                if item.name.startswith(family.prefix):
                    raise ValueError(f"Metric {item.name} shadows family {family.prefix}*")
            self._by_name[item.name] = item
            by_path[item.path] = item.name

    @property
    def fields(self) -> tuple[MetricField, ...]:
        return self._fields

    @property
    def families(self) -> tuple[MetricFamily, ...]:
        return self._families

    def field(self, metric_name: str) -> MetricField | None:
        return self._by_name.get(metric_name)

    def family(self, metric_name: str) -> tuple[MetricFamily, str] | None:
        """Return the family owning ``metric_name`` and the map key within it."""
        for family in self._families:
            if metric_name.startswith(family.prefix) and len(metric_name) > len(family.prefix):
                return family, metric_name[len(family.prefix):]
        return None

    def is_known(self, metric_name: str) -> bool:
        return self.field(metric_name) is not None or self.family(metric_name) is not None

    def metric_type(self, metric_name: str) -> str:
        item = self.field(metric_name)
        if item is not None:
            return item.metric_type
        owner = self.family(metric_name)
        if owner is not None:
            return owner[0].metric_type
        return "numeric"


registry = SchemaRegistry(_build_fields(), _FAMILIES)
