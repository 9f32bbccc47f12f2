"""Pydantic DTOs for telemetry ingest.

Wire keys are camelCase (``jointAngles``, ``gpsPosition``); every section and
every numeric leaf is optional so that presence and absence survive a round
trip through the metric table. Section units are required wherever the section
declares one, because the unit is stored verbatim on every extracted row.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fleet_telemetry_service.domain.enums import (
    CoordinateFrame,
    DataQuality,
    ExecutionMode,
    TelemetrySource,
)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class PositionDTO(_Section):
    x: float | None = None
    y: float | None = None
    z: float | None = None
    rx: float | None = None
    ry: float | None = None
    rz: float | None = None
    frame: CoordinateFrame | None = None


class _JointValues(_Section):
    joint1: float | None = None
    joint2: float | None = None
    joint3: float | None = None
    joint4: float | None = None
    joint5: float | None = None
    joint6: float | None = None
    joint7: float | None = None
    joint8: float | None = None


class JointAnglesDTO(_JointValues):
    unit: str


class JointVelocityDTO(_JointValues):
    unit: str


class MotorValuesDTO(_JointValues):
    pass


class LinearVectorDTO(_Section):
    x: float | None = None
    y: float | None = None
    z: float | None = None
    magnitude: float | None = None
    unit: str


class AngularVectorDTO(_Section):
    rx: float | None = None
    ry: float | None = None
    rz: float | None = None
    unit: str


class VelocityDTO(_Section):
    linear: LinearVectorDTO | None = None
    angular: AngularVectorDTO | None = None
    joint: JointVelocityDTO | None = None


class AccelerationDTO(_Section):
    linear: LinearVectorDTO | None = None
    angular: AngularVectorDTO | None = None


class ForceDTO(LinearVectorDTO):
    pass


class TorqueDTO(AngularVectorDTO):
    magnitude: float | None = None


class TemperatureDTO(_Section):
    ambient: float | None = None
    controller: float | None = None
    motor: MotorValuesDTO | None = None
    unit: str


class VoltageDTO(_Section):
    supply: float | None = None
    controller: float | None = None
    motor: MotorValuesDTO | None = None
    unit: str


class CurrentDTO(_Section):
    total: float | None = None
    controller: float | None = None
    motor: MotorValuesDTO | None = None
    unit: str


class PowerDTO(CurrentDTO):
    pass


class ProgramStateDTO(_Section):
    current_program: str | None = None
    current_line: int | None = None
    execution_mode: ExecutionMode | None = None
    cycle_time: float | None = None
    remaining_time: float | None = None
    completion_percentage: float | None = Field(default=None, ge=0, le=100)


class ToolDataDTO(_Section):
    tool_id: str | None = None
    position: PositionDTO | None = None
    force: ForceDTO | None = None
    torque: TorqueDTO | None = None
    temperature: float | None = None
    active: bool | None = None
    custom: dict[str, Any] | None = None


class SafetyDTO(_Section):
    emergency_stop: bool | None = None
    protective_stop: bool | None = None
    reduced_mode: bool | None = None
    safety_zone_violation: bool | None = None
    door_open: bool | None = None
    light_curtain: bool | None = None
    pressure_mat: bool | None = None
    custom_safety: dict[str, bool] | None = None


class GpsAccuracyDTO(_Section):
    horizontal: float | None = Field(default=None, ge=0)
    vertical: float | None = Field(default=None, ge=0)


class GpsPositionDTO(_Section):
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    altitude: float | None = None
    heading: float | None = None
    speed: float | None = None
    accuracy: GpsAccuracyDTO | None = None
    satellite_count: int | None = Field(default=None, ge=0)
    fix: str | None = None


class NavigationDTO(_Section):
    path_deviation: float | None = None
    estimated_time_to_target: float | None = None
    mission_progress: float | None = None
    obstacle_detected: bool | None = None


class TelemetryReadingDTO(_Section):
    position: PositionDTO | None = None
    joint_angles: JointAnglesDTO | None = None
    velocity: VelocityDTO | None = None
    acceleration: AccelerationDTO | None = None
    force: ForceDTO | None = None
    torque: TorqueDTO | None = None
    temperature: TemperatureDTO | None = None
    voltage: VoltageDTO | None = None
    current: CurrentDTO | None = None
    power: PowerDTO | None = None
    program_state: ProgramStateDTO | None = None
    tool_data: ToolDataDTO | None = None
    safety: SafetyDTO | None = None
    gps_position: GpsPositionDTO | None = None
    navigation: NavigationDTO | None = None
    # Non-numeric values are accepted here and dropped by the extractor
    custom: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Wire-shaped nested dict with absent fields left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class IngestMetadataDTO(_Section):
    source: TelemetrySource = TelemetrySource.ROBOT_CONTROLLER
    quality: DataQuality = DataQuality.HIGH


class TelemetryIngestDTO(_Section):
    data: TelemetryReadingDTO
    timestamp: datetime | None = None
    metadata: IngestMetadataDTO | None = None
