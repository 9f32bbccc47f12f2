from __future__ import annotations

from datetime import datetime, timezone

ORG_ID = "0b6f3d52-8c1e-4f7a-9d2b-5e8a1c3f7b90"
OTHER_ORG_ID = "7d2e9a14-3b5c-4e6f-8a1d-2c9b4f6e8a03"
ROBOT_ID = "3f2a7c1e-9b4d-4a6e-8f2c-1d5b7e9a3c40"
SECOND_ROBOT_ID = "a8c4e2f0-6d1b-4c3a-9e5f-7b2d4a6c8e19"
FOREIGN_ROBOT_ID = "c1e3a5b7-2d4f-4b6a-8c9e-0f1a3b5d7e92"

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_headers(organization_id: str = ORG_ID) -> dict[str, str]:
    return {"X-Organization-Id": organization_id}


FULL_READING = {
    "position": {"x": 125.5, "y": 245.8, "z": 300.2, "rx": 0.1, "ry": 0.2, "rz": 0.3, "frame": "base"},
    "jointAngles": {
        "joint1": 0.1,
        "joint2": 0.2,
        "joint3": 0.3,
        "joint4": 0.4,
        "joint5": 0.5,
        "joint6": 0.6,
        "unit": "radians",
    },
    "velocity": {
        "linear": {"x": 0.5, "y": 0.0, "z": -0.25, "magnitude": 0.56, "unit": "m/s"},
        "angular": {"rx": 0.01, "ry": 0.02, "rz": 0.03, "unit": "rad/s"},
        "joint": {"joint1": 0.2, "joint2": 0.4, "unit": "deg/s"},
    },
    "acceleration": {"linear": {"x": 1.0, "y": 2.0, "z": 3.0, "unit": "m/s²"}},
    "force": {"x": 10.0, "y": 0.5, "z": -3.0, "magnitude": 10.5, "unit": "N"},
    "torque": {"rx": 1.5, "ry": 0.0, "rz": 0.25, "unit": "Nm"},
    "temperature": {
        "ambient": 25.3,
        "controller": 35.7,
        "motor": {"joint1": 41.0, "joint2": 42.5},
        "unit": "°C",
    },
    "voltage": {"supply": 48.2, "controller": 24.1, "unit": "V"},
    "current": {"total": 2.15, "motor": {"joint3": 0.8}, "unit": "A"},
    "power": {"total": 103.6, "unit": "W"},
    "programState": {
        "currentProgram": "palletize.urp",
        "currentLine": 42,
        "executionMode": "automatic",
        "cycleTime": 12.5,
        "completionPercentage": 60.0,
    },
    "toolData": {
        "toolId": "gripper-2",
        "position": {"x": 1.0, "y": 2.0, "z": 3.0},
        "force": {"z": 12.0, "unit": "N"},
        "temperature": 31.0,
        "active": True,
        "custom": {"grip_width": 42.0},
    },
    "safety": {
        "emergencyStop": False,
        "protectiveStop": True,
        "reducedMode": False,
        "safetyZoneViolation": False,
        "customSafety": {"fence_ok": True},
    },
    "gpsPosition": {
        "latitude": 52.52,
        "longitude": 13.405,
        "altitude": 34.0,
        "heading": 270.0,
        "speed": 1.2,
        "accuracy": {"horizontal": 0.8, "vertical": 1.5},
        "satelliteCount": 11,
        "fix": "rtk",
    },
    "navigation": {
        "pathDeviation": 0.05,
        "estimatedTimeToTarget": 90.0,
        "missionProgress": 37.5,
        "obstacleDetected": False,
    },
    "custom": {"vacuum_kpa": -61.5, "cycle_count": 1200},
}
