"""
Shot Data Model

Pydantic model for a single shot event as exported by the tracking
workflow, plus result/type enumerations and rink coordinate helpers.
"""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

TURNOVER_PREFIX = "Turnover"


class ShotResult(str, Enum):
    """Shot result enumeration."""

    GOAL = "Goal"
    SAVED = "Saved"
    BLOCKED = "Blocked"
    MISSED = "Missed"
    TURNOVER = "Turnover"


class ShotType(str, Enum):
    """Shot type enumeration. Turnover shots carry a "Turnover | " prefix."""

    DIRECT = "Direct"
    ONE_TIMER = "One-timer"
    REBOUND = "Rebound"

    @property
    def turnover_label(self) -> str:
        return f"{TURNOVER_PREFIX} | {self.value}"


TEXT_FIELDS = (
    "date", "team1", "team2", "time", "shooting_team", "result", "shot_type",
    "shooter", "passer",
    "t1lw", "t1c", "t1rw", "t1ld", "t1rd", "t1g", "t1x",
    "t2lw", "t2c", "t2rw", "t2ld", "t2rd", "t2g", "t2x",
)
FLOAT_FIELDS = ("xg", "xgot", "distance", "angle")
INT_FIELDS = ("pp", "sh", "player_team1", "player_team2")


def to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip())
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_int(value: Any) -> int:
    return int(to_float(value))


class ShotRecord(BaseModel):
    """
    One shot event with its 31 import fields.

    Numeric fields never fail validation: anything that is not a finite
    number becomes 0. Text fields are trimmed and None becomes "".
    """

    date: str = ""
    team1: str = ""
    team2: str = ""
    time: str = ""
    shooting_team: str = ""
    result: str = ""
    shot_type: str = ""
    xg: float = 0.0
    xgot: float = 0.0
    shooter: str = ""
    passer: str = ""

    # On-floor positions, team 1
    t1lw: str = ""
    t1c: str = ""
    t1rw: str = ""
    t1ld: str = ""
    t1rd: str = ""
    t1g: str = ""
    t1x: str = ""

    # On-floor positions, team 2
    t2lw: str = ""
    t2c: str = ""
    t2rw: str = ""
    t2ld: str = ""
    t2rd: str = ""
    t2g: str = ""
    t2x: str = ""

    # Special teams and geometry
    pp: int = 0
    sh: int = 0
    distance: float = 0.0
    angle: float = 0.0
    player_team1: int = 0
    player_team2: int = 0

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator(*FLOAT_FIELDS, mode="before")
    @classmethod
    def coerce_float(cls, value: Any) -> float:
        return to_float(value)

    @field_validator(*INT_FIELDS, mode="before")
    @classmethod
    def coerce_int(cls, value: Any) -> int:
        return to_int(value)

    @property
    def is_turnover(self) -> bool:
        """Check if this event is a turnover rather than a regular shot."""
        return self.shot_type.startswith(TURNOVER_PREFIX) or self.result.startswith(
            TURNOVER_PREFIX
        )

    @property
    def is_goal(self) -> bool:
        return self.result == ShotResult.GOAL.value

    @property
    def is_power_play(self) -> bool:
        return self.pp != 0

    @property
    def is_shorthanded(self) -> bool:
        return self.sh != 0


class RinkCoordinates(BaseModel):
    """Shot location on the floor in meters and in chart pixels."""

    x_m: float
    y_m: float
    x_graph: float
    y_graph: float


# Pixels per meter on the shot map
GRAPH_SCALE = 30.0


def calculate_coordinates(distance: float, angle: float) -> RinkCoordinates:
    """
    Convert shot distance and angle into rink coordinates.

    The goal sits 3.5m from the side of the charted half; x is mirrored
    around the 10m line so shots read left to right.

    Args:
        distance: Shot distance in meters
        angle: Shot angle in degrees

    Returns:
        RinkCoordinates for the shot
    """
    dist = to_float(distance)
    angle_rad = math.radians(to_float(angle))

    y_m = math.sin(angle_rad) * dist + 3.5
    x_m = 20 - (10 - math.cos(angle_rad) * dist)

    return RinkCoordinates(
        x_m=x_m,
        y_m=y_m,
        x_graph=x_m * GRAPH_SCALE,
        y_graph=y_m * GRAPH_SCALE,
    )
