"""
Data Models Module

Pydantic models for the shot import pipeline.

Models:
    - ShotRecord: One shot event with its 31 import fields
    - Game: A stored game (team pairing + date)
"""

from floorball_shots.models.shot import (
    RinkCoordinates,
    ShotRecord,
    ShotResult,
    ShotType,
    calculate_coordinates,
)
from floorball_shots.models.game import Game, normalize_game_name

__all__ = [
    "ShotRecord",
    "ShotResult",
    "ShotType",
    "RinkCoordinates",
    "calculate_coordinates",
    "Game",
    "normalize_game_name",
]
