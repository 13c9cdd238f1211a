"""Import pipeline services: duplicate detection, planning, locking and saving."""

from .coordinator import (
    DuplicateConflict,
    ImportCoordinator,
    ImportResult,
    ImportState,
)
from .duplicates import FINGERPRINT_FIELDS, find_duplicates, fingerprint
from floorball_shots.database.locks import GameLockRegistry
from .persistence import (
    FileSnapshotSaver,
    HttpSnapshotSaver,
    SaveOutcome,
    SnapshotSaver,
    build_saver,
)
from .planner import ImportPlan, build_plan

__all__ = [
    "DuplicateConflict",
    "FINGERPRINT_FIELDS",
    "FileSnapshotSaver",
    "GameLockRegistry",
    "HttpSnapshotSaver",
    "ImportCoordinator",
    "ImportPlan",
    "ImportResult",
    "ImportState",
    "SaveOutcome",
    "SnapshotSaver",
    "build_plan",
    "build_saver",
    "find_duplicates",
    "fingerprint",
]
