"""Database module for the floorball shot store."""

from .db import BatchResult, Database
from .locks import GameLockRegistry

__all__ = ["BatchResult", "Database", "GameLockRegistry"]
