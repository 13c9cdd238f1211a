"""
Import Errors

Exception types raised by the shot import pipeline.

Attempt-level errors (ParseError, ValidationError) never leave partial
state behind. PersistenceError is raised per row or per atomic batch.
DurabilityError means the rows are applied in memory but the snapshot
was not saved; retry the save, not the import.
"""

from __future__ import annotations


class ShotImportError(Exception):
    """Base class for all shot import errors."""


class ParseError(ShotImportError):
    """Raised when CSV input cannot be parsed (empty text, unbalanced quotes, bad header)."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ValidationError(ShotImportError):
    """Raised when the target game name or date is missing or invalid."""


class PersistenceError(ShotImportError):
    """Raised when the store rejects a game or shot insert."""

    def __init__(
        self,
        message: str,
        row_index: int | None = None,
        line_number: int | None = None,
    ) -> None:
        self.row_index = row_index
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class DurabilityError(ShotImportError):
    """Raised when the snapshot save fails after rows were applied in memory."""


class ImportStateError(ShotImportError):
    """Raised when a coordinator operation is called from the wrong state."""


class GameLockTimeout(ShotImportError):
    """Raised when another import holds the lease on the same game for too long."""
