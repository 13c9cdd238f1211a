"""
Import Planner

Describes what a commit would do before it happens, so the caller can
ask for confirmation when duplicates were found.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from floorball_shots.models.shot import ShotRecord


@dataclass(frozen=True)
class ImportPlan:
    """Counts of new and duplicate rows and the resolved target game."""

    total: int
    unique_count: int
    duplicate_count: int
    target_is_new_game: bool
    unique_indices: tuple[int, ...] = ()
    duplicate_indices: tuple[int, ...] = ()
    game_id: int | None = None
    # CSV line of each candidate, when known
    line_numbers: tuple[int, ...] = ()

    @property
    def duplicate_percentage(self) -> int:
        """Share of duplicate rows, rounded to whole percent."""
        if self.total == 0:
            return 0
        return round(self.duplicate_count / self.total * 100)

    @property
    def has_duplicates(self) -> bool:
        return self.duplicate_count > 0

    @property
    def duplicate_lines(self) -> tuple[int, ...]:
        """CSV lines of the duplicate rows (empty if lines are unknown)."""
        if not self.line_numbers:
            return ()
        return tuple(self.line_numbers[i] for i in self.duplicate_indices)

    def line_of(self, index: int) -> int | None:
        if 0 <= index < len(self.line_numbers):
            return self.line_numbers[index]
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "total": self.total,
            "unique_count": self.unique_count,
            "duplicate_count": self.duplicate_count,
            "duplicate_percentage": self.duplicate_percentage,
            "target_is_new_game": self.target_is_new_game,
            "game_id": self.game_id,
            "duplicate_lines": list(self.duplicate_lines),
        }


def build_plan(
    candidates: Sequence[ShotRecord],
    duplicate_indices: Iterable[int],
    game_already_exists: bool,
    game_id: int | None = None,
    line_numbers: Sequence[int] | None = None,
) -> ImportPlan:
    """
    Build an import plan from duplicate detection results.

    Args:
        candidates: Shots parsed from the CSV, in row order
        duplicate_indices: Indices into candidates flagged as duplicates
        game_already_exists: Whether the target game is already stored
        game_id: ID of the existing target game, if any
        line_numbers: CSV line of each candidate; must match candidates in length

    Returns:
        ImportPlan; unique and duplicate indices are in row order
    """
    total = len(candidates)
    if line_numbers and len(line_numbers) != total:
        raise ValueError(f"Expected {total} line numbers, got {len(line_numbers)}")
    duplicates = sorted({i for i in duplicate_indices if 0 <= i < total})
    duplicate_set = set(duplicates)
    unique = [i for i in range(total) if i not in duplicate_set]

    return ImportPlan(
        total=total,
        unique_count=len(unique),
        duplicate_count=len(duplicates),
        target_is_new_game=not game_already_exists,
        unique_indices=tuple(unique),
        duplicate_indices=tuple(duplicates),
        game_id=game_id if game_already_exists else None,
        line_numbers=tuple(line_numbers or ()),
    )
