"""
Game Data Model

Pydantic model for a stored game (team pairing + date).
"""

from typing import Any

from pydantic import BaseModel


def normalize_game_name(name: str) -> str:
    """Normalize a game name for uniqueness checks (trimmed, case-insensitive)."""
    return name.strip().lower()


class Game(BaseModel):
    """A game that owns imported shots."""

    game_id: int
    name: str
    date: str
    created_at: str | None = None
    shot_count: int = 0

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the game: normalized name and date."""
        return normalize_game_name(self.name), self.date.strip()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Game":
        """Create from a database row dict."""
        return cls(
            game_id=row["id"],
            name=row["name"],
            date=row["date"],
            created_at=row.get("created_at"),
            shot_count=row.get("shot_count") or 0,
        )
