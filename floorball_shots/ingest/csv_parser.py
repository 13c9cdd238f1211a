"""
CSV Shot Parser

Parses shot exports from the tracking workflow and maps rows onto
ShotRecord models.

Export layout: comma-delimited, double-quote-escaped, a header row
followed by one shot per line with 31 columns (see COLUMNS).
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from loguru import logger

from floorball_shots.errors import ParseError
from floorball_shots.models.shot import ShotRecord, ShotResult

# (field name, export header) in export column order
COLUMNS: tuple[tuple[str, str], ...] = (
    ("date", "Date"),
    ("team1", "Team 1"),
    ("team2", "Team 2"),
    ("time", "Time"),
    ("shooting_team", "Shooting Team"),
    ("result", "Result"),
    ("shot_type", "Type"),
    ("xg", "xG"),
    ("xgot", "xGOT"),
    ("shooter", "Shooter"),
    ("passer", "Passer"),
    ("t1lw", "T1LW"),
    ("t1c", "T1C"),
    ("t1rw", "T1RW"),
    ("t1ld", "T1LD"),
    ("t1rd", "T1RD"),
    ("t1g", "T1G"),
    ("t1x", "T1X"),
    ("t2lw", "T2LW"),
    ("t2c", "T2C"),
    ("t2rw", "T2RW"),
    ("t2ld", "T2LD"),
    ("t2rd", "T2RD"),
    ("t2g", "T2G"),
    ("t2x", "T2X"),
    ("pp", "PP"),
    ("sh", "SH"),
    ("distance", "Distance"),
    ("angle", "Angle"),
    ("player_team1", "Player Team 1"),
    ("player_team2", "Player Team 2"),
)

REQUIRED_HEADERS = (
    "Date", "Team 1", "Team 2", "Time", "Shooting Team",
    "Result", "Type", "xG", "xGOT", "Distance", "Angle",
)


def _header_key(header: str) -> str:
    return "".join(header.split()).lower()


_FIELD_BY_HEADER = {_header_key(header): name for name, header in COLUMNS}
_HEADER_BY_FIELD = dict(COLUMNS)


@dataclass(frozen=True)
class ColumnBinding:
    """Maps ShotRecord field names to column positions in a row."""

    indices: dict[str, int]

    @classmethod
    def positional(cls) -> "ColumnBinding":
        """Binding for the fixed export order."""
        return cls({name: i for i, (name, _) in enumerate(COLUMNS)})

    @classmethod
    def from_header(cls, header: list[str]) -> "ColumnBinding":
        """
        Bind fields by header name so reordered columns still map correctly.

        Header matching ignores case and whitespace. Unknown headers are
        ignored; optional columns that are absent stay unbound.

        Args:
            header: Header row cells

        Returns:
            ColumnBinding for rows under this header

        Raises:
            ParseError: If a required column is missing
        """
        indices: dict[str, int] = {}
        for position, cell in enumerate(header):
            name = _FIELD_BY_HEADER.get(_header_key(cell))
            if name is not None and name not in indices:
                indices[name] = position

        bound_headers = {_HEADER_BY_FIELD[name] for name in indices}
        missing = [h for h in REQUIRED_HEADERS if h not in bound_headers]
        if missing:
            raise ParseError(f"Missing required columns: {', '.join(missing)}", line_number=1)

        unknown = [c for c in header if c and _header_key(c) not in _FIELD_BY_HEADER]
        if unknown:
            logger.debug(f"Ignoring unknown CSV columns: {unknown}")

        return cls(indices)


POSITIONAL_BINDING = ColumnBinding.positional()


def parse_csv(text: str) -> list[list[str]]:
    """
    Parse CSV text into rows of trimmed cells.

    Every newline-delimited line becomes one row. Quoted fields may
    contain commas; doubled quotes inside them unescape to one quote.
    Column counts are not checked.

    Args:
        text: Raw CSV text

    Returns:
        List of rows, header included

    Raises:
        ParseError: If the text is empty or a line has unbalanced quotes
    """
    stripped = text.lstrip("\ufeff").strip()
    if not stripped:
        raise ParseError("CSV input is empty")

    rows: list[list[str]] = []
    for line_number, line in enumerate(stripped.split("\n"), start=1):
        reader = csv.reader([line.rstrip("\r")], skipinitialspace=True, strict=True)
        try:
            cells = next(reader, [])
        except csv.Error as e:
            raise ParseError(f"Malformed quoting: {e}", line_number=line_number) from e
        rows.append([cell.strip() for cell in cells])

    logger.debug(f"Parsed {len(rows)} CSV lines")
    return rows


def map_row_to_shot(row: list[str], binding: ColumnBinding | None = None) -> ShotRecord:
    """
    Map one CSV row onto a ShotRecord.

    Missing trailing columns give empty text and zero numbers; malformed
    numbers become 0. Never raises for row shape.

    Args:
        row: Row cells
        binding: Column binding (defaults to the fixed export order)

    Returns:
        ShotRecord with all 31 fields populated
    """
    binding = binding or POSITIONAL_BINDING
    values: dict[str, Any] = {}
    for name, index in binding.indices.items():
        if index < len(row):
            values[name] = row[index]
    return ShotRecord.model_validate(values)


def is_blank_row(row: list[str]) -> bool:
    """Check if a row has no content at all."""
    return not any(cell for cell in row)


@dataclass
class ResultSummary:
    """Shot outcome counts for a set of rows."""

    total: int = 0
    goals: int = 0
    saves: int = 0
    blocked: int = 0
    missed: int = 0
    turnovers: int = 0
    other: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "total": self.total,
            "goals": self.goals,
            "saves": self.saves,
            "blocked": self.blocked,
            "missed": self.missed,
            "turnovers": self.turnovers,
        }


def summarize_results(shots: Iterable[ShotRecord]) -> ResultSummary:
    """
    Count shots by result.

    Args:
        shots: Shots to count

    Returns:
        ResultSummary with per-result counts
    """
    summary = ResultSummary()
    for shot in shots:
        summary.total += 1
        result = shot.result.lower()
        if shot.is_turnover:
            summary.turnovers += 1
        elif result == ShotResult.GOAL.value.lower():
            summary.goals += 1
        elif result == ShotResult.SAVED.value.lower():
            summary.saves += 1
        elif result == ShotResult.BLOCKED.value.lower():
            summary.blocked += 1
        elif result == ShotResult.MISSED.value.lower():
            summary.missed += 1
        else:
            summary.other.append(shot.result)
    return summary


def game_name_from_filename(path: str | Path) -> str | None:
    """
    Derive a game name from an export filename.

    Exports are named "<team1>_<team2>[_...].csv"; the game name is
    "<team1> - <team2>".

    Args:
        path: Export file path

    Returns:
        Game name, or None if the filename has no team pair
    """
    parts = Path(path).stem.split("_")
    if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
        return None
    return f"{parts[0].strip()} - {parts[1].strip()}"


def read_csv_file(path: str | Path) -> str:
    """Read an export file as text (UTF-8, BOM tolerated)."""
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig")
    logger.info(f"Read {len(text)} characters from {path}")
    return text
