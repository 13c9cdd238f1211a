"""
Pytest Configuration and Fixtures

Shared fixtures for the floorball shot import test suite.
"""

from typing import Any
from unittest.mock import MagicMock

import pytest

from floorball_shots.database import Database
from floorball_shots.ingest.csv_parser import COLUMNS
from floorball_shots.service.persistence import SaveOutcome

CSV_HEADER = ",".join(header for _, header in COLUMNS)


def make_csv_row(
    time: str = "05:30",
    shooter: str = "#10 Virtanen",
    result: str = "Goal",
    shot_type: str = "Direct",
    distance: float = 8.5,
    angle: float = 30,
    shooting_team: str = "Team A",
    date: str = "2024-01-01",
    passer: str = "#7 Koskinen",
) -> str:
    """Build one 31-column export line."""
    cells = [
        date, "Team A", "Team B", time, shooting_team, result, shot_type,
        "0.21", "0.35", shooter, passer,
        "#7", "#10", "#11", "#4", "#5", "#1", "",
        "#17", "#18", "#19", "#22", "#23", "#30", "",
        "0", "0", str(distance), str(angle), "5", "5",
    ]
    return ",".join(cells)


def make_csv(rows: list[str]) -> str:
    return "\n".join([CSV_HEADER, *rows]) + "\n"


@pytest.fixture
def csv_header() -> str:
    """Export header line."""
    return CSV_HEADER


@pytest.fixture
def sample_rows() -> list[str]:
    """Ten distinct shot lines."""
    results = ["Goal", "Saved", "Blocked", "Missed", "Saved"]
    return [
        make_csv_row(
            time=f"{minute:02d}:15",
            shooter=f"#{minute + 1} Player",
            result=results[minute % len(results)],
            distance=5 + minute,
            angle=10 * minute,
        )
        for minute in range(10)
    ]


@pytest.fixture
def sample_csv(sample_rows: list[str]) -> str:
    """Full export with header and ten shots."""
    return make_csv(sample_rows)


@pytest.fixture
def sample_shot_values() -> dict[str, Any]:
    """Field values for a single shot."""
    return {
        "date": "2024-01-01",
        "team1": "Team A",
        "team2": "Team B",
        "time": "05:30",
        "shooting_team": "Team A",
        "result": "Goal",
        "shot_type": "Direct",
        "xg": 0.21,
        "xgot": 0.35,
        "shooter": "#10 Virtanen",
        "passer": "#7 Koskinen",
        "distance": 8.5,
        "angle": 30,
        "player_team1": 5,
        "player_team2": 5,
    }


@pytest.fixture
def db():
    """Fresh in-memory database with schema."""
    database = Database()
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def saver() -> MagicMock:
    """Snapshot saver that always succeeds."""
    mock = MagicMock()
    mock.save.return_value = SaveOutcome(success=True)
    return mock


@pytest.fixture
def failing_saver() -> MagicMock:
    """Snapshot saver that always fails."""
    mock = MagicMock()
    mock.save.return_value = SaveOutcome(success=False, error="server unavailable")
    return mock


@pytest.fixture
def csv_row():
    """Factory for single export lines."""
    return make_csv_row


@pytest.fixture
def build_csv():
    """Factory for full exports from lines."""
    return make_csv
