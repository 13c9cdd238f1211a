"""SQLite shot database: games, shots and full-database snapshots."""

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generator, Iterable, Optional

from loguru import logger

from floorball_shots.database.locks import GameLockRegistry
from floorball_shots.errors import PersistenceError
from floorball_shots.models.shot import ShotRecord, calculate_coordinates

SCHEMA_PATH = Path(__file__).parent / "schema.sql"
SQLITE_HEADER = b"SQLite format 3\x00"

SHOT_COLUMNS = (
    "date", "team1", "team2", "time", "shooting_team", "result", "shot_type",
    "xg", "xgot", "shooter", "passer",
    "t1lw", "t1c", "t1rw", "t1ld", "t1rd", "t1g", "t1x",
    "t2lw", "t2c", "t2rw", "t2ld", "t2rd", "t2g", "t2x",
    "pp", "sh", "distance", "angle", "player_team1", "player_team2",
)
COORDINATE_COLUMNS = ("x_m", "y_m", "x_graph", "y_graph")

_INSERT_SHOT_SQL = (
    "INSERT INTO shots (game_id, "
    + ", ".join(SHOT_COLUMNS + COORDINATE_COLUMNS)
    + ") VALUES ("
    + ", ".join("?" * (1 + len(SHOT_COLUMNS) + len(COORDINATE_COLUMNS)))
    + ")"
)


@dataclass
class BatchResult:
    """Outcome of a shot batch insert."""

    inserted_count: int = 0
    skipped_count: int = 0
    errors: list[PersistenceError] = field(default_factory=list)


class Database:
    """SQLite database wrapper for games and shots."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Defaults to an in-memory
                database that is persisted through snapshots.
        """
        self.db_path = db_path
        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._depth = 0
        # Per-game import leases shared by every coordinator on this store
        self.locks = GameLockRegistry()

    @classmethod
    def from_snapshot_file(cls, path: Path) -> "Database":
        """Create an in-memory database from a saved snapshot file.

        Falls back to a fresh, empty schema when the file does not exist.

        Args:
            path: Snapshot file written by a previous save

        Returns:
            Initialized Database
        """
        db = cls()
        if path.exists():
            db.load_snapshot(path.read_bytes())
            logger.info(f"Loaded existing database from {path}")
        else:
            db.initialize()
            logger.info(f"No database at {path}, created new one")
        return db

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            target = str(self.db_path) if self.db_path is not None else ":memory:"
            self._connection = sqlite3.connect(target, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            # Enable foreign keys
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def close(self) -> None:
        """Close database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @contextmanager
    def cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database cursor with auto-commit.

        Inside transaction() the commit/rollback is left to the
        enclosing transaction.
        """
        with self._lock:
            cur = self.connection.cursor()
            try:
                yield cur
                if self._depth == 0:
                    self.connection.commit()
            except Exception:
                if self._depth == 0:
                    self.connection.rollback()
                raise
            finally:
                cur.close()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Group several operations into one commit-or-rollback unit."""
        with self._lock:
            if self._depth:
                yield
                return
            self._depth += 1
            try:
                yield
                self.connection.commit()
            except Exception:
                self.connection.rollback()
                raise
            finally:
                self._depth -= 1

    def initialize(self) -> None:
        """Initialize database schema from schema.sql."""
        schema_sql = SCHEMA_PATH.read_text()
        with self.cursor() as cur:
            cur.executescript(schema_sql)

    def is_initialized(self) -> bool:
        """Check if database has been initialized with schema."""
        with self.cursor() as cur:
            cur.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='shots'"
            )
            return cur.fetchone() is not None

    # -------------------------------------------------------------------------
    # Game operations
    # -------------------------------------------------------------------------

    def game_exists(self, name: str, date: str) -> Optional[int]:
        """Look up a game by name and date.

        Name comparison ignores case and surrounding whitespace; the date
        must match exactly.

        Args:
            name: Game name
            date: Game date

        Returns:
            Game ID or None if no such game is stored
        """
        with self.cursor() as cur:
            cur.execute(
                "SELECT id FROM games WHERE LOWER(TRIM(name)) = LOWER(TRIM(?)) AND date = ?",
                (name, date),
            )
            row = cur.fetchone()
            return row["id"] if row else None

    def insert_game(self, name: str, date: str) -> int:
        """Insert a new game.

        Args:
            name: Game name (stored trimmed)
            date: Game date

        Returns:
            ID of the new game

        Raises:
            PersistenceError: If a game with the same name and date exists
        """
        try:
            with self.cursor() as cur:
                cur.execute(
                    "INSERT INTO games (name, date) VALUES (?, ?)",
                    (name.strip(), date),
                )
                game_id = cur.lastrowid
        except sqlite3.IntegrityError as e:
            logger.error(f"Game '{name}' on {date} rejected: {e}")
            raise PersistenceError(f"Game '{name}' on {date} already exists") from e

        logger.bind(category="DATABASE").debug(f"Created game {game_id}: {name} ({date})")
        return game_id

    def get_game(self, game_id: int) -> Optional[dict[str, Any]]:
        """Get a game by ID."""
        with self.cursor() as cur:
            cur.execute("SELECT * FROM games WHERE id = ?", (game_id,))
            row = cur.fetchone()
            return dict(row) if row else None

    def list_games(self) -> list[dict[str, Any]]:
        """Get all games with their shot counts, newest first."""
        with self.cursor() as cur:
            cur.execute(
                """
                SELECT g.id, g.name, g.date, g.created_at, COUNT(s.id) AS shot_count
                FROM games g
                LEFT JOIN shots s ON s.game_id = g.id
                GROUP BY g.id
                ORDER BY g.created_at DESC, g.id DESC
                """
            )
            return [dict(row) for row in cur.fetchall()]

    def get_game_count(self) -> int:
        """Get count of games in database."""
        with self.cursor() as cur:
            cur.execute("SELECT COUNT(*) as count FROM games")
            return cur.fetchone()["count"]

    # -------------------------------------------------------------------------
    # Shot operations
    # -------------------------------------------------------------------------

    def _insert_shot(self, cur: sqlite3.Cursor, game_id: int, shot: ShotRecord) -> None:
        coords = calculate_coordinates(shot.distance, shot.angle)
        cur.execute(
            _INSERT_SHOT_SQL,
            (
                game_id,
                *(getattr(shot, column) for column in SHOT_COLUMNS),
                coords.x_m,
                coords.y_m,
                coords.x_graph,
                coords.y_graph,
            ),
        )

    def insert_shots_batch(
        self,
        game_id: int,
        shots: Iterable[ShotRecord],
        atomic: bool = True,
    ) -> BatchResult:
        """Insert a batch of shots for a game.

        Args:
            game_id: Owning game ID
            shots: Shots to insert, in order
            atomic: If True, insert all shots in one transaction and roll
                back on the first failure. If False, commit each shot on
                its own and skip the ones that fail.

        Returns:
            BatchResult with inserted/skipped counts and per-row errors

        Raises:
            PersistenceError: In atomic mode, for the first failing shot
        """
        shots = list(shots)
        if atomic:
            return self._insert_atomic(game_id, shots)

        result = BatchResult()
        for position, shot in enumerate(shots):
            try:
                with self.cursor() as cur:
                    self._insert_shot(cur, game_id, shot)
                result.inserted_count += 1
            except sqlite3.Error as e:
                result.skipped_count += 1
                error = PersistenceError(f"Shot {position} rejected: {e}", row_index=position)
                error.__cause__ = e
                result.errors.append(error)
                logger.warning(f"Skipping shot {position} for game {game_id}: {e}")

        logger.bind(category="DATABASE").debug(
            f"Batch for game {game_id}: {result.inserted_count} inserted, "
            f"{result.skipped_count} skipped"
        )
        return result

    def _insert_atomic(self, game_id: int, shots: list[ShotRecord]) -> BatchResult:
        position = 0
        try:
            with self.cursor() as cur:
                for position, shot in enumerate(shots):
                    self._insert_shot(cur, game_id, shot)
        except sqlite3.Error as e:
            logger.error(
                f"Batch for game {game_id} rolled back at shot {position}: {e}"
            )
            raise PersistenceError(
                f"Shot {position} rejected, batch rolled back: {e}", row_index=position
            ) from e

        logger.bind(category="DATABASE").debug(
            f"Batch for game {game_id}: {len(shots)} inserted"
        )
        return BatchResult(inserted_count=len(shots))

    def shots_for_game(self, game_id: int) -> list[dict[str, Any]]:
        """Get all shots of a game in insertion order.

        Args:
            game_id: Game ID

        Returns:
            List of shot rows as dictionaries
        """
        with self.cursor() as cur:
            cur.execute("SELECT * FROM shots WHERE game_id = ? ORDER BY id", (game_id,))
            return [dict(row) for row in cur.fetchall()]

    def get_shot_count(self, game_id: Optional[int] = None) -> int:
        """Get count of shots, optionally for one game."""
        with self.cursor() as cur:
            if game_id is not None:
                cur.execute(
                    "SELECT COUNT(*) as count FROM shots WHERE game_id = ?", (game_id,)
                )
            else:
                cur.execute("SELECT COUNT(*) as count FROM shots")
            return cur.fetchone()["count"]

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def export_snapshot(self) -> bytes:
        """Serialize the whole database to bytes."""
        with self._lock:
            return self.connection.serialize()

    def load_snapshot(self, data: bytes) -> None:
        """Replace the database contents with a serialized snapshot.

        Args:
            data: Bytes produced by export_snapshot (or a SQLite file)

        Raises:
            PersistenceError: If data is not a SQLite database image
        """
        if not data.startswith(SQLITE_HEADER):
            raise PersistenceError("Snapshot is not a SQLite database")

        with self._lock:
            try:
                self.connection.deserialize(data)
            except sqlite3.Error as e:
                raise PersistenceError(f"Could not load snapshot: {e}") from e
            self.connection.execute("PRAGMA foreign_keys = ON")

        if not self.is_initialized():
            self.initialize()
        logger.bind(category="DATABASE").debug(f"Loaded snapshot ({len(data)} bytes)")

    # -------------------------------------------------------------------------
    # Statistics and summaries
    # -------------------------------------------------------------------------

    def get_database_stats(self) -> dict[str, Any]:
        """Get summary statistics about database contents."""
        with self.cursor() as cur:
            cur.execute("SELECT COUNT(*) as count FROM games")
            total_games = cur.fetchone()["count"]

            cur.execute("SELECT COUNT(*) as count FROM shots")
            total_shots = cur.fetchone()["count"]

            cur.execute("SELECT COUNT(*) as count FROM shots WHERE result = 'Goal'")
            total_goals = cur.fetchone()["count"]

            cur.execute("SELECT MIN(date) as first, MAX(date) as last FROM games")
            span = cur.fetchone()

            return {
                "total_games": total_games,
                "total_shots": total_shots,
                "total_goals": total_goals,
                "first_game_date": span["first"],
                "last_game_date": span["last"],
            }
