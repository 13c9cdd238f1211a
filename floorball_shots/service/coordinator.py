"""
Import Coordinator

Drives one CSV import through parse, duplicate check, optional user
confirmation, commit and durable save.

States:
    idle -> parsed -> checked -> awaiting_confirmation | committing
    committing -> done | failed

Usage:
    coordinator = ImportCoordinator(db, FileSnapshotSaver("data/db.sqlite"))
    coordinator.parse(text)
    plan = coordinator.check("Team A - Team B", "2024-01-01")
    result = coordinator.commit()
    if result.conflict:
        result = coordinator.force_import()  # after the user confirms
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from floorball_shots.database import Database
from floorball_shots.database.locks import GameLockRegistry
from floorball_shots.errors import (
    DurabilityError,
    ImportStateError,
    ParseError,
    PersistenceError,
    ValidationError,
)
from floorball_shots.ingest.csv_parser import (
    ColumnBinding,
    ResultSummary,
    is_blank_row,
    map_row_to_shot,
    parse_csv,
    summarize_results,
)
from floorball_shots.models.shot import ShotRecord
from floorball_shots.service.duplicates import find_duplicates
from floorball_shots.service.persistence import SaveOutcome, SnapshotSaver
from floorball_shots.service.planner import ImportPlan, build_plan

log = logger.bind(category="IMPORT")


class ImportState(str, Enum):
    """Lifecycle of a single import attempt."""

    IDLE = "idle"
    PARSED = "parsed"
    CHECKED = "checked"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class DuplicateConflict:
    """Duplicates were found and the import needs confirmation."""

    total: int
    duplicate_count: int
    duplicate_indices: tuple[int, ...] = ()
    duplicate_lines: tuple[int, ...] = ()

    @classmethod
    def from_plan(cls, plan: ImportPlan) -> "DuplicateConflict":
        return cls(
            total=plan.total,
            duplicate_count=plan.duplicate_count,
            duplicate_indices=plan.duplicate_indices,
            duplicate_lines=plan.duplicate_lines,
        )

    @property
    def duplicate_percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.duplicate_count / self.total * 100)

    @property
    def message(self) -> str:
        return (
            f"{self.duplicate_count} of {self.total} shots "
            f"({self.duplicate_percentage}%) already exist in this game"
        )


@dataclass
class ImportResult:
    """What an import did (or would do, when a conflict stopped it)."""

    state: ImportState
    plan: ImportPlan | None = None
    game_id: int | None = None
    is_new_game: bool = False
    inserted_count: int = 0
    skipped_count: int = 0
    duplicate_count: int = 0
    saved: bool = False
    conflict: DuplicateConflict | None = None
    errors: list[PersistenceError] = field(default_factory=list)
    summary: ResultSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "state": self.state.value,
            "game_id": self.game_id,
            "is_new_game": self.is_new_game,
            "inserted_count": self.inserted_count,
            "skipped_count": self.skipped_count,
            "duplicate_count": self.duplicate_count,
            "saved": self.saved,
            "conflict": self.conflict.message if self.conflict else None,
            "errors": [str(e) for e in self.errors],
            "summary": self.summary.to_dict() if self.summary else None,
        }


class ImportCoordinator:
    """
    State machine for importing one CSV into one game.

    The database and saver are passed in; the coordinator owns no global
    state. Check-and-commit runs under a per-game lease so two imports of
    the same game cannot both see "no duplicates" and insert twice.
    """

    def __init__(
        self,
        db: Database,
        saver: SnapshotSaver,
        locks: GameLockRegistry | None = None,
        atomic_batches: bool = True,
        lock_timeout: float | None = None,
    ):
        """
        Args:
            db: Shot database
            saver: Durable snapshot saver
            locks: Lease registry (defaults to the one owned by db, shared by
                every coordinator on that database)
            atomic_batches: Roll back the whole batch on the first failing shot
            lock_timeout: Seconds to wait for the game lease (None waits forever)
        """
        self.db = db
        self.saver = saver
        self.locks = locks if locks is not None else db.locks
        self.atomic_batches = atomic_batches
        self.lock_timeout = lock_timeout
        self.reset()

    def reset(self) -> None:
        """Forget the current attempt and return to idle."""
        self.state = ImportState.IDLE
        self.shots: list[ShotRecord] = []
        # CSV line number of each shot (header is line 1)
        self.line_numbers: list[int] = []
        self.summary: ResultSummary | None = None
        self.game_name: str | None = None
        self.game_date: str | None = None
        self.plan: ImportPlan | None = None
        self.result: ImportResult | None = None
        self._save_pending = False

    def _require(self, action: str, *states: ImportState) -> None:
        if self.state not in states:
            raise ImportStateError(f"Cannot {action} while import is {self.state.value}")

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def parse(self, text: str) -> list[ShotRecord]:
        """
        Parse CSV text into candidate shots.

        The first row is the header. Blank lines are skipped.

        Args:
            text: Raw CSV text

        Returns:
            Candidate shots in row order

        Raises:
            ParseError: If the text is empty, malformed, or has no data rows
        """
        self._require("parse", ImportState.IDLE)
        try:
            rows = parse_csv(text)
            binding = ColumnBinding.from_header(rows[0])
            data_rows = [
                (line_number, row)
                for line_number, row in enumerate(rows[1:], start=2)
                if not is_blank_row(row)
            ]
            if not data_rows:
                raise ParseError("CSV has a header but no data rows")
        except ParseError as e:
            self.state = ImportState.FAILED
            log.error(f"Parse failed: {e}")
            raise

        self.line_numbers = [line_number for line_number, _ in data_rows]
        self.shots = [map_row_to_shot(row, binding) for _, row in data_rows]
        self.summary = summarize_results(self.shots)
        self.state = ImportState.PARSED
        log.info(
            f"Parsed {len(self.shots)} shots "
            f"({self.summary.goals} goals, {self.summary.turnovers} turnovers)"
        )
        return self.shots

    def check(self, game_name: str, game_date: str) -> ImportPlan:
        """
        Resolve the target game and find duplicates.

        Args:
            game_name: Game name (trimmed; matched case-insensitively)
            game_date: Game date

        Returns:
            ImportPlan for the parsed shots

        Raises:
            ValidationError: If the name or date is empty; any earlier
                target and plan are dropped and the state returns to parsed
        """
        self._require("check", ImportState.PARSED, ImportState.CHECKED)
        name = (game_name or "").strip()
        date = (game_date or "").strip()
        if not name or not date:
            self.state = ImportState.PARSED
            self.game_name = self.game_date = None
            self.plan = None
            raise ValidationError(
                "Game name is required" if not name else "Game date is required"
            )

        self.game_name, self.game_date = name, date
        self.plan = self._detect()
        self.state = ImportState.CHECKED
        log.info(
            f"Checked '{name}' ({date}): {self.plan.unique_count} new, "
            f"{self.plan.duplicate_count} duplicates, "
            f"{'new' if self.plan.target_is_new_game else 'existing'} game"
        )
        return self.plan

    def commit(self, force: bool = False) -> ImportResult:
        """
        Write the unique shots and save the database.

        The duplicate check is re-run under the game lease first. If it
        finds duplicates and force is False, nothing is written and the
        result carries a DuplicateConflict.

        Raises:
            PersistenceError: If the store rejects the game or an atomic batch
            DurabilityError: If rows were applied but the save failed
            GameLockTimeout: If another import holds the game lease
        """
        self._require("commit", ImportState.CHECKED)
        return self._commit(force)

    def force_import(self) -> ImportResult:
        """Commit after the user confirmed importing despite duplicates."""
        self._require("force import", ImportState.AWAITING_CONFIRMATION)
        return self._commit(force=True)

    def retry_save(self) -> ImportResult:
        """
        Save again after a DurabilityError, without re-inserting anything.

        Raises:
            ImportStateError: If there is no unsaved import
            DurabilityError: If the save fails again
        """
        if not (self.state == ImportState.FAILED and self._save_pending):
            raise ImportStateError("No applied import is waiting to be saved")
        assert self.result is not None
        log.info("Retrying save")
        self._save(self.result)
        return self.result

    def run(
        self, text: str, game_name: str, game_date: str, force: bool = False
    ) -> ImportResult:
        """Parse, check and commit in one call."""
        if self.state != ImportState.IDLE:
            self.reset()
        self.parse(text)
        self.check(game_name, game_date)
        return self.commit(force=force)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _detect(self) -> ImportPlan:
        assert self.game_name is not None and self.game_date is not None
        game_id = self.db.game_exists(self.game_name, self.game_date)
        existing = self.db.shots_for_game(game_id) if game_id is not None else []
        duplicates = find_duplicates(self.shots, existing)
        return build_plan(
            self.shots,
            duplicates,
            game_id is not None,
            game_id,
            line_numbers=self.line_numbers,
        )

    def _locate(
        self, plan: ImportPlan, error: PersistenceError, rolled_back: bool = False
    ) -> PersistenceError:
        """Point a batch error at the candidate index and CSV line of its shot."""
        if error.row_index is None or error.row_index >= len(plan.unique_indices):
            return error
        index = plan.unique_indices[error.row_index]
        cause = error.__cause__ or error
        outcome = "rejected, batch rolled back" if rolled_back else "rejected"
        located = PersistenceError(
            f"Shot {index} {outcome}: {cause}",
            row_index=index,
            line_number=plan.line_of(index),
        )
        located.__cause__ = cause
        return located

    def _commit(self, force: bool) -> ImportResult:
        assert self.game_name is not None and self.game_date is not None
        with self.locks.hold(self.game_name, self.game_date, timeout=self.lock_timeout):
            plan = self._detect()
            self.plan = plan

            if plan.has_duplicates and not force:
                self.state = ImportState.AWAITING_CONFIRMATION
                self.result = ImportResult(
                    state=self.state,
                    plan=plan,
                    game_id=plan.game_id,
                    is_new_game=plan.target_is_new_game,
                    duplicate_count=plan.duplicate_count,
                    conflict=DuplicateConflict.from_plan(plan),
                    summary=self.summary,
                )
                log.info(f"Awaiting confirmation: {self.result.conflict.message}")
                return self.result

            self.state = ImportState.COMMITTING
            try:
                self.result = self._apply(plan)
            except Exception as e:
                self.state = ImportState.FAILED
                log.error(f"Import into '{self.game_name}' failed: {e}")
                raise

            self._save(self.result)
            return self.result

    def _apply(self, plan: ImportPlan) -> ImportResult:
        unique = [self.shots[i] for i in plan.unique_indices]
        result = ImportResult(
            state=ImportState.COMMITTING,
            plan=plan,
            game_id=plan.game_id,
            is_new_game=plan.target_is_new_game,
            duplicate_count=plan.duplicate_count,
            summary=self.summary,
        )

        if plan.target_is_new_game and not unique:
            log.info(f"No new shots for '{self.game_name}', game not created")
            return result

        try:
            with self.db.transaction():
                if plan.target_is_new_game:
                    game_id = self.db.insert_game(self.game_name, self.game_date)
                else:
                    game_id = plan.game_id
                batch = self.db.insert_shots_batch(
                    game_id, unique, atomic=self.atomic_batches
                )
        except PersistenceError as e:
            located = self._locate(plan, e, rolled_back=True)
            if located is e:
                raise
            raise located from e.__cause__

        result.game_id = game_id
        result.inserted_count = batch.inserted_count
        result.skipped_count = batch.skipped_count
        result.errors = [self._locate(plan, error) for error in batch.errors]
        log.info(
            f"Imported {batch.inserted_count} shots into game {game_id}"
            + (f", {batch.skipped_count} rejected" if batch.skipped_count else "")
        )
        return result

    def _save(self, result: ImportResult) -> None:
        cause = None
        try:
            outcome = self.saver.save(self.db.export_snapshot())
        except Exception as e:
            cause = e
            outcome = SaveOutcome(success=False, error=f"{type(e).__name__}: {e}")

        if outcome.success:
            self._save_pending = False
            self.state = result.state = ImportState.DONE
            result.saved = True
            log.info("Database saved")
            return

        self._save_pending = True
        self.state = result.state = ImportState.FAILED
        log.error(f"Import applied but not saved: {outcome.error}")
        raise DurabilityError(f"Import applied but not saved: {outcome.error}") from cause
