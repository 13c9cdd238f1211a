"""Per-game leases so two imports of the same game cannot interleave."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator

from loguru import logger

from floorball_shots.errors import GameLockTimeout
from floorball_shots.models.game import normalize_game_name

GameKey = tuple[str, str]


class GameLockRegistry:
    """
    Hands out one lock per (normalized game name, date).

    An entry exists only while its lease is held or awaited, so the
    registry does not grow with the number of games ever imported.
    """

    def __init__(self) -> None:
        self._locks: dict[GameKey, threading.Lock] = {}
        self._users: dict[GameKey, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @staticmethod
    def key(name: str, date: str) -> GameKey:
        return normalize_game_name(name), date.strip()

    def is_held(self, name: str, date: str) -> bool:
        """Check if an import currently holds the lease on a game."""
        with self._guard:
            lock = self._locks.get(self.key(name, date))
        return lock is not None and lock.locked()

    def _checkout(self, key: GameKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: GameKey) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(
        self, name: str, date: str, timeout: float | None = None
    ) -> Generator[None, None, None]:
        """
        Hold the lease on a game for the duration of the block.

        Args:
            name: Game name
            date: Game date
            timeout: Seconds to wait for the lease (None waits forever)

        Raises:
            GameLockTimeout: If the lease was not acquired in time
        """
        key = self.key(name, date)
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=-1 if timeout is None else timeout):
                raise GameLockTimeout(
                    f"Game '{name}' on {date} is being imported by another process"
                )
            logger.debug(f"Acquired lease for {key}")
            try:
                yield
            finally:
                lock.release()
                logger.debug(f"Released lease for {key}")
        finally:
            self._checkin(key)
