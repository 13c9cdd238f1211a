"""
Durable Save

Writes database snapshots somewhere they survive the process: a local
file, or the app server's save endpoint.
"""

from __future__ import annotations

import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx
from loguru import logger


@dataclass
class SaveOutcome:
    """Result of a snapshot save."""

    success: bool
    error: str | None = None


class SnapshotSaver(Protocol):
    """Anything that can persist a snapshot."""

    def save(self, data: bytes) -> SaveOutcome: ...


class FileSnapshotSaver:
    """Writes snapshots to a file, replacing it atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def save(self, data: bytes) -> SaveOutcome:
        """Write data to a temp file next to the target, then swap it in."""
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error(f"Failed to write snapshot to {self.path}: {e}")
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return SaveOutcome(success=False, error=str(e))

        logger.info(f"Saved database snapshot to {self.path} ({len(data)} bytes)")
        return SaveOutcome(success=True)


class HttpSnapshotSaver:
    """
    Posts snapshots to the app server's save endpoint.

    The server answers with JSON {"success": bool, "error": str}, also on
    HTTP errors. Any such reply is final, so a success=false body is
    reported as is. Transport failures and 5xx replies without that body
    are retried with exponential backoff.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        endpoint: str = "/api/save-database",
        timeout: float = 30,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        retry_backoff: float = 2.0,
        client: httpx.Client | None = None,
    ):
        self.url = base_url.rstrip("/") + endpoint
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls, save_config: dict[str, Any], client: httpx.Client | None = None
    ) -> "HttpSnapshotSaver":
        """Create a saver from the `save` section of the import config."""
        return cls(
            base_url=save_config["base_url"],
            endpoint=save_config["endpoint"],
            timeout=save_config["timeout"],
            max_retries=save_config["max_retries"],
            retry_delay=save_config["retry_delay"],
            retry_backoff=save_config["retry_backoff"],
            client=client,
        )

    def save(self, data: bytes) -> SaveOutcome:
        """
        Upload a snapshot.

        Args:
            data: Serialized database

        Returns:
            SaveOutcome; failures carry the server's error text when it sent
            one, else the last transport or HTTP error
        """
        last_error = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                sleep_time = self.retry_delay * (self.retry_backoff ** (attempt - 1))
                logger.warning(
                    f"Save failed (attempt {attempt}/{self.max_retries + 1}), "
                    f"retrying in {sleep_time}s: {last_error}"
                )
                time.sleep(sleep_time)

            try:
                response = self.client.post(
                    self.url,
                    content=data,
                    headers={"Content-Type": "application/octet-stream"},
                )
            except httpx.HTTPError as e:
                last_error = str(e)
                continue

            body = self._read_body(response)
            if body is not None:
                if body["success"] is True:
                    logger.info(
                        f"Saved database snapshot to {self.url} ({len(data)} bytes)"
                    )
                    return SaveOutcome(success=True)
                error = body.get("error") or (
                    f"Server reported failure (HTTP {response.status_code})"
                )
                logger.error(f"Server rejected snapshot: {error}")
                return SaveOutcome(success=False, error=str(error))

            if not response.is_server_error:
                error = f"Unexpected response from save endpoint (HTTP {response.status_code})"
                logger.error(error)
                return SaveOutcome(success=False, error=error)

            last_error = f"HTTP {response.status_code}"

        logger.error(f"Save failed after {self.max_retries + 1} attempts: {self.url}")
        return SaveOutcome(success=False, error=last_error)

    @staticmethod
    def _read_body(response: httpx.Response) -> dict[str, Any] | None:
        """Return the JSON reply if it is a save result object, else None."""
        try:
            body = response.json()
        except ValueError:
            return None
        if not isinstance(body, dict) or "success" not in body:
            return None
        return body

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "HttpSnapshotSaver":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def build_saver(config: dict[str, Any]) -> SnapshotSaver:
    """
    Pick a saver from the import config.

    Args:
        config: Full configuration from load_config()

    Returns:
        HttpSnapshotSaver when save.mode is "http", else FileSnapshotSaver
        writing to database.snapshot_path
    """
    save_config = config["save"]
    mode = save_config.get("mode", "file")
    if mode == "http":
        return HttpSnapshotSaver.from_config(save_config)
    if mode != "file":
        raise ValueError(f"Unknown save mode: {mode}")
    return FileSnapshotSaver(config["database"]["snapshot_path"])
