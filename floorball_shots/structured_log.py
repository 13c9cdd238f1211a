"""
Structured Logging

A loguru sink that forwards log records to the app server's log
endpoint and/or mirrors them to a JSONL file.

Usage:
    from loguru import logger
    from floorball_shots.structured_log import StructuredLogSink

    sink = StructuredLogSink(endpoint_url="http://localhost:3000/api/log")
    logger.add(sink, level="INFO")
    logger.bind(category="IMPORT").info("Import started")
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx

DEFAULT_CATEGORY = "APP"


def build_entry(record: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a loguru record into the log endpoint's entry format.

    Args:
        record: loguru record dict (message.record)

    Returns:
        {"timestamp", "level", "category", "message", "data"}; data holds
        any extra bound values besides the category, or None
    """
    extra = dict(record.get("extra") or {})
    category = extra.pop("category", DEFAULT_CATEGORY)
    return {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "category": category,
        "message": record["message"],
        "data": extra or None,
    }


class StructuredLogSink:
    """Callable loguru sink; delivery failures never reach the caller."""

    def __init__(
        self,
        endpoint_url: str | None = None,
        jsonl_path: str | Path | None = None,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ):
        self.endpoint_url = endpoint_url
        self.jsonl_path = Path(jsonl_path) if jsonl_path else None
        self._client = client
        self._timeout = timeout
        self._jsonl_fh: Any = None
        if self.jsonl_path is not None:
            try:
                self.jsonl_path.parent.mkdir(parents=True, exist_ok=True)
                self._jsonl_fh = open(self.jsonl_path, "a")
            except OSError:
                self._jsonl_fh = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def __call__(self, message: Any) -> None:
        entry = build_entry(message.record)
        self.write(entry)

    def write(self, entry: dict[str, Any]) -> None:
        """Deliver one entry to every configured destination."""
        if self.endpoint_url:
            try:
                self.client.post(self.endpoint_url, json=entry)
            except httpx.HTTPError:
                pass

        if self._jsonl_fh:
            try:
                self._jsonl_fh.write(json.dumps(entry, default=str) + "\n")
                self._jsonl_fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        """Close the JSONL file and HTTP client."""
        if self._jsonl_fh:
            try:
                self._jsonl_fh.close()
            except OSError:
                pass
            self._jsonl_fh = None
        if self._client is not None:
            self._client.close()
            self._client = None
