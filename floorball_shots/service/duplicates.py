"""
Duplicate Detection

Decides which imported shots are already stored for a game.

Two shots are the same event when their fingerprints match: time,
shooting team, shooter, result, type, distance and angle. Text is
compared exactly (case-sensitive), distance and angle as floats.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Mapping, Sequence

from loguru import logger

from floorball_shots.models.shot import ShotRecord, to_float

FINGERPRINT_FIELDS = (
    "time",
    "shooting_team",
    "shooter",
    "result",
    "shot_type",
    "distance",
    "angle",
)
NUMERIC_FINGERPRINT_FIELDS = frozenset({"distance", "angle"})

# Number of candidate comparisons logged in detail
SAMPLE_LOG_ROWS = 3

Fingerprint = tuple[Any, ...]

log = logger.bind(category="DUPLICATE_CHECK")


def _field(shot: ShotRecord | Mapping[str, Any], name: str) -> Any:
    if isinstance(shot, Mapping):
        return shot.get(name)
    return getattr(shot, name, None)


def fingerprint(shot: ShotRecord | Mapping[str, Any]) -> Fingerprint:
    """
    Build the identity key of a shot.

    Works for ShotRecord candidates and for stored shot rows (dicts).

    Args:
        shot: Shot record or stored shot row

    Returns:
        Tuple of fingerprint values in FINGERPRINT_FIELDS order
    """
    parts: list[Any] = []
    for name in FINGERPRINT_FIELDS:
        value = _field(shot, name)
        if name in NUMERIC_FINGERPRINT_FIELDS:
            parts.append(to_float(value))
        else:
            parts.append("" if value is None else str(value))
    return tuple(parts)


def _coarse_key(print_: Fingerprint) -> tuple[str, str]:
    # time + shooter
    return print_[0], print_[2]


def find_duplicates(
    candidates: Sequence[ShotRecord],
    existing: Sequence[ShotRecord | Mapping[str, Any]],
) -> set[int]:
    """
    Find candidates that are already stored.

    Existing shots are bucketed by (time, shooter) first, so each
    candidate is only compared against shots at the same time by the
    same shooter. Candidates are not compared with each other.

    Args:
        candidates: Shots about to be imported, in row order
        existing: Shots already stored for the target game

    Returns:
        Indices into candidates that duplicate a stored shot
    """
    index: dict[tuple[str, str], set[Fingerprint]] = defaultdict(set)
    for shot in existing:
        print_ = fingerprint(shot)
        index[_coarse_key(print_)].add(print_)

    log.debug(
        f"Starting duplicate detection: {len(candidates)} candidates, "
        f"{len(existing)} stored shots in {len(index)} buckets"
    )

    duplicates: set[int] = set()
    for i, candidate in enumerate(candidates):
        print_ = fingerprint(candidate)
        bucket = index.get(_coarse_key(print_))
        is_match = bucket is not None and print_ in bucket
        if i < SAMPLE_LOG_ROWS:
            log.debug(f"Candidate {i}: fingerprint={print_} match={is_match}")
        if is_match:
            duplicates.add(i)

    log.debug(
        f"Duplicate detection complete: {len(duplicates)} duplicates, "
        f"{len(candidates) - len(duplicates)} unique"
    )
    return duplicates
