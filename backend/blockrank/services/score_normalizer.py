"""
Score normalizer for per-period match scores.

Supports formats like:
  3               → 1 period, total 3
  "[2,1]"         → 2 periods, total 3 (canonical stored form)
  "2,1" / "2;1"   → legacy delimited variants
  "2 1"           → whitespace-delimited variant
  [2, 1]          → already a sequence
  None / ""       → [0]

Never raises: an unreadable period counts as 0, and a value with no readable
period at all normalizes to a single zero period.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Sequence, Tuple

logger = logging.getLogger(__name__)

_DELIMITERS = re.compile(r"[,;\s]+")
# Leading integer of a period token: "3" -> 3, "3.0" -> 3, "2pk" -> 2
_LEADING_INT = re.compile(r"\s*(-?\d+)")


class ScoreKind(str, Enum):
    ABSENT = "absent"
    INTEGER = "integer"
    SEQUENCE = "sequence"
    JSON_ARRAY = "json_array"
    DELIMITED = "delimited"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class NormalizedScore:
    periods: Tuple[int, ...]
    total: int
    kind: ScoreKind


def _to_period(value: Any) -> int:
    """One period value; unreadable or negative values count as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return 0
        return max(int(value), 0)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return max(int(match.group(1)), 0) if match else 0
    return 0


def _build(periods: Sequence[int], kind: ScoreKind) -> NormalizedScore:
    if not periods:
        periods = [0]
    return NormalizedScore(periods=tuple(periods), total=sum(periods), kind=kind)


def _zero(kind: ScoreKind) -> NormalizedScore:
    return NormalizedScore(periods=(0,), total=0, kind=kind)


def classify_score(raw: Any) -> ScoreKind:
    """Tag a raw score value with the representation it uses."""
    if raw is None:
        return ScoreKind.ABSENT
    if isinstance(raw, bool):
        return ScoreKind.MALFORMED
    if isinstance(raw, int):
        return ScoreKind.INTEGER
    if isinstance(raw, float):
        if math.isnan(raw) or math.isinf(raw) or not raw.is_integer():
            return ScoreKind.MALFORMED
        return ScoreKind.INTEGER
    if isinstance(raw, (list, tuple)):
        return ScoreKind.SEQUENCE
    if isinstance(raw, bytes):
        return classify_score(raw.decode("utf-8", errors="replace"))
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return ScoreKind.ABSENT
        if text.startswith("[") and text.endswith("]"):
            return ScoreKind.JSON_ARRAY
        if len([p for p in _DELIMITERS.split(text) if p]) > 1:
            return ScoreKind.DELIMITED
        if _LEADING_INT.match(text):
            return ScoreKind.INTEGER
        return ScoreKind.MALFORMED
    return ScoreKind.MALFORMED


def normalize_score(raw: Any) -> NormalizedScore:
    """Resolve a raw score into its period sequence and total."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    kind = classify_score(raw)

    if kind == ScoreKind.ABSENT:
        return _zero(kind)

    if kind == ScoreKind.INTEGER:
        return _build([_to_period(raw)], kind)

    if kind == ScoreKind.SEQUENCE:
        return _build([_to_period(v) for v in raw], kind)

    if kind == ScoreKind.JSON_ARRAY:
        try:
            parsed = json.loads(raw.strip())
        except ValueError:
            logger.warning("Malformed score %r: invalid JSON array, using 0", raw)
            return _zero(ScoreKind.MALFORMED)
        if not isinstance(parsed, list):
            logger.warning("Malformed score %r: not a list, using 0", raw)
            return _zero(ScoreKind.MALFORMED)
        return _build([_to_period(v) for v in parsed], kind)

    if kind == ScoreKind.DELIMITED:
        parts = [p for p in _DELIMITERS.split(raw.strip()) if p]
        unreadable = [p for p in parts if not _LEADING_INT.match(p)]
        if unreadable:
            logger.warning("Malformed score %r: period(s) %s counted as 0", raw, unreadable)
        return _build([_to_period(p) for p in parts], kind)

    logger.warning("Malformed score %r (%s), using 0", raw, type(raw).__name__)
    return _zero(ScoreKind.MALFORMED)


def parse_total_score(raw: Any) -> int:
    return normalize_score(raw).total


def format_score_array(scores: Any) -> str:
    """Canonical storage form, e.g. "[2,1]"."""
    periods = normalize_score(scores).periods
    return json.dumps(list(periods), separators=(",", ":"))


def format_score_display(scores: Any, separator: str = "-") -> str:
    """Human display form of the periods, e.g. "2-1"."""
    periods: List[int] = list(normalize_score(scores).periods)
    return separator.join(str(p) for p in periods)
