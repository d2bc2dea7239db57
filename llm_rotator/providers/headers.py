# llm_rotator/providers/headers.py
"""
Rate-limit header parsing.

This is the only place that reads raw transport headers. Each provider's
parser turns its header dialect into a RateSnapshot whose reset fields are
absolute instants (``now + seconds``), so everything downstream compares
against a single clock.

Groq
----
  x-ratelimit-limit-requests / x-ratelimit-remaining-requests   (per day)
  x-ratelimit-limit-tokens   / x-ratelimit-remaining-tokens     (per minute)
  x-ratelimit-reset-requests / x-ratelimit-reset-tokens         ("2m59.56s", "7.66s", "1h", "250ms")
  retry-after                                                   (seconds, only on 429)

Cerebras
--------
  x-ratelimit-limit-requests-day   / x-ratelimit-remaining-requests-day
  x-ratelimit-limit-tokens-minute  / x-ratelimit-remaining-tokens-minute
  x-ratelimit-reset-requests-day   / x-ratelimit-reset-tokens-minute   (seconds)

Malformed values are skipped one field at a time; a header set with no
recognised values yields None.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import Callable

from ..state.budget import RateSnapshot

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str) -> float:
    """
    Parse a Go-style duration ("12m3.5s", "4s", "1h", "250ms") into seconds.

    A bare number is taken as seconds. Raises ValueError if nothing parses.
    """
    value = value.strip()
    try:
        return float(value)
    except ValueError:
        pass
    matches = _DURATION_RE.findall(value)
    if not matches:
        raise ValueError(f"unrecognised duration: {value!r}")
    return sum(float(amount) * _UNIT_SECONDS[unit] for amount, unit in matches)


def _lower(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(k).lower(): str(v) for k, v in headers.items()}


def _int(h: dict[str, str], key: str) -> int | None:
    raw = h.get(key)
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
        if not math.isfinite(value):
            raise ValueError(raw)
        return int(value)
    except (ValueError, OverflowError):
        logger.debug("Skipping malformed header %s=%r", key, raw)
        return None


def _instant(h: dict[str, str], key: str, now: float, parse: Callable[[str], float]) -> float | None:
    raw = h.get(key)
    if raw is None or raw == "":
        return None
    try:
        seconds = parse(raw)
        if not math.isfinite(seconds):
            raise ValueError(raw)
        return now + seconds
    except (ValueError, OverflowError):
        logger.debug("Skipping malformed header %s=%r", key, raw)
        return None


def parse_groq_headers(headers: Mapping[str, str], now: float) -> RateSnapshot | None:
    h = _lower(headers)
    snapshot = RateSnapshot(
        remaining_requests=_int(h, "x-ratelimit-remaining-requests"),
        remaining_tokens=_int(h, "x-ratelimit-remaining-tokens"),
        limit_requests=_int(h, "x-ratelimit-limit-requests"),
        limit_tokens=_int(h, "x-ratelimit-limit-tokens"),
        reset_requests_at=_instant(h, "x-ratelimit-reset-requests", now, parse_duration),
        reset_tokens_at=_instant(h, "x-ratelimit-reset-tokens", now, parse_duration),
        retry_after_until=_instant(h, "retry-after", now, float),
    )
    return None if snapshot.is_empty() else snapshot


def parse_cerebras_headers(headers: Mapping[str, str], now: float) -> RateSnapshot | None:
    h = _lower(headers)
    snapshot = RateSnapshot(
        remaining_requests=_int(h, "x-ratelimit-remaining-requests-day"),
        remaining_tokens=_int(h, "x-ratelimit-remaining-tokens-minute"),
        limit_requests=_int(h, "x-ratelimit-limit-requests-day"),
        limit_tokens=_int(h, "x-ratelimit-limit-tokens-minute"),
        reset_requests_at=_instant(h, "x-ratelimit-reset-requests-day", now, float),
        reset_tokens_at=_instant(h, "x-ratelimit-reset-tokens-minute", now, float),
        retry_after_until=_instant(h, "retry-after", now, float),
    )
    return None if snapshot.is_empty() else snapshot


_PARSERS: dict[str, Callable[[Mapping[str, str], float], RateSnapshot | None]] = {
    "groq": parse_groq_headers,
    "cerebras": parse_cerebras_headers,
}


def parse_snapshot(provider: str, headers: Mapping[str, str], now: float) -> RateSnapshot | None:
    """Normalize *provider*'s rate-limit headers into a RateSnapshot (or None)."""
    parser = _PARSERS.get(provider)
    if parser is None:
        logger.warning("No rate-limit header parser for provider %r", provider)
        return None
    return parser(headers, now)
