"""Protocol layer — Duration and byte-size tokens.

Unparsable numbers yield 0 instead of raising so callers can reject a
non-positive value with their own message.
"""

from __future__ import annotations

_MS_PER_UNIT = {"ms": 1, "s": 1000, "m": 60_000, "h": 3_600_000}


def parse_duration_ms(token: str) -> int:
    """Parse ``200ms``, ``5s``, ``2m`` or a bare number of seconds."""
    lowered = token.strip().lower()
    if not lowered:
        return 0
    for suffix in ("ms", "s", "m"):
        if lowered.endswith(suffix) and len(lowered) > len(suffix):
            return _to_int(lowered[: -len(suffix)]) * _MS_PER_UNIT[suffix]
    return _to_int(lowered) * 1000


def parse_wait_ms(number: str, unit: str | None) -> int:
    """Parse the number/unit pair of a ``wait`` trigger (default unit: seconds)."""
    key = (unit or "s").lower()
    if key.startswith("sec"):
        key = "s"
    elif key.startswith("min"):
        key = "m"
    elif key.startswith(("hour", "hr")):
        key = "h"
    return _to_int(number) * _MS_PER_UNIT.get(key, 1000)


def parse_bytes(token: str) -> int:
    """Parse a byte count with an optional ``K`` (×1024) or ``M`` (×1024²) suffix."""
    text = token.strip()
    if not text:
        return 0
    last = text[-1].lower()
    if last == "k":
        return _to_int(text[:-1]) * 1024
    if last == "m":
        return _to_int(text[:-1]) * 1024 * 1024
    return _to_int(text)


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0
