"""Clock helpers."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], float]

# Largest epoch-millisecond value datetime can still represent (end of year 9999).
MAX_EPOCH_MS = int(datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc).timestamp() * 1000)


class Time:
    """Static helpers for wall-clock timestamps."""

    @staticmethod
    def now() -> float:
        """Current time in epoch seconds."""
        return time.time()

    @staticmethod
    def now_ms() -> int:
        """Current time in epoch milliseconds."""
        return int(time.time() * 1000)

    @staticmethod
    def to_ms(value: object, default: int) -> int:
        """Coerce a device-supplied timestamp to epoch milliseconds.

        Falls back to ``default`` when the value is missing, not numeric,
        or outside the range a datetime can represent.
        """
        if value is None or value == "":
            return default
        try:
            millis = int(float(str(value)))
        except (OverflowError, ValueError):
            return default
        if not 0 <= millis <= MAX_EPOCH_MS:
            return default
        return millis
