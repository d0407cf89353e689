"""Phone number normalization."""

from __future__ import annotations

import re

_NOT_PHONE_CHARS = re.compile(r"[^0-9+]")
_PHONE_PATTERN = re.compile(r"^\+?[0-9]{8,15}$")


class PhoneNumber:
    """Static helpers for operator-entered destination numbers."""

    @staticmethod
    def sanitize(raw: str | None) -> str:
        """Strip everything but digits and ``+``; return "" if not 8-15 digits."""
        if not raw:
            return ""
        cleaned = _NOT_PHONE_CHARS.sub("", raw)
        if not _PHONE_PATTERN.match(cleaned):
            return ""
        return cleaned
