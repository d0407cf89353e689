"""JSON file helpers with atomic replace."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

from loguru import logger

# Leaves room for the "_messages.json" suffix under the usual 255-byte limit.
_MAX_NAME_LENGTH = 200


class JsonFile:
    """Static helpers for reading and atomically rewriting JSON documents."""

    @staticmethod
    def read(path: Path, default: Any) -> Any:
        """Load a JSON document, returning ``default`` if absent or unreadable.

        The result must have the same type as ``default``; anything else is
        treated as corrupt.
        """
        if not path.exists():
            return default
        try:
            with path.open(encoding="utf-8") as json_file:
                data = json.load(json_file)
        except (OSError, ValueError) as error:
            logger.warning(f"Unreadable store {path.name}, using empty default: {error}")
            return default
        if not isinstance(data, type(default)):
            logger.warning(f"Store {path.name} has unexpected shape, using empty default")
            return default
        return data

    @staticmethod
    def write_atomic(path: Path, data: Any) -> None:
        """Write JSON to a sibling temp file, then rename it over ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as json_file:
            json.dump(data, json_file, indent=2, ensure_ascii=False)
            json_file.flush()
            os.fsync(json_file.fileno())
        os.replace(tmp, path)

    @staticmethod
    def safe_name(identity: str) -> str:
        """Encode a device identity as a file name component.

        Percent-encoding keeps distinct identities distinct and leaves no
        path separators. Names too long for the filesystem are shortened
        to a prefix plus a digest of the full identity.
        """
        encoded = quote(identity, safe="") or "%"
        if encoded.startswith("."):
            encoded = "%2E" + encoded[1:]
        if len(encoded) > _MAX_NAME_LENGTH:
            digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()
            encoded = f"{encoded[:_MAX_NAME_LENGTH - 65]}~{digest}"
        return encoded
