"""Latest form submission per device, stored verbatim."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from relay_server.utils.files import JsonFile


class FormStore:
    """Overwrites ``<root>/<identity>_form.json`` with each submission."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._lock = asyncio.Lock()

    async def save(self, identity: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            await asyncio.to_thread(JsonFile.write_atomic, self._path(identity), fields)

    def _path(self, identity: str) -> Path:
        return self._root / f"{JsonFile.safe_name(identity)}_form.json"
