"""Health resource — protocol-agnostic health check logic."""

from __future__ import annotations

from relay_server.services.registry_service import DeviceRegistry


class HealthResource:
    """Health check operations."""

    def __init__(self, registry: DeviceRegistry) -> None:
        self._registry = registry

    def check(self) -> dict[str, str | int]:
        """Return current server health status and registry size."""
        return {"status": "ok", "devices": len(self._registry)}
