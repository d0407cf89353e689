"""Configuration package — re-exports for convenience."""

from relay_server.config.loader import ConfigLoader
from relay_server.config.settings import Settings

__all__ = ["ConfigLoader", "Settings"]
