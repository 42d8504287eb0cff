"""Core: config, exception handlers, lifespan, and the reset session store.

Single place for settings and application wiring.
"""

from app.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
