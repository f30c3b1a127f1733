"""Configuration for rotalog.

Exposes the process-wide `settings` instance loaded from the environment.
"""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
