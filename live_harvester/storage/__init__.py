"""
Storage Layer.

This package handles data persisted outside a cycle: the configuration file
and the continuity token.
"""

from .config_manager import ConfigManager
from .token_store import ContinuityStore

__all__ = ["ConfigManager", "ContinuityStore"]
