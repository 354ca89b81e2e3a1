"""Configuration module for sshmux.

- Config: Settings plus the derived on-disk layout
- Settings: Environment variable configuration
"""

from sshmux.config.main import Config
from sshmux.config.settings import Settings

__all__ = ["Config", "Settings"]
