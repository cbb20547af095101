# src/speclaunch/telemetry/logger/__init__.py

from .base import StructLogger, setup_logging
from .processors import LOG_EMOJIS

__all__ = ["LOG_EMOJIS", "StructLogger", "setup_logging"]
