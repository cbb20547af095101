#
# src/speclaunch/telemetry/__init__.py
#
"""
Logging and diagnostics sub-package for speclaunch.
"""

from .logger import StructLogger, setup_logging

__all__ = ["StructLogger", "setup_logging"]

# 🔼⚙️
