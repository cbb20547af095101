#
# src/speclaunch/runtime/__init__.py
#
"""
Run controller sub-package for speclaunch.
"""
from .launcher import EXIT_FAILURE, EXIT_SUCCESS, LaunchResult, Launcher

__all__ = ["EXIT_FAILURE", "EXIT_SUCCESS", "LaunchResult", "Launcher"]

# 🔼⚙️
