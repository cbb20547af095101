# src/speclaunch/cli/__init__.py
