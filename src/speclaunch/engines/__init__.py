#
# src/speclaunch/engines/__init__.py
#
"""
Collaborators driven by the launcher: test execution and coverage engines.
"""
from .coverage_engine import CoveragePyEngine
from .coverage_session import CoverageSession
from .factory import get_coverage_engine, get_execution_engine
from .protocols import CompletionCallback, CoverageEngine, ExecutionEngine
from .pytest_engine import PytestExecutionEngine

__all__ = [
    "CompletionCallback",
    "CoverageEngine",
    "CoveragePyEngine",
    "CoverageSession",
    "ExecutionEngine",
    "PytestExecutionEngine",
    "get_coverage_engine",
    "get_execution_engine",
]

# 🔼⚙️
