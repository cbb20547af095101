#
# src/speclaunch/engines/factory.py
#
"""
Factory for creating execution and coverage engine instances.
"""
import structlog

from speclaunch.engines.coverage_engine import CoveragePyEngine
from speclaunch.engines.protocols import CoverageEngine, ExecutionEngine
from speclaunch.engines.pytest_engine import PytestExecutionEngine
from speclaunch.exceptions import ConfigurationError

log = structlog.get_logger("engines.factory")

EXECUTION_ENGINE_MAP = {
    "pytest": PytestExecutionEngine,
}

COVERAGE_ENGINE_MAP = {
    "coverage": CoveragePyEngine,
    "coverage.py": CoveragePyEngine,  # Distribution name alias
}


def _instantiate(kind: str, engine_map: dict[str, type], engine_name: str):
    engine_key = engine_name.lower()
    engine_class = engine_map.get(engine_key)

    if not engine_class:
        log.error(f"Unsupported {kind} engine specified", engine=engine_name)
        raise ConfigurationError(
            f"Unsupported {kind} engine: '{engine_name}'. "
            f"Available engines: {list(engine_map.keys())}"
        )

    log.debug(f"Instantiating {kind} engine", engine=engine_name)
    try:
        return engine_class()
    except Exception as e:
        log.error(f"Failed to instantiate {kind} engine", engine=engine_name, error=str(e))
        raise ConfigurationError(f"Failed to initialize {kind} engine '{engine_name}': {e}") from e


def get_execution_engine(engine_name: str = "pytest") -> ExecutionEngine:
    """
    Factory function to get an instance of an ExecutionEngine.
    """
    return _instantiate("execution", EXECUTION_ENGINE_MAP, engine_name)


def get_coverage_engine(engine_name: str = "coverage") -> CoverageEngine:
    """
    Factory function to get an instance of a CoverageEngine.
    """
    return _instantiate("coverage", COVERAGE_ENGINE_MAP, engine_name)

# 🔼⚙️
