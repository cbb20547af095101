#
# src/speclaunch/engines/coverage_engine.py
#
"""
Coverage engine backed by coverage.py.
"""
import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import structlog
from coverage import Coverage
from coverage.exceptions import CoverageException

from speclaunch.engines.coverage_session import CoverageSession
from speclaunch.exceptions import CoverageEngineError

log = structlog.get_logger("engines.coverage")

SUMMARY_FILE_NAME = "coverage-summary.txt"
DATA_FILE_NAME = "coverage.json"


class CoveragePyEngine:
    """
    Implements the CoverageEngine protocol with an in-process `coverage.Coverage`.

    The Coverage object belongs to this engine; measured data is copied into
    the session when collection stops.
    """
    def __init__(self) -> None:
        self._coverage: Coverage | None = None

    async def start(self, session: CoverageSession) -> None:
        instrumentation = session.options.get("instrumentation") or {}
        self._coverage = Coverage(
            data_file=None,
            source=[str(instrumentation.get("root") or session.root)],
            omit=list(instrumentation.get("excludes") or session.excludes),
            branch=bool(session.options.get("branch", False)),
        )
        try:
            self._coverage.start()
        except CoverageException as e:
            self._coverage = None
            raise CoverageEngineError(f"Failed to start coverage: {e}") from e
        session.active = True
        log.info("Coverage collection started", root=str(session.root), emoji_key="coverage")

    async def stop(self, session: CoverageSession) -> None:
        if self._coverage is None or not session.active:
            return
        self._coverage.stop()
        session.active = False

        data = self._coverage.get_data()
        for file_path in data.measured_files():
            session.record(file_path, data.lines(file_path) or ())
        log.info(
            "Coverage collection stopped",
            files=len(session.measured_files),
            executed_lines=session.total_executed_lines,
            emoji_key="coverage",
        )

    async def write_reports(self, session: CoverageSession, report_dir: Path) -> None:
        if self._coverage is None:
            raise CoverageEngineError("Coverage was never started; nothing to report")
        coverage = self._coverage

        writers: dict[str, Callable[[], object]] = {
            "lcov": lambda: coverage.lcov_report(outfile=str(report_dir / "lcov.info")),
            "html": lambda: coverage.html_report(directory=str(report_dir / "html")),
            "xml": lambda: coverage.xml_report(outfile=str(report_dir / "coverage.xml")),
        }

        def _write() -> None:
            with (report_dir / SUMMARY_FILE_NAME).open("w", encoding="utf-8") as summary:
                coverage.report(file=summary)
            (report_dir / DATA_FILE_NAME).write_text(
                json.dumps(session.as_dict(), indent=2, sort_keys=True), encoding="utf-8"
            )
            for report_name in session.options.get("reports") or ():
                writer = writers.get(report_name)
                if writer is None:
                    log.warning("Unknown coverage report type", report=report_name, emoji_key="coverage")
                    continue
                writer()

        try:
            await asyncio.to_thread(_write)
        except (CoverageException, OSError) as e:
            raise CoverageEngineError(f"Failed to write coverage reports: {e}") from e
        log.info("Coverage reports written", report_dir=str(report_dir), emoji_key="coverage")

# 🔼⚙️
