# src/speclaunch/filters.py

"""
Spec file filter chain.

A filter decides, per spec file path, whether the file must be ignored.
User supplied values (literal strings, compiled patterns, callables) are
normalized once into `SpecFileFilter` objects that share a single async
interface returning a `FilterDecision`.
"""

import asyncio
import inspect
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, TypeAlias, TypeVar

import attrs
import structlog

from speclaunch.exceptions import ConfigurationError, SpecFileFilterError
from speclaunch.telemetry import StructLogger

log: StructLogger = structlog.get_logger("filters")

# Maximum number of files, and of filters per file, evaluated at once.
MAX_CONCURRENCY = 20

T = TypeVar("T")
R = TypeVar("R")


@attrs.define(frozen=True, slots=True)
class FilterDecision:
    """`ignore` is True to drop the file, False to keep it, None for no opinion."""

    ignore: bool | None = None


NO_OPINION = FilterDecision()


@attrs.define(frozen=True, slots=True)
class LiteralFilter:
    """A string compiled to a regular expression; ignores matching paths."""

    text: str
    pattern: re.Pattern[str] = attrs.field(init=False)

    def __attrs_post_init__(self) -> None:
        try:
            compiled = re.compile(self.text)
        except re.error as e:
            raise ConfigurationError(
                f"Spec file filter {self.text!r} is not a valid pattern", details=e
            ) from e
        object.__setattr__(self, "pattern", compiled)

    async def __call__(self, file_path: str) -> FilterDecision:
        return FilterDecision(ignore=self.pattern.search(file_path) is not None)


@attrs.define(frozen=True, slots=True)
class PatternFilter:
    """A compiled regular expression; ignores matching paths."""

    pattern: re.Pattern[str]

    async def __call__(self, file_path: str) -> FilterDecision:
        return FilterDecision(ignore=self.pattern.search(file_path) is not None)


@attrs.define(frozen=True, slots=True)
class PredicateFilter:
    """A user callable, sync or async, used verbatim."""

    predicate: Callable[[str], Any]

    async def __call__(self, file_path: str) -> FilterDecision:
        result = self.predicate(file_path)
        if inspect.isawaitable(result):
            result = await result
        return coerce_decision(result)


SpecFileFilter: TypeAlias = LiteralFilter | PatternFilter | PredicateFilter
FilterValue: TypeAlias = str | re.Pattern[str] | Callable[[str], Any]


def coerce_decision(result: Any) -> FilterDecision:
    """Turns whatever a predicate returned into a FilterDecision."""
    if isinstance(result, FilterDecision):
        return result
    if isinstance(result, bool):
        return FilterDecision(ignore=result)
    if isinstance(result, Mapping):
        ignore = result.get("ignore")
    else:
        ignore = getattr(result, "ignore", None)
    return FilterDecision(ignore=ignore) if isinstance(ignore, bool) else NO_OPINION


def normalize_filter(value: FilterValue | SpecFileFilter) -> SpecFileFilter:
    """Normalizes one user supplied filter."""
    if isinstance(value, LiteralFilter | PatternFilter | PredicateFilter):
        return value
    if isinstance(value, str):
        return LiteralFilter(value)
    if isinstance(value, re.Pattern):
        return PatternFilter(value)
    if callable(value):
        return PredicateFilter(value)
    raise ConfigurationError(
        f"Unsupported spec file filter type: {type(value).__name__}",
        path="test.spec_file_filters",
    )


def normalize_filters(values: Iterable[FilterValue | SpecFileFilter] | None) -> tuple[SpecFileFilter, ...]:
    return tuple(normalize_filter(value) for value in values or ())


async def gather_bounded(
    items: Sequence[T],
    func: Callable[[T], Awaitable[R]],
    limit: int = MAX_CONCURRENCY,
) -> list[R]:
    """
    Runs `func` over `items` with at most `limit` calls in flight.

    Results keep the order of `items`. The first failure cancels the calls
    still pending and is re-raised.
    """
    semaphore = asyncio.Semaphore(limit)

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    tasks = [asyncio.ensure_future(_run(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def should_keep(file_path: str, filters: Sequence[SpecFileFilter]) -> bool:
    """True unless at least one filter asks to ignore the file."""

    async def _evaluate(indexed: tuple[int, SpecFileFilter]) -> FilterDecision:
        index, spec_filter = indexed
        try:
            return await spec_filter(file_path)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error(
                "Spec file filter failed",
                filter_index=index,
                file_path=file_path,
                error=str(e),
                exc_info=True,
                emoji_key="filter",
            )
            raise SpecFileFilterError(index, file_path, e) from e

    decisions = await gather_bounded(list(enumerate(filters)), _evaluate)
    return not any(decision.ignore is True for decision in decisions)


async def filter_spec_files(
    file_paths: Sequence[str],
    filters: Sequence[SpecFileFilter],
) -> list[str]:
    """Returns the files to keep, in input order."""
    if not filters:
        return list(file_paths)

    async def _check(file_path: str) -> bool:
        return await should_keep(file_path, filters)

    keep = await gather_bounded(list(file_paths), _check)
    kept = [file_path for file_path, keep_it in zip(file_paths, keep, strict=True) if keep_it]
    log.debug(
        "Filtered spec files",
        total=len(file_paths),
        kept=len(kept),
        filters=len(filters),
        emoji_key="filter",
    )
    return kept

# 🔼⚙️
