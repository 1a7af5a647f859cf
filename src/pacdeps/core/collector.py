"""Collect per-package dependency edges concurrently."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from pacdeps.core.errors import ToolInvocationFailure
from pacdeps.core.parser import DependencyListing, parse_listing

logger = logging.getLogger(__name__)

# list_tree(package, reverse) -> raw pactree text; raises ToolInvocationFailure.
TreeLister = Callable[[str, bool], str]

PHASE_FORWARD = "forward"
PHASE_REVERSE = "reverse"


@dataclass(frozen=True)
class PackageEdges:
    """The four edge sets collected for one package."""

    depends_on: tuple[str, ...] = ()
    required_by: tuple[str, ...] = ()
    optional_depends_on: tuple[str, ...] = ()
    optional_required_by: tuple[str, ...] = ()


@dataclass(frozen=True)
class CollectionFailure:
    """A tool call that failed for one package and direction."""

    package: str
    phase: str
    reason: str

    def __str__(self) -> str:
        return f"Failed: {self.package} ({self.phase} dep tree: {self.reason})"


@dataclass
class CollectionResult:
    """Edges keyed by package name plus the failures met along the way."""

    edges: dict[str, PackageEdges] = field(default_factory=dict)
    failures: list[CollectionFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def report(self) -> list[str]:
        """Lines of the end-of-run failure report, sorted by package."""
        ordered = sorted(self.failures, key=lambda f: (f.package, f.phase))
        return [str(f) for f in ordered]


class _FailureLog:
    """Append-only failure list shared by worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[CollectionFailure] = []

    def append(self, failure: CollectionFailure) -> None:
        with self._lock:
            self._items.append(failure)

    def items(self) -> list[CollectionFailure]:
        with self._lock:
            return list(self._items)


def _listing(
    package: str,
    reverse: bool,
    list_tree: TreeLister,
    failures: _FailureLog,
) -> DependencyListing:
    phase = PHASE_REVERSE if reverse else PHASE_FORWARD
    try:
        text = list_tree(package, reverse)
    except ToolInvocationFailure as e:
        logger.debug("Failed: %s (%s dep tree: %s)", package, phase, e.reason)
        failures.append(CollectionFailure(package=package, phase=phase, reason=e.reason))
        return DependencyListing()
    return parse_listing(text, package)


def collect_package(package: str, list_tree: TreeLister, failures: _FailureLog) -> PackageEdges:
    """Collect forward and reverse edges for one package."""
    forward = _listing(package, False, list_tree, failures)
    reverse = _listing(package, True, list_tree, failures)
    return PackageEdges(
        depends_on=forward.mandatory,
        required_by=reverse.mandatory,
        optional_depends_on=forward.optional,
        optional_required_by=reverse.optional,
    )


def collect_edges(
    packages: Iterable[str],
    list_tree: TreeLister,
    *,
    jobs: int | None = None,
    progress: Callable[[int, int], None] | None = None,
) -> CollectionResult:
    """
    Run the dependency listing for every package on a bounded thread pool.

    Args:
        packages: Package names to process.
        list_tree: Callable returning raw pactree text for (package, reverse).
        jobs: Maximum concurrent workers; defaults to the host core count.
        progress: Optional callback called with (done, total) after each package.

    Returns:
        CollectionResult with one PackageEdges per package. A failed tool call
        leaves that direction empty and is recorded in failures; it never
        aborts the run. Interrupting the run cancels all pending work.
    """
    names = list(dict.fromkeys(packages))
    workers = max(1, jobs or os.cpu_count() or 1)
    failures = _FailureLog()
    edges: dict[str, PackageEdges] = {}
    if not names:
        return CollectionResult()

    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        future_to_name = {
            executor.submit(collect_package, name, list_tree, failures): name for name in names
        }
        for done, future in enumerate(as_completed(future_to_name), start=1):
            edges[future_to_name[future]] = future.result()
            if progress is not None:
                progress(done, len(names))
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return CollectionResult(edges=edges, failures=failures.items())
