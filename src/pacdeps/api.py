"""Public API: use pacdeps from Python or from other tools."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from functools import partial

from pacdeps.core import pacman
from pacdeps.core.assembler import MetadataMaps, assemble_graph
from pacdeps.core.collector import CollectionResult, collect_edges
from pacdeps.core.config import CollectorConfig
from pacdeps.core.models import (
    CollectionInfo,
    Graph,
    PackageRecord,
    Snapshot,
    load_snapshot,
    save_snapshot,
)
from pacdeps.core.query import (
    Direction,
    PackageKind,
    SubGraph,
    extract_subgraph,
    filter_packages,
    process_broken_dependencies,
)
from pacdeps.core.selection import Selection, expand_selection

logger = logging.getLogger(__name__)

__all__ = [
    "collect_snapshot",
    "load_snapshot",
    "save_snapshot",
    "resolve_graph",
    "get_subgraph",
    "list_packages",
    "format_duration",
]


def format_duration(seconds: float) -> str:
    """Format an elapsed time as '1.234s' or '2m 5.000s'."""
    if seconds >= 60:
        minutes, rest = divmod(seconds, 60)
        return f"{int(minutes)}m {rest:.3f}s"
    return f"{seconds:.3f}s"


@contextmanager
def _phase(title: str) -> Iterator[None]:
    logger.info(title)
    start = time.monotonic()
    yield
    logger.info("→ Completed in %s", format_duration(time.monotonic() - start))


def collect_snapshot(
    selection: Selection | None = None,
    *,
    config: CollectorConfig | None = None,
    rng: random.Random | None = None,
    progress: Callable[[int, int], None] | None = None,
) -> tuple[Snapshot, CollectionResult]:
    """
    Collect a dependency snapshot of the local Arch-based system.

    Args:
        selection: Which packages to cover; defaults to all installed packages.
        config: Jobs, timeout and pactree depth; defaults to CollectorConfig.from_env().
        rng: Random source for random selections (for reproducible draws).
        progress: Optional callback receiving (done, total) during collection.

    Returns:
        The snapshot and the raw collection result (for the failure report).

    Raises:
        PrerequisiteMissing: pacman/pactree absent or not an Arch-based host.
        InvalidArgument, PackageNotFound: the selection cannot be satisfied.
        Both are raised before any per-package work starts.
    """
    selection = selection or Selection()
    config = config or CollectorConfig.from_env()
    timeout = config.timeout

    os_release = pacman.read_os_release()
    pacman.check_distribution(os_release)
    pacman.check_prerequisites()
    host = pacman.host_info(os_release)
    logger.info("OS: %s", host.os)
    logger.info("Hostname: %s", host.hostname)
    logger.info("Shell: %s", host.shell)
    logger.info("Parallel jobs: %d", config.jobs)

    with _phase("Collecting package list"):
        installed = pacman.installed_packages(timeout)
        explicit = pacman.explicit_packages(timeout)
        logger.info("Found %d packages, %d explicitly installed", len(installed), len(explicit))

    with _phase(f"Filtering packages (mode: {selection.mode.value})"):
        chosen = expand_selection(
            selection,
            installed,
            explicit,
            partial(pacman.list_closure, timeout=timeout),
            rng=rng,
        )

    with _phase("Collecting package metadata"):
        metadata = MetadataMaps(
            versions=pacman.package_versions(timeout),
            explicit=frozenset(explicit),
            foreign=frozenset(pacman.foreign_packages(timeout)),
            repositories=pacman.sync_repositories(timeout),
            urls=pacman.package_urls(timeout),
        )

    with _phase(f"Precomputing dependency trees (parallel: {config.jobs} jobs)"):

        def list_tree(package: str, reverse: bool) -> str:
            return pacman.list_tree(package, reverse, depth=config.edge_depth, timeout=timeout)

        result = collect_edges(chosen.packages, list_tree, jobs=config.jobs, progress=progress)
        if result.ok:
            logger.info("All packages processed successfully")

    graph = assemble_graph(chosen.packages, metadata, result.edges)
    info = CollectionInfo(
        os=host.os,
        hostname=host.hostname,
        timestamp=host.timestamp,
        shell=host.shell,
        filter=selection.to_filter_dict(chosen.seeds),
    )
    return Snapshot(info=info, graph=graph), result


def resolve_graph(graph: Mapping[str, PackageRecord]) -> Graph:
    """Graph including placeholder records for missing dependencies."""
    return Graph(process_broken_dependencies(graph))


def get_subgraph(
    graph: Mapping[str, PackageRecord],
    package: str,
    direction: Direction | str = Direction.FORWARD,
) -> SubGraph:
    """Dependency sub-graph around a package, with missing dependencies resolved."""
    return extract_subgraph(resolve_graph(graph), package, Direction(direction))


def list_packages(
    graph: Mapping[str, PackageRecord],
    *,
    query: str = "",
    kind: PackageKind | str = PackageKind.ALL,
) -> list[PackageRecord]:
    """Search and filter packages (missing dependencies included), sorted by name."""
    return filter_packages(process_broken_dependencies(graph), query, PackageKind(kind))
