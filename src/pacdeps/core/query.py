"""Read-only queries over an assembled Graph.

Every function here is pure: it never modifies the records or graph passed
in and returns new lists, sets or records.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum

from pacdeps.core.models import PackageRecord

# Version reported for placeholder records of missing packages.
MISSING_VERSION = "missing"


class Direction(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"
    BOTH = "both"


class PackageKind(str, Enum):
    ALL = "all"
    EXPLICIT = "explicit"
    DEPENDENCY = "dependency"
    ORPHAN = "orphan"
    BROKEN = "broken"


@dataclass(frozen=True)
class Link:
    """A directed edge source -> target ("source depends on target")."""

    source: str
    target: str
    type: str

    def to_dict(self) -> dict:
        return {"source": self.source, "target": self.target, "type": self.type}


@dataclass(frozen=True)
class SubGraph:
    """Nodes and links around a focal package."""

    nodes: list[PackageRecord] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)


@dataclass(frozen=True)
class PackageCounts:
    explicit: int = 0
    dependency: int = 0
    broken: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "explicit": self.explicit,
            "dependency": self.dependency,
            "broken": self.broken,
            "total": self.total,
        }


LinkLabeler = Callable[["PackageRecord | None", "PackageRecord | None"], str]


def default_link_type(source: PackageRecord | None, target: PackageRecord | None) -> str:
    """Classify a link from its two endpoint records."""
    if target is not None and target.broken:
        return "broken"
    if source is not None and source.explicit:
        return "explicit"
    return "dependency"


def process_broken_dependencies(graph: Mapping[str, PackageRecord]) -> list[PackageRecord]:
    """
    Add placeholder records for dependencies that are not in the graph.

    Every depends_on / optional_depends_on target missing from the graph gets
    exactly one placeholder (broken=True, version "missing"), appended after
    the real records. Real records keep their depends_on edges but drop
    required_by names that are not themselves nodes.
    """
    if not graph:
        return []
    cleaned: list[PackageRecord] = []
    missing: dict[str, None] = {}
    for record in graph.values():
        kept = tuple(name for name in record.required_by if name in graph)
        cleaned.append(record if kept == record.required_by else replace(record, required_by=kept))
        for dep in (*record.depends_on, *record.optional_depends_on):
            if dep not in graph:
                missing.setdefault(dep)
    return cleaned + [_placeholder(name) for name in missing]


def _placeholder(name: str) -> PackageRecord:
    return PackageRecord(name=name, version=MISSING_VERSION, broken=True)


def is_orphaned(record: PackageRecord) -> bool:
    """A dependency-installed package that nothing requires."""
    return not record.explicit and not record.broken and not record.required_by


def find_orphans(records: Iterable[PackageRecord]) -> list[PackageRecord]:
    return sort_by_name(r for r in records if is_orphaned(r))


def transitive_tree(
    graph: Mapping[str, PackageRecord],
    start: str,
    direction: Direction = Direction.FORWARD,
) -> set[str]:
    """
    All names reachable from start along depends_on (forward) or required_by
    (reverse), including start itself. Names with no record are included but
    not expanded.
    """
    if direction is Direction.BOTH:
        return transitive_tree(graph, start, Direction.FORWARD) | transitive_tree(
            graph, start, Direction.REVERSE
        )
    visited: set[str] = set()
    stack = [start]
    while stack:
        name = stack.pop()
        if name in visited:
            continue
        visited.add(name)
        record = graph.get(name)
        if record is None:
            continue
        neighbours = record.depends_on if direction is Direction.FORWARD else record.required_by
        stack.extend(n for n in neighbours if n not in visited)
    return visited


def extract_subgraph(
    graph: Mapping[str, PackageRecord],
    focal: str,
    direction: Direction = Direction.FORWARD,
    *,
    link_type: LinkLabeler = default_link_type,
) -> SubGraph:
    """
    Nodes and links of the dependency tree around one package.

    Forward links come from each node's depends_on as (node, dep); reverse
    links from required_by as (parent, node). A link is emitted once per
    ordered (source, target) pair. Reached names without a record become
    broken placeholder nodes, so every link endpoint is in nodes. An unknown
    focal name gives an empty sub-graph.
    """
    if focal not in graph:
        return SubGraph()
    names = transitive_tree(graph, focal, direction)
    nodes = sort_by_name(graph.get(n) or _placeholder(n) for n in names)
    records = {node.name: node for node in nodes}
    forward = direction in (Direction.FORWARD, Direction.BOTH)
    reverse = direction in (Direction.REVERSE, Direction.BOTH)
    seen: set[tuple[str, str]] = set()
    links: list[Link] = []

    def add(source: str, target: str) -> None:
        if (source, target) in seen:
            return
        seen.add((source, target))
        links.append(Link(source, target, link_type(records[source], records[target])))

    for node in nodes:
        if forward:
            for dep in node.depends_on:
                if dep in names:
                    add(node.name, dep)
        if reverse:
            for parent in node.required_by:
                if parent in names:
                    add(parent, node.name)
    return SubGraph(nodes=nodes, links=links)


def sort_by_name(records: Iterable[PackageRecord]) -> list[PackageRecord]:
    """Stable alphabetical sort by package name."""
    return sorted(records, key=lambda r: r.name)


def count_packages(records: Iterable[PackageRecord]) -> PackageCounts:
    """Explicit / dependency / broken counts; dependency = total - explicit - broken."""
    items = list(records)
    explicit = sum(1 for r in items if r.explicit and not r.broken)
    broken = sum(1 for r in items if r.broken)
    return PackageCounts(
        explicit=explicit,
        dependency=len(items) - explicit - broken,
        broken=broken,
        total=len(items),
    )


def matches_kind(record: PackageRecord, kind: PackageKind) -> bool:
    if kind is PackageKind.EXPLICIT:
        return record.explicit and not record.broken
    if kind is PackageKind.DEPENDENCY:
        return not record.explicit and not record.broken
    if kind is PackageKind.ORPHAN:
        return is_orphaned(record)
    if kind is PackageKind.BROKEN:
        return record.broken
    return True


def filter_packages(
    records: Iterable[PackageRecord],
    query: str = "",
    kind: PackageKind = PackageKind.ALL,
) -> list[PackageRecord]:
    """Records whose name contains query (case-insensitive) and match kind, sorted."""
    needle = query.strip().lower()
    return sort_by_name(
        r for r in records if needle in r.name.lower() and matches_kind(r, kind)
    )


def find_asymmetric_edges(graph: Mapping[str, PackageRecord]) -> list[tuple[str, str]]:
    """
    Mandatory (a, b) edges between real packages where a depends on b but b
    does not list a in required_by.
    """
    pairs: list[tuple[str, str]] = []
    for record in graph.values():
        if record.broken:
            continue
        for dep in record.depends_on:
            target = graph.get(dep)
            if target is None or target.broken:
                continue
            if record.name not in target.required_by:
                pairs.append((record.name, dep))
    return pairs
