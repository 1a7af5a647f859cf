"""Core library: pactree parsing, collection, selection, graph assembly and queries."""

from pacdeps.core.assembler import MetadataMaps, PackageMetadata, assemble_graph
from pacdeps.core.collector import CollectionFailure, CollectionResult, PackageEdges, collect_edges
from pacdeps.core.errors import (
    InvalidArgument,
    PackageNotFound,
    PacdepsError,
    PrerequisiteMissing,
    ToolInvocationFailure,
)
from pacdeps.core.models import (
    CollectionInfo,
    Graph,
    PackageRecord,
    Snapshot,
    load_snapshot,
    save_snapshot,
)
from pacdeps.core.parser import DependencyListing, classify_line, parse_listing
from pacdeps.core.query import (
    Direction,
    PackageKind,
    count_packages,
    extract_subgraph,
    filter_packages,
    find_orphans,
    process_broken_dependencies,
    sort_by_name,
    transitive_tree,
)
from pacdeps.core.selection import Selection, SelectionMode, expand_selection

__all__ = [
    "MetadataMaps",
    "PackageMetadata",
    "assemble_graph",
    "CollectionFailure",
    "CollectionResult",
    "PackageEdges",
    "collect_edges",
    "InvalidArgument",
    "PackageNotFound",
    "PacdepsError",
    "PrerequisiteMissing",
    "ToolInvocationFailure",
    "CollectionInfo",
    "Graph",
    "PackageRecord",
    "Snapshot",
    "load_snapshot",
    "save_snapshot",
    "DependencyListing",
    "classify_line",
    "parse_listing",
    "Direction",
    "PackageKind",
    "count_packages",
    "extract_subgraph",
    "filter_packages",
    "find_orphans",
    "process_broken_dependencies",
    "sort_by_name",
    "transitive_tree",
    "Selection",
    "SelectionMode",
    "expand_selection",
]
