"""pacdeps: collect and explore Arch package dependency graphs (library, CLI, TUI, API)."""

from importlib.metadata import version, PackageNotFoundError

from pacdeps.api import (
    collect_snapshot,
    get_subgraph,
    list_packages,
    load_snapshot,
    resolve_graph,
    save_snapshot,
)
from pacdeps.core.models import Graph, PackageRecord, Snapshot
from pacdeps.core.query import Direction, PackageKind
from pacdeps.core.selection import Selection, SelectionMode

__all__ = [
    "collect_snapshot",
    "get_subgraph",
    "list_packages",
    "load_snapshot",
    "resolve_graph",
    "save_snapshot",
    "Graph",
    "PackageRecord",
    "Snapshot",
    "Direction",
    "PackageKind",
    "Selection",
    "SelectionMode",
    "__version__",
]

try:
    __version__ = version("pacdeps")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
