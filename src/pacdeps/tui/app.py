"""Textual TUI for exploring a pacdeps snapshot."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, LoadingIndicator, OptionList, Static, Tree
from textual.widgets.option_list import Option
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from pacdeps.api import resolve_graph
from pacdeps.core.config import DEFAULT_OUTPUT_DIR
from pacdeps.core.models import Graph, PackageRecord, Snapshot, load_snapshot
from pacdeps.core.query import (
    Direction,
    PackageKind,
    count_packages,
    filter_packages,
    is_orphaned,
    transitive_tree,
)

# Welcome banner: PACDEPS (all lines must be same length for proper centering)
WELCOME_BANNER = """\
[bold cyan]
██████╗  █████╗  ██████╗██████╗ ███████╗██████╗ ███████╗
██╔══██╗██╔══██╗██╔════╝██╔══██╗██╔════╝██╔══██╗██╔════╝
██████╔╝███████║██║     ██║  ██║█████╗  ██████╔╝███████╗
██╔═══╝ ██╔══██║██║     ██║  ██║██╔══╝  ██╔═══╝ ╚════██║
██║     ██║  ██║╚██████╗██████╔╝███████╗██║     ███████║
╚═╝     ╚═╝  ╚═╝ ╚═════╝╚═════╝ ╚══════╝╚═╝     ╚══════╝
[/bold cyan]"""

WELCOME_DESC = """[dim]Explore the dependency graph of an Arch Linux system.
Browse explicit, dependency, orphaned and missing packages.
Follow what a package needs, what needs it, or both.[/]"""

# Limits to avoid huge trees and crashes
MAX_PACKAGES_PER_SECTION = 200
MAX_SEARCH_RESULTS = 50
MAX_TREE_DEPTH = 8
MAX_TREE_NODES = 500
EXPAND_DEPTH_DEFAULT = 2

# Colors: package kinds and tree
COLOR_EXPLICIT = "bold green"
COLOR_DEPENDENCY = "white"
COLOR_ORPHAN = "bold yellow"
COLOR_BROKEN = "bold red"
COLOR_HEADER = "bold magenta"
COLOR_PKG = "white"
COLOR_STATS = "cyan"
COLOR_PATH = "dim"

SECTIONS = (
    (PackageKind.EXPLICIT, "Explicit", COLOR_EXPLICIT),
    (PackageKind.DEPENDENCY, "Dependency", COLOR_DEPENDENCY),
    (PackageKind.ORPHAN, "Orphaned", COLOR_ORPHAN),
    (PackageKind.BROKEN, "Missing", COLOR_BROKEN),
)

_NEXT_DIRECTION = {
    Direction.FORWARD: Direction.REVERSE,
    Direction.REVERSE: Direction.BOTH,
    Direction.BOTH: Direction.FORWARD,
}


def find_latest_snapshot(directory: Path = DEFAULT_OUTPUT_DIR) -> Path | None:
    """Most recently modified *.json file in directory, if any."""
    try:
        candidates = [p for p in Path(directory).glob("*.json") if p.is_file()]
    except OSError:
        return None
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def next_direction(direction: Direction) -> Direction:
    """Cycle forward -> reverse -> both -> forward."""
    return _NEXT_DIRECTION[direction]


def _kind_color(record: PackageRecord) -> str:
    if record.broken:
        return COLOR_BROKEN
    if record.explicit:
        return COLOR_EXPLICIT
    if is_orphaned(record):
        return COLOR_ORPHAN
    return COLOR_DEPENDENCY


def _kind_label(record: PackageRecord) -> str:
    if record.broken:
        return "missing"
    if record.explicit:
        return "explicit"
    if is_orphaned(record):
        return "orphaned dependency"
    return "dependency"


def _record_stats(graph: Mapping[str, PackageRecord], record: PackageRecord) -> tuple[int, int, int, int]:
    """Return (direct deps, direct dependents, total deps, total dependents) for a record."""
    forward = transitive_tree(graph, record.name, Direction.FORWARD)
    reverse = transitive_tree(graph, record.name, Direction.REVERSE)
    return len(record.depends_on), len(record.required_by), len(forward) - 1, len(reverse) - 1


def _tree_label(record: PackageRecord) -> str:
    if record.broken:
        return f"[{COLOR_BROKEN}]{record.name}[/] [dim](missing)[/]"
    return f"[{_kind_color(record)}]{record.name}[/] [dim]{record.version}[/]"


def _populate_textual_tree(
    tn: TreeNode,
    graph: Mapping[str, PackageRecord],
    record: PackageRecord,
    direction: Direction,
    *,
    depth: int = 0,
    max_depth: int = MAX_TREE_DEPTH,
    max_nodes: int = MAX_TREE_NODES,
    node_count: list[int] | None = None,
    path: frozenset[str] = frozenset(),
) -> None:
    """Recursively add neighbours of record; cap depth and total nodes, mark cycles."""
    if node_count is None:
        node_count = [0]
    path = path | {record.name}
    names = record.depends_on if direction is Direction.FORWARD else record.required_by
    for name in names:
        if node_count[0] >= max_nodes:
            tn.add_leaf(f"[dim]… truncated ({max_nodes} nodes max)[/]")
            return
        child = graph.get(name) or PackageRecord(name=name, version="missing", broken=True)
        if depth >= max_depth:
            tn.add_leaf(f"[dim]{name} …[/]")
            continue
        node_count[0] += 1
        if name in path:
            tn.add_leaf(f"{_tree_label(child)} [dim](cycle)[/]").data = child
            continue
        if child.broken:
            tn.add_leaf(_tree_label(child)).data = child
            continue
        child_tn = tn.add(_tree_label(child), expand=False)
        child_tn.data = child
        _populate_textual_tree(
            child_tn,
            graph,
            child,
            direction,
            depth=depth + 1,
            max_depth=max_depth,
            max_nodes=max_nodes,
            node_count=node_count,
            path=path,
        )


def _expand_to_depth(tn: TreeNode, depth: int, current: int = 0) -> None:
    """Expand tree nodes up to given depth (0 = root only)."""
    if current >= depth:
        return
    tn.expand()
    for child in tn.children:
        _expand_to_depth(child, depth, current + 1)


def search_packages(
    graph: Mapping[str, PackageRecord],
    query: str,
    limit: int = MAX_SEARCH_RESULTS,
) -> list[PackageRecord]:
    """Packages whose name contains query, exact name first, then prefix matches."""
    needle = query.strip().lower()
    if not needle:
        return []
    matches = filter_packages(graph.values(), needle)
    matches.sort(key=lambda r: (r.name.lower() != needle, not r.name.lower().startswith(needle)))
    return matches[:limit]


def find_tree_nodes(node: TreeNode, name: str) -> list[TreeNode]:
    """Nodes under node (inclusive) that show the package name, in display order."""
    data = node.data
    found = [node] if (data.name if isinstance(data, PackageRecord) else data) == name else []
    for child in node.children:
        found.extend(find_tree_nodes(child, name))
    return found


def _result_label(record: PackageRecord) -> Text:
    return Text.from_markup(f"[{_kind_color(record)}]{record.name}[/]  [dim]{_kind_label(record)}[/]")


class PackageSearchScreen(ModalScreen[str | None]):
    """Pick any package of the snapshot by partial name; dismisses with its name."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
        Binding("down", "focus_results", "Results", show=False),
    ]

    DEFAULT_CSS = """
    PackageSearchScreen {
        align: center middle;
    }
    PackageSearchScreen > Vertical {
        width: 72;
        height: auto;
        max-height: 80%;
        border: round $accent;
        padding: 1 2;
    }
    PackageSearchScreen #pkg_results {
        height: auto;
        max-height: 20;
    }
    PackageSearchScreen #pkg_count {
        color: $text-muted;
        padding: 1 0 0 0;
    }
    """

    def __init__(self, graph: Mapping[str, PackageRecord], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._graph = graph

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Input(placeholder="package name (substring, any case)", id="pkg_query")
            yield OptionList(id="pkg_results")
            yield Static("", id="pkg_count")

    def on_mount(self) -> None:
        self.query_one("#pkg_query", Input).focus()
        self._show_results("")

    def on_input_changed(self, event: Input.Changed) -> None:
        self._show_results(event.value)

    def _show_results(self, query: str) -> None:
        results = search_packages(self._graph, query)
        options = self.query_one("#pkg_results", OptionList)
        options.clear_options()
        options.add_options([Option(_result_label(r), id=r.name) for r in results])
        if results:
            options.highlighted = 0
        total = len(filter_packages(self._graph.values(), query)) if query.strip() else 0
        if not query.strip():
            hint = f"{len(self._graph)} packages in snapshot"
        elif total > len(results):
            hint = f"showing {len(results)} of {total} matches"
        else:
            hint = f"{total} match(es)"
        self.query_one("#pkg_count", Static).update(f"{hint}  ·  Enter = open tree  ·  ↓ = pick")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        options = self.query_one("#pkg_results", OptionList)
        if options.highlighted is None:
            self.dismiss(None)
            return
        self.dismiss(options.get_option_at_index(options.highlighted).id)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(event.option.id)

    def action_focus_results(self) -> None:
        self.query_one("#pkg_results", OptionList).focus()

    def action_cancel(self) -> None:
        self.dismiss(None)


class OpenSnapshotScreen(ModalScreen[Path | None]):
    """Modal to enter the path of another snapshot file. Enter to open, Escape to cancel."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    OpenSnapshotScreen {
        align: center middle;
        padding: 2 4;
    }
    OpenSnapshotScreen #open_title {
        text-align: center;
        padding-bottom: 1;
    }
    OpenSnapshotScreen #open_input {
        width: 60;
        margin: 1 0;
    }
    OpenSnapshotScreen #open_hint {
        text-align: center;
        padding-top: 1;
    }
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._input: Input | None = None

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                "[bold cyan]Open snapshot[/]\n\n"
                "Type the path of a snapshot JSON file (from 'pacdeps collect').",
                id="open_title",
                markup=True,
            )
            yield Input(
                placeholder="ui/public/data/arch-host-....json",
                id="open_input",
            )
            yield Static(
                "[dim]Enter[/] = Open  ·  [dim]Escape[/] = Cancel",
                id="open_hint",
                markup=True,
            )

    def on_mount(self) -> None:
        self._input = self.query_one("#open_input", Input)
        self._input.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "open_input":
            return
        value = self._input.value.strip() if self._input else ""
        if not value:
            self.dismiss(None)
            return
        p = Path(value).expanduser().resolve()
        if not p.is_file():
            self.notify(f"Not a file: {p}", severity="warning", timeout=3)
            return
        self.dismiss(p)

    def action_cancel(self) -> None:
        self.dismiss(None)


class GraphExplorerApp(App[None]):
    """Terminal UI to explore a pacdeps snapshot."""

    TITLE = "pacdeps"
    BINDINGS = [
        Binding("enter", "start_main", "Start", show=False),
        Binding("escape", "back", "Back", show=True),
        Binding("b", "back", "Back", show=False),
        Binding("o", "open_snapshot", "Open"),
        Binding("t", "toggle_direction", "Direction"),
        Binding("/", "search", "Search"),
        Binding("f", "search", "Search", show=False),
        Binding("n", "next_match", "Next match", show=False),
        Binding("N", "prev_match", "Prev match", show=False),
        Binding("d", "toggle_details", "Details"),
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Reload"),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse"),
    ]

    def __init__(
        self,
        snapshot_path: Path | None = None,
        root_package: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._snapshot_path = snapshot_path
        self._root_package = root_package
        self._direction = Direction.FORWARD
        self._main_started = False
        self._search_matches: list[TreeNode] = []
        self._search_index: int = 0
        self._details_visible: bool = True
        # Background loading state
        self._snapshot: Snapshot | None = None
        self._graph: Graph | None = None
        self._loading: bool = False
        self._load_error: str | None = None

    DEFAULT_CSS = """
    /* Welcome screen styles */
    #welcome_container {
        align: center middle;
        width: 100%;
        height: 100%;
    }
    #welcome_banner {
        text-align: center;
        content-align: center middle;
        width: 100%;
    }
    #welcome_desc {
        text-align: center;
        padding: 2 4;
    }
    #welcome_hint {
        text-align: center;
        padding-top: 1;
    }
    #welcome_loading {
        text-align: center;
        padding-top: 1;
        display: none;
    }
    #welcome_loading.loading {
        display: block;
    }
    #welcome_loading LoadingIndicator {
        background: transparent;
    }
    /* Main view styles */
    #main_container {
        display: none;
    }
    #nav_hint {
        display: none;
        height: auto;
        padding: 0 1;
        margin-bottom: 1;
        color: $text-muted;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="welcome_container"):
            yield Static(WELCOME_BANNER, id="welcome_banner", markup=True)
            yield Static(WELCOME_DESC, id="welcome_desc", markup=True)
            yield Static(
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit",
                id="welcome_hint",
                markup=True,
            )
            with Container(id="welcome_loading"):
                yield LoadingIndicator()
                yield Static("[dim]Loading snapshot...[/]", id="loading_text", markup=True)
        with Container(id="main_container"):
            yield Static(
                "[dim]← Press [bold]Esc[/bold] or [bold]b[/bold] to return to package list  ·  "
                "[bold]t[/bold] = switch direction[/]",
                id="nav_hint",
            )
            yield Tree("Packages", id="dep_tree")
            yield Static(
                "[dim]↑/↓[/] move  ·  [dim]Enter[/]/[dim]Space[/] select  ·  [dim]Esc[/]/[dim]b[/] = Back",
                id="details",
            )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = "Dependency Graph Explorer"
        self._start_snapshot_load()

    def on_key(self, event: Any) -> None:
        """Handle Enter on the welcome screen."""
        if not self._main_started and event.key == "enter":
            event.prevent_default()
            event.stop()
            self.action_start_main()

    def _start_snapshot_load(self) -> None:
        """Load the snapshot in a background thread."""
        if self._loading:
            return
        if self._snapshot_path is None:
            self._snapshot_path = find_latest_snapshot()
        if self._snapshot_path is None:
            self._load_error = f"No snapshot found in {DEFAULT_OUTPUT_DIR}. Run 'pacdeps collect' first."
            self._update_loading_status()
            return
        self._loading = True
        self.query_one("#welcome_loading").add_class("loading")
        self.run_worker(self._load_snapshot_worker, thread=True, exit_on_error=False)

    def _load_snapshot_worker(self) -> tuple[Snapshot, Graph]:
        """Worker that reads the snapshot and resolves missing dependencies."""
        snapshot = load_snapshot(self._snapshot_path)
        return snapshot, resolve_graph(snapshot.graph)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Handle worker completion."""
        if event.state == WorkerState.SUCCESS:
            self._snapshot, self._graph = event.worker.result
            self._loading = False
            self._load_error = None
            self._update_loading_status()
            if self._main_started:
                self._reload_main_view()
        elif event.state == WorkerState.ERROR:
            self._loading = False
            self._load_error = str(event.worker.error)
            self._update_loading_status()
            if self._main_started:
                self._reload_main_view()

    def _update_loading_status(self) -> None:
        """Update loading indicator status."""
        self.query_one("#welcome_loading").remove_class("loading")
        hint = self.query_one("#welcome_hint", Static)
        if self._graph is not None and self._snapshot is not None:
            info = self._snapshot.info
            hint.update(
                f"[green]✓[/] {len(self._graph)} packages from {info.hostname} ({info.timestamp})  ·  "
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit"
            )
        elif self._load_error:
            hint.update(f"[red]Error: {self._load_error}[/]  ·  [dim]q[/] to quit")

    def action_start_main(self) -> None:
        """Transition from welcome screen to main view."""
        if self._main_started:
            return
        self._main_started = True
        self.query_one("#welcome_container").styles.display = "none"
        self.query_one("#main_container").styles.display = "block"
        self._load_main_view()

    def _reload_main_view(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        self._load_main_view()

    def _load_main_view(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        self.query_one("#nav_hint").styles.display = "none"
        tree.focus()
        if self._loading:
            tree.root.label = f"[{COLOR_HEADER}]Loading snapshot...[/]"
            self._set_details("[dim]Reading snapshot in background...[/]")
            return
        if self._graph is None:
            tree.root.add_leaf("[dim]No snapshot loaded[/]")
            self._set_details(f"[red]{self._load_error or 'No snapshot loaded'}[/]\n\n[dim]o[/] = Open snapshot")
            return
        if self._root_package in self._graph:
            self._load_tree(self._root_package)
            return
        if self._root_package:
            self.notify(f"Package not found: {self._root_package}", severity="warning", timeout=3)
            self._root_package = None

        graph = self._graph
        tree.root.label = f"[{COLOR_HEADER}]Packages by kind[/]"
        recap_parts = []
        for kind, title, color in SECTIONS:
            records = filter_packages(graph.values(), "", kind)
            recap_parts.append(f"[{color}]{title}: {len(records)}[/]")
            if not records:
                continue
            section_node = tree.root.add(
                f"[{color}]{title} ({len(records)})[/]",
                expand=kind is PackageKind.EXPLICIT,
            )
            for record in records[:MAX_PACKAGES_PER_SECTION]:
                child_tn = section_node.add_leaf(f"[{color}]{record.name}[/]")
                child_tn.data = record.name
            if len(records) > MAX_PACKAGES_PER_SECTION:
                section_node.add_leaf(f"[dim]… and {len(records) - MAX_PACKAGES_PER_SECTION} more[/]")
        self._set_details(
            f"[{COLOR_HEADER}]Package list[/]\n\n"
            f"Total: [{COLOR_STATS}]{len(graph)}[/] packages  ·  "
            + "  ·  ".join(recap_parts)
            + "\n\n"
            "[dim]↑/↓[/] move  ·  [dim]Enter[/] or [dim]Space[/] on a package = load tree  ·  "
            "[dim]/[/] = Search  ·  [dim]o[/] = Open another snapshot"
        )

    def _clear_tree(self, tree: Tree) -> None:
        self._search_matches = []
        while tree.root.children:
            tree.root.children[0].remove()

    def _load_tree(self, root_package: str) -> None:
        graph = self._graph
        if graph is None:
            return
        record = graph.get(root_package)
        if record is None:
            self._set_details(f"Package not found: {root_package}")
            return
        self._root_package = root_package
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        tree.root.label = f"{_tree_label(record)} [dim]({self._direction.value})[/]"
        tree.root.data = record
        if self._direction is Direction.BOTH:
            needs = tree.root.add(f"[{COLOR_HEADER}]Depends on[/]", expand=True)
            _populate_textual_tree(needs, graph, record, Direction.FORWARD)
            needed_by = tree.root.add(f"[{COLOR_HEADER}]Required by[/]", expand=True)
            _populate_textual_tree(needed_by, graph, record, Direction.REVERSE)
        else:
            _populate_textual_tree(tree.root, graph, record, self._direction)
        _expand_to_depth(tree.root, EXPAND_DEPTH_DEFAULT)
        self._set_details(self._format_record(record))
        self.query_one("#nav_hint").styles.display = "block"
        tree.focus()

    def _format_record(self, record: PackageRecord) -> str:
        graph = self._graph or {}
        direct_deps, direct_rdeps, total_deps, total_rdeps = _record_stats(graph, record)
        flags = [_kind_label(record)]
        if record.locally_built:
            flags.append("locally built")
        lines = [
            f"[{COLOR_HEADER}]Package[/]",
            f"  [{_kind_color(record)}]{record.name}[/]  [dim]{record.version}[/]  ({', '.join(flags)})",
            f"  Repository: {record.repository}",
            "",
            f"[{COLOR_HEADER}]Stats[/]",
            f"  Depends on:       [{COLOR_STATS}]{direct_deps}[/] direct, [{COLOR_STATS}]{total_deps}[/] total",
            f"  Required by:      [{COLOR_STATS}]{direct_rdeps}[/] direct, [{COLOR_STATS}]{total_rdeps}[/] total",
            f"  Optional deps:    [{COLOR_STATS}]{len(record.optional_depends_on)}[/]",
            f"  Optional for:     [{COLOR_STATS}]{len(record.optional_required_by)}[/]",
        ]
        if record.url:
            lines += ["", f"[{COLOR_HEADER}]URL[/]", f"  [{COLOR_PATH}]{record.url}[/]"]
        return "\n".join(lines)

    def _format_overview(self) -> str:
        counts = count_packages((self._graph or {}).values())
        return (
            f"Explicit: [{COLOR_STATS}]{counts.explicit}[/]  ·  "
            f"Dependency: [{COLOR_STATS}]{counts.dependency}[/]  ·  "
            f"Missing: [{COLOR_STATS}]{counts.broken}[/]  ·  "
            f"Total: [{COLOR_STATS}]{counts.total}[/]"
        )

    def _set_details(self, text: str) -> None:
        details = self.query_one("#details", Static)
        details.update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        data = event.node.data
        if data is None:
            return
        if isinstance(data, PackageRecord):
            if data.broken:
                self._set_details(f"[{COLOR_BROKEN}]{data.name}[/] is required but not installed.")
            else:
                self._set_details(self._format_record(data))
        elif isinstance(data, str):
            self._load_tree(data)

    def action_toggle_direction(self) -> None:
        """Switch between dependencies, reverse dependencies and both."""
        self._direction = next_direction(self._direction)
        self.notify(f"Direction: {self._direction.value}", severity="information", timeout=2)
        if self._main_started and self._root_package:
            self._load_tree(self._root_package)

    def action_back(self) -> None:
        """Return to the package list (only when viewing a tree)."""
        if not self._main_started or not self._root_package:
            return
        self._root_package = None
        self._reload_main_view()
        self._set_details(self._format_overview())

    def action_refresh(self) -> None:
        """Reload the snapshot from disk."""
        if not self._main_started:
            return
        self._graph = None
        self._snapshot = None
        self._start_snapshot_load()
        self._reload_main_view()

    def action_open_snapshot(self) -> None:
        """Open modal to load a different snapshot file."""
        if not self._main_started:
            return
        self.push_screen(OpenSnapshotScreen(), self._on_open_snapshot_done)

    def _on_open_snapshot_done(self, path: Path | None) -> None:
        if path is None:
            return
        self._snapshot_path = path
        self._root_package = None
        self.notify(f"Opening: {path}", severity="information", timeout=2)
        self.action_refresh()

    def action_expand_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()

    def action_search(self) -> None:
        """Pick a package from the whole snapshot."""
        if not self._main_started or self._graph is None:
            return
        self.push_screen(PackageSearchScreen(self._graph), self._on_search_done)

    def _on_search_done(self, name: str | None) -> None:
        # Inside a loaded tree, jump between occurrences; otherwise open the package's tree
        if not name:
            return
        tree = self.query_one("#dep_tree", Tree)
        occurrences = find_tree_nodes(tree.root, name) if self._root_package else []
        if not occurrences:
            self._search_matches = []
            self._load_tree(name)
            return
        self._search_matches = occurrences
        self._goto_match(0)

    def _goto_match(self, index: int) -> None:
        """Select occurrence index (wrapping) of the picked package, opening its ancestors."""
        self._search_index = index % len(self._search_matches)
        node = self._search_matches[self._search_index]
        parent = node.parent
        while parent is not None:
            parent.expand()
            parent = parent.parent
        tree = self.query_one("#dep_tree", Tree)
        tree.select_node(node)
        tree.scroll_to_node(node)
        if len(self._search_matches) > 1:
            self.notify(
                f"Occurrence {self._search_index + 1} of {len(self._search_matches)}  ·  n/N to cycle",
                timeout=2,
            )

    def _step_match(self, step: int) -> None:
        if not self._search_matches:
            self.notify("Pick a package with / first.", timeout=2)
            return
        self._goto_match(self._search_index + step)

    def action_next_match(self) -> None:
        self._step_match(1)

    def action_prev_match(self) -> None:
        self._step_match(-1)

    def action_toggle_details(self) -> None:
        """Toggle visibility of the details panel."""
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"

    def action_quit(self) -> None:
        self.exit()


def main() -> None:
    """Entry point for the pacdeps TUI."""
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    root = sys.argv[2].strip() if len(sys.argv) > 2 else None
    app = GraphExplorerApp(snapshot_path=path, root_package=root)
    app.run()


if __name__ == "__main__":
    main()
