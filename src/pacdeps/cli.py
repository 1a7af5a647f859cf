"""Command-line interface for pacdeps: collect snapshots, list packages, show dependency trees."""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import subprocess
import sys
import time
from collections.abc import Mapping
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TimeElapsedColumn

from pacdeps import __version__
from pacdeps.api import collect_snapshot, format_duration, resolve_graph
from pacdeps.core.config import CollectorConfig
from pacdeps.core.errors import PacdepsError
from pacdeps.core.models import PackageRecord, Snapshot, load_snapshot, save_snapshot
from pacdeps.core.query import (
    Direction,
    PackageKind,
    SubGraph,
    count_packages,
    extract_subgraph,
    filter_packages,
    find_orphans,
)
from pacdeps.core.selection import Selection

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity flags."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )


def _load(path: str) -> Snapshot | None:
    """Load a snapshot, printing an error instead of raising."""
    try:
        return load_snapshot(Path(path))
    except (OSError, ValueError) as e:
        print(f"Error: cannot read snapshot {path}: {e}", file=sys.stderr)
        return None


def _record_to_json(record: PackageRecord) -> dict:
    data = {"name": record.name, **record.to_dict()}
    if record.broken:
        data["broken"] = True
    return data


def _print_tree_text(
    graph: Mapping[str, PackageRecord],
    name: str,
    direction: Direction = Direction.FORWARD,
    *,
    prefix: str = "",
    is_last: bool = True,
    is_root: bool = True,
    shown: set[str] | None = None,
) -> None:
    """Print the dependency tree of a package as indented text, pactree-style."""
    if shown is None:
        shown = set()
    record = graph.get(name)
    marker = "" if is_root else ("└─" if is_last else "├─")
    if record is None or record.broken:
        print(f"{prefix}{marker}{name} [missing]")
        return
    if name in shown:
        print(f"{prefix}{marker}{name} [already shown]")
        return
    shown.add(name)
    print(f"{prefix}{marker}{name} ({record.version})")

    children = record.depends_on if direction is Direction.FORWARD else record.required_by
    child_prefix = prefix if is_root else prefix + ("  " if is_last else "│ ")
    for i, child in enumerate(children):
        _print_tree_text(
            graph,
            child,
            direction,
            prefix=child_prefix,
            is_last=i == len(children) - 1,
            is_root=False,
            shown=shown,
        )


def _tree_to_dict(
    graph: Mapping[str, PackageRecord],
    name: str,
    direction: Direction,
    shown: set[str] | None = None,
) -> dict:
    """Nested JSON form of a dependency tree; repeated packages are not expanded."""
    if shown is None:
        shown = set()
    record = graph.get(name)
    node: dict = {"name": name, "version": record.version if record else "missing", "children": []}
    if record is None or record.broken:
        node["broken"] = True
        return node
    if name in shown:
        node["repeated"] = True
        return node
    shown.add(name)
    children = record.depends_on if direction is Direction.FORWARD else record.required_by
    node["children"] = [_tree_to_dict(graph, c, direction, shown) for c in children]
    return node


def cmd_collect(args: argparse.Namespace) -> int:
    """Collect a dependency snapshot of this system."""
    config = CollectorConfig.from_env()
    if args.jobs is not None:
        config.jobs = args.jobs
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.output_dir is not None:
        config.output_dir = Path(args.output_dir)

    selection = Selection.from_args(
        first=args.first,
        last=args.last,
        random_count=args.random,
        select=args.select,
    )
    start = time.monotonic()
    with Progress(
        "[progress.description]{task.description}",
        SpinnerColumn(),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    ) as progress:
        task = progress.add_task("Collecting dependency trees", total=None)

        def on_progress(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        snapshot, result = collect_snapshot(selection, config=config, progress=on_progress)

    if result.failures:
        print("Package Collection Failures", file=sys.stderr)
        for line in result.report():
            print(line, file=sys.stderr)
        print("-----------------------------------", file=sys.stderr)

    out_path = save_snapshot(snapshot, config.output_dir)
    counts = count_packages(snapshot.graph.values())
    print(f"Complete! Generated {out_path}")
    print(f"Total packages: {counts.total}")
    print(f"Explicit: {counts.explicit}")
    print(f"Dependencies: {counts.dependency}")
    print()
    print("Performance summary")
    print(f"Total runtime: {format_duration(time.monotonic() - start)}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List packages in a snapshot."""
    snapshot = _load(args.snapshot)
    if snapshot is None:
        return 1
    records = filter_packages(
        resolve_graph(snapshot.graph).values(),
        args.search or "",
        PackageKind(args.kind),
    )
    if args.json:
        print(json.dumps([_record_to_json(r) for r in records], indent=2))
        return 0
    if not records:
        print("No matching packages.")
        return 1
    print(f"Found {len(records)} package(s):\n")
    for record in records:
        tag = " [missing]" if record.broken else (" [explicit]" if record.explicit else "")
        if args.verbose and not record.broken:
            print(f"  {record.name} {record.version} ({record.repository}){tag}")
        else:
            print(f"  {record.name}{tag}")
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """Show the dependency tree of one package."""
    snapshot = _load(args.snapshot)
    if snapshot is None:
        return 1
    graph = resolve_graph(snapshot.graph)
    if args.package not in snapshot.graph:
        print(f"Package not found: {args.package}", file=sys.stderr)
        return 1
    direction = Direction(args.direction)
    if args.json:
        print(json.dumps(_tree_to_dict(graph, args.package, direction), indent=2))
    else:
        _print_tree_text(graph, args.package, direction)
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show package counts for a snapshot."""
    snapshot = _load(args.snapshot)
    if snapshot is None:
        return 1
    records = resolve_graph(snapshot.graph).values()
    counts = count_packages(records)
    orphans = find_orphans(records)
    info = snapshot.info
    if args.json:
        data = {"info": info.to_dict(), "counts": counts.to_dict(), "orphans": [r.name for r in orphans]}
        print(json.dumps(data, indent=2))
        return 0
    print(f"Snapshot: {info.os} / {info.hostname} ({info.timestamp})")
    print(f"Filter:   {info.filter.get('type', 'none')} {info.filter.get('value') or ''}".rstrip())
    print(f"Total:      {counts.total}")
    print(f"Explicit:   {counts.explicit}")
    print(f"Dependency: {counts.dependency}")
    print(f"Missing:    {counts.broken}")
    print(f"Orphans:    {len(orphans)}")
    if args.verbose:
        for record in orphans:
            print(f"  - {record.name}")
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from pacdeps.tui.app import GraphExplorerApp

    snapshot_path = Path(args.snapshot) if getattr(args, "snapshot", None) else None
    app = GraphExplorerApp(
        snapshot_path=snapshot_path,
        root_package=getattr(args, "package", None),
    )
    app.run()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the query API for a snapshot over HTTP."""
    snapshot = _load(args.snapshot)
    if snapshot is None:
        return 1
    import uvicorn

    from pacdeps.server import create_app

    uvicorn.run(create_app(snapshot), host=args.host, port=args.port)
    return 0


def _generate_dot(
    subgraph: SubGraph,
    focal: str,
    title: str | None = None,
    highlight_root: bool = True,
) -> str:
    """Generate DOT (Graphviz) format from a sub-graph."""
    lines = [
        "digraph dependencies {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="sans-serif"];',
    ]
    if title:
        lines.insert(1, f'    label="{title}";')
        lines.insert(2, "    labelloc=t;")

    for record in subgraph.nodes:
        if record.name == focal and highlight_root:
            lines.append(f'    "{record.name}" [style="rounded,filled", fillcolor=lightblue];')
        elif record.broken:
            lines.append(f'    "{record.name}" [style="rounded,filled", fillcolor=salmon];')
        elif record.explicit:
            lines.append(f'    "{record.name}" [style="rounded,bold"];')

    for link in subgraph.links:
        style = " [style=dashed, color=red]" if link.type == "broken" else ""
        lines.append(f'    "{link.source}" -> "{link.target}"{style};')

    lines.append("}")
    return "\n".join(lines)


def _generate_mermaid(
    subgraph: SubGraph,
    focal: str,
    title: str | None = None,
    highlight_root: bool = True,
) -> str:
    """Generate Mermaid format from a sub-graph."""
    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    for record in subgraph.nodes:
        lines.append(f'    {_mermaid_id(record.name)}["{record.name}"]')
        if record.name == focal and highlight_root:
            lines.append(f"    style {_mermaid_id(record.name)} fill:#lightblue")
        elif record.broken:
            lines.append(f"    style {_mermaid_id(record.name)} fill:#salmon")

    for link in subgraph.links:
        arrow = "-.->" if link.type == "broken" else "-->"
        lines.append(f"    {_mermaid_id(link.source)} {arrow} {_mermaid_id(link.target)}")

    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert a package name to a valid Mermaid node ID."""
    # Package names may contain - + . @ and the * marker of broken optional deps
    for char, repl in (("-", "_"), (".", "_"), ("+", "_plus_"), ("@", "_at_"), ("*", "_missing")):
        name = name.replace(char, repl)
    return name


def _check_graphviz() -> bool:
    """Check if Graphviz (dot) is available."""
    return shutil.which("dot") is not None


def _render_dot(dot_content: str, output_path: Path, format: str) -> bool:
    """Render DOT content to an image file using Graphviz."""
    if not _check_graphviz():
        print(
            "Error: Graphviz not found. Install it with:\n"
            "  Arch: sudo pacman -S graphviz\n"
            "  Or download from: https://graphviz.org/download/",
            file=sys.stderr,
        )
        return False

    try:
        result = subprocess.run(
            ["dot", f"-T{format}", "-o", str(output_path)],
            input=dot_content,
            capture_output=True,
            text=True,
            timeout=60,
        )
        if result.returncode != 0:
            print(f"Graphviz error: {result.stderr}", file=sys.stderr)
            return False
        return True
    except subprocess.TimeoutExpired:
        print("Error: Graphviz timed out (graph may be too large)", file=sys.stderr)
        return False
    except OSError as e:
        print(f"Error running Graphviz: {e}", file=sys.stderr)
        return False


def _open_file(path: Path) -> bool:
    """Open a file with the desktop's default application."""
    try:
        subprocess.run(["xdg-open", str(path)], check=True)
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        print(f"Could not open file: {e}", file=sys.stderr)
        return False


def cmd_graph(args: argparse.Namespace) -> int:
    """Generate a dependency graph of one package in DOT or Mermaid format."""
    snapshot = _load(args.snapshot)
    if snapshot is None:
        return 1
    if args.package not in snapshot.graph:
        print(f"Package not found: {args.package}", file=sys.stderr)
        return 1

    direction = Direction(args.direction)
    subgraph = extract_subgraph(resolve_graph(snapshot.graph), args.package, direction)

    if args.no_title:
        title = None
    elif direction is Direction.REVERSE:
        title = f"Packages requiring {args.package}"
    else:
        title = f"{args.package} dependencies"

    if args.format == "mermaid":
        output = _generate_mermaid(subgraph, args.package, title=title)
    else:  # dot
        output = _generate_dot(subgraph, args.package, title=title)

    render_format = getattr(args, "render", None)
    if render_format:
        if args.format == "mermaid":
            print(
                "Error: --render only works with DOT format (not mermaid). "
                "Remove -f mermaid or use mermaid.live for rendering.",
                file=sys.stderr,
            )
            return 1

        if args.output:
            out_path = Path(args.output)
            if out_path.suffix.lower() not in (f".{render_format}", ".dot"):
                out_path = out_path.with_suffix(f".{render_format}")
        else:
            out_path = Path(f"{args.package}.{render_format}")

        print(f"Rendering graph to {out_path}...", file=sys.stderr)
        if not _render_dot(output, out_path, render_format):
            return 1

        print(f"Graph image saved to: {out_path}", file=sys.stderr)

        if getattr(args, "open", False):
            _open_file(out_path)

        return 0

    if args.output:
        Path(args.output).write_text(output)
        print(f"Graph written to: {args.output}", file=sys.stderr)
    else:
        print(output)

    return 0


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got {number}")
    return number


def _add_snapshot_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("snapshot", help="Snapshot JSON file produced by 'pacdeps collect'")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the pacdeps CLI."""
    parser = argparse.ArgumentParser(
        prog="pacdeps",
        description="Collect and explore Arch Linux package dependency graphs.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # pacdeps collect
    collect_parser = subparsers.add_parser(
        "collect",
        help="Collect a dependency snapshot of this system",
        description=(
            "Query pacman and pactree and write a timestamped JSON snapshot. "
            "Selection options collect the chosen packages and their complete "
            "dependency trees (including optional dependencies)."
        ),
    )
    select_group = collect_parser.add_mutually_exclusive_group()
    select_group.add_argument(
        "-f",
        "--first",
        type=_non_negative_int,
        metavar="N",
        help="Collect the first N explicitly installed packages",
    )
    select_group.add_argument(
        "-l",
        "--last",
        type=_non_negative_int,
        metavar="N",
        help="Collect the last N explicitly installed packages",
    )
    select_group.add_argument(
        "-r",
        "--random",
        type=_non_negative_int,
        metavar="N",
        help="Collect N random explicitly installed packages",
    )
    select_group.add_argument(
        "-s",
        "--select",
        metavar="PKG1,PKG2",
        help="Collect the given packages (explicit or dependency)",
    )
    collect_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Parallel pactree jobs (default: number of CPU cores)",
    )
    collect_parser.add_argument(
        "-o",
        "--output-dir",
        metavar="DIR",
        help="Directory for the snapshot file (default: ui/public/data)",
    )
    collect_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before a single pacman/pactree call is abandoned (default: 60)",
    )
    collect_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log collection phases and timings",
    )
    collect_parser.set_defaults(func=cmd_collect)

    # pacdeps list
    list_parser = subparsers.add_parser(
        "list",
        help="List packages in a snapshot",
        description="List, search and filter packages from a snapshot.",
    )
    _add_snapshot_argument(list_parser)
    list_parser.add_argument(
        "-k",
        "--kind",
        choices=[k.value for k in PackageKind],
        default=PackageKind.ALL.value,
        help="Only show packages of this kind (default: all)",
    )
    list_parser.add_argument(
        "-q",
        "--search",
        metavar="TEXT",
        help="Only show packages whose name contains TEXT",
    )
    list_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show versions and repositories",
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_list)

    # pacdeps tree
    tree_parser = subparsers.add_parser(
        "tree",
        help="Show dependency tree for a package",
        description="Display the dependency (or reverse dependency) tree of a package.",
    )
    _add_snapshot_argument(tree_parser)
    tree_parser.add_argument("package", help="Package name to show dependencies for")
    tree_parser.add_argument(
        "-D",
        "--direction",
        choices=[Direction.FORWARD.value, Direction.REVERSE.value],
        default=Direction.FORWARD.value,
        help="forward = what it needs, reverse = what needs it (default: forward)",
    )
    tree_parser.add_argument("--json", action="store_true", help="Output as JSON")
    tree_parser.set_defaults(func=cmd_tree)

    # pacdeps graph
    graph_parser = subparsers.add_parser(
        "graph",
        help="Generate a dependency graph (DOT/Mermaid format)",
        description="Generate a visual dependency graph around one package.",
    )
    _add_snapshot_argument(graph_parser)
    graph_parser.add_argument("package", help="Package name to graph")
    graph_parser.add_argument(
        "-D",
        "--direction",
        choices=[d.value for d in Direction],
        default=Direction.FORWARD.value,
        help="Dependencies, reverse dependencies, or both (default: forward)",
    )
    graph_parser.add_argument(
        "-f",
        "--format",
        choices=["dot", "mermaid"],
        default="dot",
        help="Output format: dot (Graphviz) or mermaid (default: dot)",
    )
    graph_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    graph_parser.add_argument(
        "--no-title",
        action="store_true",
        help="Don't include a title in the graph",
    )
    graph_parser.add_argument(
        "--render",
        choices=["png", "svg", "pdf"],
        metavar="FORMAT",
        help="Render to image (png, svg, pdf). Requires Graphviz installed.",
    )
    graph_parser.add_argument(
        "--open",
        action="store_true",
        help="Open the rendered image after creation (use with --render)",
    )
    graph_parser.set_defaults(func=cmd_graph)

    # pacdeps stats
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show package counts for a snapshot",
        description="Count explicit, dependency, missing and orphaned packages.",
    )
    _add_snapshot_argument(stats_parser)
    stats_parser.add_argument("-v", "--verbose", action="store_true", help="List orphans")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")
    stats_parser.set_defaults(func=cmd_stats)

    # pacdeps tui
    tui_parser = subparsers.add_parser(
        "tui",
        help="Launch the interactive terminal UI",
        description="Browse a snapshot's packages and dependency trees interactively.",
    )
    tui_parser.add_argument("snapshot", nargs="?", help="Snapshot JSON file to open")
    tui_parser.add_argument("package", nargs="?", help="Optional: start with this package's tree")
    tui_parser.set_defaults(func=cmd_tui)

    # pacdeps serve
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the query API for a snapshot",
        description="Expose packages, counts and sub-graphs of a snapshot over HTTP.",
    )
    _add_snapshot_argument(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    setup_logging(getattr(args, "verbose", False) and args.command == "collect")

    # Default to TUI if no command specified
    if args.command is None:
        return cmd_tui(argparse.Namespace(snapshot=None, package=None))

    try:
        return args.func(args)
    except PacdepsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
