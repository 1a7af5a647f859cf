"""Tests for pacdeps CLI."""

from __future__ import annotations

import argparse
import json
import re
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from pacdeps.cli import (
    _check_graphviz,
    _generate_dot,
    _generate_mermaid,
    _mermaid_id,
    _print_tree_text,
    _render_dot,
    _tree_to_dict,
    cmd_collect,
    cmd_graph,
    cmd_list,
    cmd_stats,
    cmd_tree,
    main,
)
from pacdeps.core.collector import CollectionFailure, CollectionResult
from pacdeps.core.errors import PackageNotFound
from pacdeps.core.models import CollectionInfo, Graph, PackageRecord, Snapshot, save_snapshot
from pacdeps.core.query import Direction, extract_subgraph


def _graph() -> Graph:
    return Graph(
        [
            PackageRecord(name="vim", version="9.1", explicit=True, repository="extra", depends_on=("glibc", "libsodium")),
            PackageRecord(name="glibc", version="2.39", repository="core", required_by=("vim", "zsh")),
            PackageRecord(name="zsh", version="5.9", explicit=True, repository="extra", depends_on=("glibc",)),
            PackageRecord(name="old-lib", version="1.0", repository="extra"),
        ]
    )


def _snapshot() -> Snapshot:
    info = CollectionInfo(os="arch", hostname="box", timestamp="2024-05-01T10:00:00Z+0000", shell="zsh")
    return Snapshot(info=info, graph=_graph())


@pytest.fixture
def snapshot_file(tmp_path: Path) -> Path:
    return save_snapshot(_snapshot(), tmp_path, filename="snap.json")


def _list_args(snapshot: Path, **overrides) -> argparse.Namespace:
    values = {"snapshot": str(snapshot), "kind": "all", "search": None, "verbose": False, "json": False}
    values.update(overrides)
    return argparse.Namespace(**values)


def _graph_args(snapshot: Path, package: str, **overrides) -> argparse.Namespace:
    values = {
        "snapshot": str(snapshot),
        "package": package,
        "direction": "forward",
        "format": "dot",
        "output": None,
        "no_title": False,
        "render": None,
        "open": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestPrintTreeText:
    """Tests for _print_tree_text helper."""

    def test_forward(self, capsys) -> None:
        from pacdeps.api import resolve_graph

        _print_tree_text(resolve_graph(_graph()), "vim")
        out = capsys.readouterr().out.splitlines()
        assert out == ["vim (9.1)", "├─glibc (2.39)", "└─libsodium [missing]"]

    def test_reverse(self, capsys) -> None:
        _print_tree_text(_graph(), "glibc", Direction.REVERSE)
        out = capsys.readouterr().out.splitlines()
        assert out == ["glibc (2.39)", "├─vim (9.1)", "└─zsh (5.9)"]

    def test_repeated_node(self, capsys) -> None:
        graph = Graph(
            [
                PackageRecord(name="a", version="1", depends_on=("b", "c")),
                PackageRecord(name="b", version="1", depends_on=("c",)),
                PackageRecord(name="c", version="1"),
            ]
        )
        _print_tree_text(graph, "a")
        out = capsys.readouterr().out
        assert "c [already shown]" in out

    def test_cycle_terminates(self, capsys) -> None:
        graph = Graph(
            [
                PackageRecord(name="a", version="1", depends_on=("b",)),
                PackageRecord(name="b", version="1", depends_on=("a",)),
            ]
        )
        _print_tree_text(graph, "a")
        assert "a [already shown]" in capsys.readouterr().out

    def test_tree_to_dict(self) -> None:
        data = _tree_to_dict(_graph(), "vim", Direction.FORWARD)
        assert data["name"] == "vim"
        names = [c["name"] for c in data["children"]]
        assert names == ["glibc", "libsodium"]
        assert data["children"][1]["broken"] is True


class TestCmdList:
    """Tests for cmd_list."""

    def test_all(self, snapshot_file: Path, capsys) -> None:
        assert cmd_list(_list_args(snapshot_file)) == 0
        out = capsys.readouterr().out
        assert "Found 5 package(s)" in out
        assert "vim [explicit]" in out
        assert "libsodium [missing]" in out

    def test_kind_filter(self, snapshot_file: Path, capsys) -> None:
        assert cmd_list(_list_args(snapshot_file, kind="orphan")) == 0
        out = capsys.readouterr().out
        assert "old-lib" in out
        assert "glibc" not in out

    def test_search_verbose(self, snapshot_file: Path, capsys) -> None:
        assert cmd_list(_list_args(snapshot_file, search="GLI", verbose=True)) == 0
        assert "glibc 2.39 (core)" in capsys.readouterr().out

    def test_json(self, snapshot_file: Path, capsys) -> None:
        assert cmd_list(_list_args(snapshot_file, kind="explicit", json=True)) == 0
        data = json.loads(capsys.readouterr().out)
        assert [d["name"] for d in data] == ["vim", "zsh"]
        assert data[0]["repo"] == "extra"

    def test_no_match(self, snapshot_file: Path, capsys) -> None:
        assert cmd_list(_list_args(snapshot_file, search="emacs")) == 1
        assert "No matching packages" in capsys.readouterr().out

    def test_bad_snapshot(self, tmp_path: Path, capsys) -> None:
        assert cmd_list(_list_args(tmp_path / "missing.json")) == 1
        assert "cannot read snapshot" in capsys.readouterr().err


class TestCmdTree:
    """Tests for cmd_tree."""

    def test_package_not_found(self, snapshot_file: Path, capsys) -> None:
        args = argparse.Namespace(snapshot=str(snapshot_file), package="emacs", direction="forward", json=False)
        assert cmd_tree(args) == 1
        assert "Package not found: emacs" in capsys.readouterr().err

    def test_text(self, snapshot_file: Path, capsys) -> None:
        args = argparse.Namespace(snapshot=str(snapshot_file), package="vim", direction="forward", json=False)
        assert cmd_tree(args) == 0
        assert "libsodium [missing]" in capsys.readouterr().out

    def test_json_reverse(self, snapshot_file: Path, capsys) -> None:
        args = argparse.Namespace(snapshot=str(snapshot_file), package="glibc", direction="reverse", json=True)
        assert cmd_tree(args) == 0
        data = json.loads(capsys.readouterr().out)
        assert [c["name"] for c in data["children"]] == ["vim", "zsh"]


class TestCmdStats:
    """Tests for cmd_stats."""

    def test_text(self, snapshot_file: Path, capsys) -> None:
        args = argparse.Namespace(snapshot=str(snapshot_file), verbose=True, json=False)
        assert cmd_stats(args) == 0
        out = capsys.readouterr().out
        assert "Total:      5" in out
        assert "Explicit:   2" in out
        assert "Missing:    1" in out
        assert "  - old-lib" in out

    def test_json(self, snapshot_file: Path, capsys) -> None:
        args = argparse.Namespace(snapshot=str(snapshot_file), verbose=False, json=True)
        assert cmd_stats(args) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["counts"] == {"explicit": 2, "dependency": 2, "broken": 1, "total": 5}
        assert data["orphans"] == ["old-lib"]
        assert data["info"]["hostname"] == "box"


class TestCmdCollect:
    """Tests for cmd_collect with collection mocked."""

    def _args(self, output_dir: Path, **overrides) -> argparse.Namespace:
        values = {
            "first": None,
            "last": None,
            "random": None,
            "select": None,
            "jobs": 2,
            "timeout": 3.0,
            "output_dir": str(output_dir),
            "verbose": False,
        }
        values.update(overrides)
        return argparse.Namespace(**values)

    def test_writes_snapshot(self, tmp_path: Path, capsys) -> None:
        with mock.patch(
            "pacdeps.cli.collect_snapshot",
            return_value=(_snapshot(), CollectionResult()),
        ) as collect:
            assert cmd_collect(self._args(tmp_path, first=2)) == 0
        selection = collect.call_args[0][0]
        config = collect.call_args[1]["config"]
        assert selection.count == 2
        assert config.jobs == 2
        assert config.timeout == 3.0
        out = capsys.readouterr().out
        assert "Complete! Generated" in out
        assert "Total packages: 4" in out
        assert "Explicit: 2" in out
        assert "Dependencies: 2" in out
        assert (tmp_path / _snapshot().filename).is_file()

    def test_progress_and_runtime_summary(self, tmp_path: Path, capsys) -> None:
        updates: list[tuple[int, int]] = []

        def fake_collect(selection, *, config, progress):
            for done in (1, 2, 3):
                progress(done, 3)
                updates.append((done, 3))
            return _snapshot(), CollectionResult()

        with mock.patch("pacdeps.cli.collect_snapshot", side_effect=fake_collect):
            assert cmd_collect(self._args(tmp_path)) == 0
        assert updates == [(1, 3), (2, 3), (3, 3)]
        out = capsys.readouterr().out
        assert "Performance summary" in out
        assert re.search(r"Total runtime: (\d+m )?\d+\.\d{3}s", out)

    def test_failure_report(self, tmp_path: Path, capsys) -> None:
        result = CollectionResult(failures=[CollectionFailure("vim", "forward", "exit status 1")])
        with mock.patch("pacdeps.cli.collect_snapshot", return_value=(_snapshot(), result)):
            assert cmd_collect(self._args(tmp_path)) == 0
        err = capsys.readouterr().err
        assert "Package Collection Failures" in err
        assert "Failed: vim (forward dep tree: exit status 1)" in err

    def test_error_via_main(self, tmp_path: Path, capsys) -> None:
        with mock.patch("pacdeps.cli.collect_snapshot", side_effect=PackageNotFound("emacs")):
            assert main(["collect", "-s", "emacs", "-o", str(tmp_path)]) == 1
        assert "Package 'emacs' is not installed" in capsys.readouterr().err
        assert list(tmp_path.iterdir()) == []


class TestMain:
    """Tests for main entry point."""

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert "pacdeps" in capsys.readouterr().out

    def test_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["--help"])
        assert excinfo.value.code == 0
        out = capsys.readouterr().out
        for command in ("collect", "list", "tree", "graph", "stats", "tui", "serve"):
            assert command in out

    def test_collect_help(self, capsys) -> None:
        with pytest.raises(SystemExit):
            main(["collect", "--help"])
        out = capsys.readouterr().out
        assert "--first" in out
        assert "--select" in out

    def test_selection_modes_exclusive(self, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["collect", "-f", "1", "-l", "2"])
        assert excinfo.value.code == 2

    def test_negative_count_rejected(self, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["collect", "-f", "-3"])
        assert excinfo.value.code == 2

    def test_list_command(self, snapshot_file: Path) -> None:
        assert main(["list", str(snapshot_file), "--json"]) == 0

    def test_tree_command(self, snapshot_file: Path) -> None:
        assert main(["tree", str(snapshot_file), "zsh", "-D", "forward"]) == 0

    def test_no_command_launches_tui(self) -> None:
        with mock.patch("pacdeps.cli.cmd_tui", return_value=0) as tui:
            assert main([]) == 0
        assert tui.call_args[0][0].snapshot is None


class TestGraphHelpers:
    """Tests for DOT and Mermaid generation."""

    def _sub(self):
        from pacdeps.api import resolve_graph

        return extract_subgraph(resolve_graph(_graph()), "vim", Direction.FORWARD)

    def test_mermaid_id_replaces_dash(self) -> None:
        assert _mermaid_id("old-lib") == "old_lib"

    def test_mermaid_id_replaces_special(self) -> None:
        assert _mermaid_id("gtk+3.0") == "gtk_plus_3_0"
        assert _mermaid_id("expat*") == "expat_missing"

    def test_generate_dot(self) -> None:
        dot = _generate_dot(self._sub(), "vim")
        assert dot.startswith("digraph dependencies {")
        assert '"vim" [style="rounded,filled", fillcolor=lightblue];' in dot
        assert '"libsodium" [style="rounded,filled", fillcolor=salmon];' in dot
        assert '"vim" -> "glibc";' in dot
        assert '"vim" -> "libsodium" [style=dashed, color=red];' in dot

    def test_generate_dot_with_title(self) -> None:
        assert 'label="vim dependencies";' in _generate_dot(self._sub(), "vim", title="vim dependencies")

    def test_generate_mermaid(self) -> None:
        mermaid = _generate_mermaid(self._sub(), "vim")
        assert mermaid.startswith("graph LR")
        assert "vim --> glibc" in mermaid
        assert "vim -.-> libsodium" in mermaid

    def test_generate_mermaid_with_title(self) -> None:
        assert "title: deps" in _generate_mermaid(self._sub(), "vim", title="deps")


class TestCmdGraph:
    """Tests for cmd_graph."""

    def test_dot_stdout(self, snapshot_file: Path, capsys) -> None:
        assert cmd_graph(_graph_args(snapshot_file, "vim")) == 0
        out = capsys.readouterr().out
        assert "digraph dependencies" in out
        assert 'label="vim dependencies";' in out

    def test_reverse_title(self, snapshot_file: Path, capsys) -> None:
        assert cmd_graph(_graph_args(snapshot_file, "glibc", direction="reverse")) == 0
        assert "Packages requiring glibc" in capsys.readouterr().out

    def test_mermaid_no_title(self, snapshot_file: Path, capsys) -> None:
        assert cmd_graph(_graph_args(snapshot_file, "vim", format="mermaid", no_title=True)) == 0
        out = capsys.readouterr().out
        assert out.startswith("graph LR")

    def test_output_to_file(self, snapshot_file: Path, tmp_path: Path) -> None:
        out_file = tmp_path / "vim.dot"
        assert cmd_graph(_graph_args(snapshot_file, "vim", output=str(out_file))) == 0
        assert "digraph" in out_file.read_text()

    def test_package_not_found(self, snapshot_file: Path, capsys) -> None:
        assert cmd_graph(_graph_args(snapshot_file, "emacs")) == 1
        assert "Package not found" in capsys.readouterr().err

    def test_render_mermaid_error(self, snapshot_file: Path, capsys) -> None:
        args = _graph_args(snapshot_file, "vim", format="mermaid", render="png")
        assert cmd_graph(args) == 1
        assert "--render only works with DOT" in capsys.readouterr().err

    def test_render_with_graphviz(self, snapshot_file: Path, tmp_path: Path) -> None:
        args = _graph_args(snapshot_file, "vim", render="svg", output=str(tmp_path / "vim.png"))
        with mock.patch("pacdeps.cli._render_dot", return_value=True) as render:
            assert cmd_graph(args) == 0
        assert render.call_args[0][1] == tmp_path / "vim.svg"
        assert render.call_args[0][2] == "svg"


class TestGraphvizHelpers:
    """Tests for Graphviz helpers."""

    def test_check_graphviz(self) -> None:
        with mock.patch("pacdeps.cli.shutil.which", return_value=None):
            assert _check_graphviz() is False
        with mock.patch("pacdeps.cli.shutil.which", return_value="/usr/bin/dot"):
            assert _check_graphviz() is True

    def test_render_dot_no_graphviz(self, tmp_path: Path, capsys) -> None:
        with mock.patch("pacdeps.cli._check_graphviz", return_value=False):
            assert _render_dot("digraph {}", tmp_path / "out.png", "png") is False
        assert "Graphviz not found" in capsys.readouterr().err

    def test_render_dot_with_graphviz(self, tmp_path: Path) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")
        with mock.patch("pacdeps.cli._check_graphviz", return_value=True), mock.patch(
            "pacdeps.cli.subprocess.run", return_value=completed
        ) as run:
            assert _render_dot("digraph {}", tmp_path / "out.png", "png") is True
        assert run.call_args[0][0] == ["dot", "-Tpng", "-o", str(tmp_path / "out.png")]

    def test_render_dot_failure(self, tmp_path: Path, capsys) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="syntax error")
        with mock.patch("pacdeps.cli._check_graphviz", return_value=True), mock.patch(
            "pacdeps.cli.subprocess.run", return_value=completed
        ):
            assert _render_dot("digraph {", tmp_path / "out.png", "png") is False
        assert "syntax error" in capsys.readouterr().err
