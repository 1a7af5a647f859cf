"""Tests for package records, graphs and snapshot persistence."""

from __future__ import annotations

import json
from pathlib import Path
from unittest import mock

import pytest

from pacdeps.core.models import (
    CollectionInfo,
    Graph,
    PackageRecord,
    Snapshot,
    load_snapshot,
    save_snapshot,
)


def _snapshot() -> Snapshot:
    info = CollectionInfo(
        os="arch",
        hostname="box",
        timestamp="2024-05-01T10:00:00Z+0200",
        shell="zsh",
        filter={"type": "first", "value": 1},
    )
    graph = Graph(
        [
            PackageRecord(name="vim", version="9.1", explicit=True, repository="extra", depends_on=("glibc",)),
            PackageRecord(name="glibc", version="2.39", repository="core", required_by=("vim",)),
        ]
    )
    return Snapshot(info=info, graph=graph)


class TestPackageRecord:
    """Tests for PackageRecord."""

    def test_edges_sorted_and_deduplicated(self) -> None:
        record = PackageRecord(name="a", depends_on=("z", "b", "z"), required_by=["y", "x"])
        assert record.depends_on == ("b", "z")
        assert record.required_by == ("x", "y")

    def test_to_dict_uses_repo_key(self) -> None:
        data = PackageRecord(name="vim", repository="extra").to_dict()
        assert data["repo"] == "extra"
        assert "name" not in data
        assert set(data) == {
            "explicit",
            "version",
            "repo",
            "locally_built",
            "url",
            "depends_on",
            "required_by",
            "optional_depends_on",
            "optional_required_by",
        }

    def test_from_dict_defaults(self) -> None:
        record = PackageRecord.from_dict("x", {})
        assert record == PackageRecord(name="x")

    def test_from_dict_fields(self) -> None:
        record = PackageRecord.from_dict(
            "vim",
            {
                "explicit": True,
                "version": "9.1",
                "repo": "extra",
                "locally_built": False,
                "url": "https://www.vim.org",
                "depends_on": ["glibc"],
                "optional_required_by": ["neovim-qt"],
            },
        )
        assert record.explicit is True
        assert record.repository == "extra"
        assert record.depends_on == ("glibc",)
        assert record.optional_required_by == ("neovim-qt",)

    def test_frozen(self) -> None:
        record = PackageRecord(name="a")
        with pytest.raises(AttributeError):
            record.name = "b"  # type: ignore[misc]


class TestGraph:
    """Tests for Graph."""

    def test_alphabetical_iteration(self) -> None:
        graph = Graph([PackageRecord(name="c"), PackageRecord(name="a"), PackageRecord(name="b")])
        assert list(graph) == ["a", "b", "c"]
        assert [r.name for r in graph.records()] == ["a", "b", "c"]

    def test_mapping_interface(self) -> None:
        graph = _snapshot().graph
        assert "vim" in graph
        assert graph.get("nano") is None
        assert len(graph) == 2
        assert repr(graph) == "Graph(2 packages)"

    def test_dict_round_trip(self) -> None:
        graph = _snapshot().graph
        assert Graph.from_dict(graph.to_dict()) == graph


class TestSnapshot:
    """Tests for Snapshot and its persistence."""

    def test_envelope_shape(self) -> None:
        data = _snapshot().to_dict()
        assert set(data) == {"info", "nodes"}
        assert data["info"]["filter"] == {"type": "first", "value": 1}
        assert data["nodes"]["vim"]["depends_on"] == ["glibc"]

    def test_filename(self) -> None:
        assert _snapshot().filename == "arch-box-2024-05-01T10:00:00Z+0200.json"

    def test_info_defaults(self) -> None:
        info = CollectionInfo.from_dict({})
        assert info.filter == {"type": "none", "value": None}
        assert info.shell == "bash"

    def test_save_and_load(self, tmp_path: Path) -> None:
        snapshot = _snapshot()
        path = save_snapshot(snapshot, tmp_path / "out", filename="snap.json")
        assert path == tmp_path / "out" / "snap.json"
        loaded = load_snapshot(path)
        assert loaded.info == snapshot.info
        assert loaded.graph == snapshot.graph

    def test_save_writes_compact_json(self, tmp_path: Path) -> None:
        path = save_snapshot(_snapshot(), tmp_path, filename="snap.json")
        text = path.read_text()
        assert "\n" not in text
        assert json.loads(text)["info"]["hostname"] == "box"

    def test_save_uses_default_filename(self, tmp_path: Path) -> None:
        path = save_snapshot(_snapshot(), tmp_path)
        assert path.name == _snapshot().filename

    def test_interrupted_save_leaves_no_file(self, tmp_path: Path) -> None:
        with mock.patch("pacdeps.core.models.json.dump", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                save_snapshot(_snapshot(), tmp_path, filename="snap.json")
        assert list(tmp_path.iterdir()) == []

    def test_load_rejects_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError):
            load_snapshot(path)

    def test_load_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_snapshot(path)
