"""Package records, the assembled graph, and the snapshot envelope."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any


def _names(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted(set(values)))


@dataclass(frozen=True)
class PackageRecord:
    """One installed package (or a placeholder for a missing one)."""

    name: str
    version: str = "unknown"
    explicit: bool = False
    repository: str = "unknown"
    locally_built: bool = False
    url: str = ""
    depends_on: tuple[str, ...] = ()
    required_by: tuple[str, ...] = ()
    optional_depends_on: tuple[str, ...] = ()
    optional_required_by: tuple[str, ...] = ()
    broken: bool = False

    def __post_init__(self) -> None:
        # Edge fields have set semantics; store them deduplicated and sorted.
        for attr in ("depends_on", "required_by", "optional_depends_on", "optional_required_by"):
            object.__setattr__(self, attr, _names(getattr(self, attr)))

    def to_dict(self) -> dict:
        """Serialize to the snapshot node format (name is the enclosing key)."""
        return {
            "explicit": self.explicit,
            "version": self.version,
            "repo": self.repository,
            "locally_built": self.locally_built,
            "url": self.url,
            "depends_on": list(self.depends_on),
            "required_by": list(self.required_by),
            "optional_depends_on": list(self.optional_depends_on),
            "optional_required_by": list(self.optional_required_by),
        }

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> PackageRecord:
        """Build a record from a snapshot node; absent fields take defaults."""
        return cls(
            name=name,
            version=data.get("version") or "unknown",
            explicit=bool(data.get("explicit", False)),
            repository=data.get("repo") or "unknown",
            locally_built=bool(data.get("locally_built", False)),
            url=data.get("url") or "",
            depends_on=data.get("depends_on") or (),
            required_by=data.get("required_by") or (),
            optional_depends_on=data.get("optional_depends_on") or (),
            optional_required_by=data.get("optional_required_by") or (),
            broken=bool(data.get("broken", False)),
        )


class Graph(Mapping[str, PackageRecord]):
    """Read-only mapping of package name to record, iterated alphabetically."""

    def __init__(self, records: Iterable[PackageRecord] = ()) -> None:
        ordered = sorted(records, key=lambda r: r.name)
        self._records = MappingProxyType({r.name: r for r in ordered})

    def __getitem__(self, name: str) -> PackageRecord:
        return self._records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Graph({len(self)} packages)"

    def records(self) -> list[PackageRecord]:
        """All records in alphabetical order."""
        return list(self._records.values())

    def to_dict(self) -> dict[str, dict]:
        return {name: record.to_dict() for name, record in self._records.items()}

    @classmethod
    def from_dict(cls, nodes: Mapping[str, Mapping[str, Any]]) -> Graph:
        return cls(PackageRecord.from_dict(name, data) for name, data in nodes.items())


@dataclass(frozen=True)
class CollectionInfo:
    """Where and how a snapshot was collected."""

    os: str = "unknown"
    hostname: str = "unknown"
    timestamp: str = ""
    shell: str = "bash"
    filter: dict = field(default_factory=lambda: {"type": "none", "value": None})

    def to_dict(self) -> dict:
        return {
            "os": self.os,
            "hostname": self.hostname,
            "timestamp": self.timestamp,
            "shell": self.shell,
            "filter": dict(self.filter),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CollectionInfo:
        return cls(
            os=data.get("os") or "unknown",
            hostname=data.get("hostname") or "unknown",
            timestamp=data.get("timestamp") or "",
            shell=data.get("shell") or "bash",
            filter=dict(data.get("filter") or {"type": "none", "value": None}),
        )


@dataclass(frozen=True)
class Snapshot:
    """The persisted artifact: collection metadata plus the graph."""

    info: CollectionInfo
    graph: Graph

    def to_dict(self) -> dict:
        return {"info": self.info.to_dict(), "nodes": self.graph.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Snapshot:
        return cls(
            info=CollectionInfo.from_dict(data.get("info") or {}),
            graph=Graph.from_dict(data.get("nodes") or {}),
        )

    @property
    def filename(self) -> str:
        """Default file name: <os>-<hostname>-<timestamp>.json."""
        return f"{self.info.os}-{self.info.hostname}-{self.info.timestamp}.json"


def save_snapshot(snapshot: Snapshot, output_dir: Path, filename: str | None = None) -> Path:
    """
    Write a snapshot as compact JSON into output_dir.

    The file is written to a temporary name first and moved into place, so an
    interrupted write never leaves a partial artifact behind.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / (filename or snapshot.filename)
    fd, tmp_name = tempfile.mkstemp(dir=output_dir, prefix=".pacdeps-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(snapshot.to_dict(), f, separators=(",", ":"))
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target


def load_snapshot(path: Path) -> Snapshot:
    """Read a snapshot JSON file. Raises OSError or ValueError on bad input."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Not a pacdeps snapshot: {path}")
    return Snapshot.from_dict(data)
