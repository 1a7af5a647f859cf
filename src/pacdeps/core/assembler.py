"""Merge collected edges and package metadata into a Graph."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from pacdeps.core.collector import PackageEdges
from pacdeps.core.models import Graph, PackageRecord

FOREIGN_REPOSITORY = "aur"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class PackageMetadata:
    """Everything known about one package apart from its edges."""

    version: str = UNKNOWN
    explicit: bool = False
    foreign: bool = False
    repository: str = UNKNOWN
    url: str = ""

    @property
    def locally_built(self) -> bool:
        """Foreign package that also exists in a sync repository (rebuilt locally)."""
        return self.foreign and self.repository != FOREIGN_REPOSITORY


@dataclass(frozen=True)
class MetadataMaps:
    """Per-package lookups gathered from pacman before assembly."""

    versions: Mapping[str, str] = field(default_factory=dict)
    explicit: frozenset[str] = frozenset()
    foreign: frozenset[str] = frozenset()
    repositories: Mapping[str, str] = field(default_factory=dict)
    urls: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, name: str) -> PackageMetadata:
        """Look a package up in every map at once, applying defaults."""
        foreign = name in self.foreign
        repository = self.repositories.get(name) or (FOREIGN_REPOSITORY if foreign else UNKNOWN)
        return PackageMetadata(
            version=self.versions.get(name) or UNKNOWN,
            explicit=name in self.explicit,
            foreign=foreign,
            repository=repository,
            url=self.urls.get(name, ""),
        )


def build_record(name: str, metadata: PackageMetadata, edges: PackageEdges) -> PackageRecord:
    return PackageRecord(
        name=name,
        version=metadata.version,
        explicit=metadata.explicit,
        repository=metadata.repository,
        locally_built=metadata.locally_built,
        url=metadata.url,
        depends_on=edges.depends_on,
        required_by=edges.required_by,
        optional_depends_on=edges.optional_depends_on,
        optional_required_by=edges.optional_required_by,
    )


def assemble_graph(
    names: Iterable[str],
    metadata: MetadataMaps,
    edges: Mapping[str, PackageEdges],
) -> Graph:
    """Build one record per name; packages without collected edges get none."""
    empty = PackageEdges()
    return Graph(build_record(name, metadata.resolve(name), edges.get(name, empty)) for name in names)
