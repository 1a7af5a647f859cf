"""FastAPI app: serve packages, counts and dependency sub-graphs of a snapshot."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from pacdeps import __version__
from pacdeps.api import resolve_graph
from pacdeps.core.models import PackageRecord, Snapshot
from pacdeps.core.query import (
    Direction,
    PackageKind,
    count_packages,
    extract_subgraph,
    filter_packages,
    find_orphans,
    is_orphaned,
)


def _record_to_json(record: PackageRecord) -> dict:
    return {
        "id": record.name,
        **record.to_dict(),
        "broken": record.broken,
        "orphaned": is_orphaned(record),
    }


def create_app(snapshot: Snapshot) -> FastAPI:
    """Build the API for one loaded snapshot; the graph is resolved once."""
    graph = resolve_graph(snapshot.graph)

    app = FastAPI(
        title="pacdeps API",
        description="Arch package dependency graph backend",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/info")
    def get_info() -> dict:
        """Collection metadata (OS, hostname, timestamp, shell, filter)."""
        return snapshot.info.to_dict()

    @app.get("/api/packages")
    def get_packages(
        query: str = Query("", max_length=200),
        kind: PackageKind = Query(PackageKind.ALL),
    ) -> dict:
        """List packages, missing dependencies included, filtered and sorted by name."""
        records = filter_packages(graph.values(), query, kind)
        return {"packages": [_record_to_json(r) for r in records]}

    @app.get("/api/packages/{name}")
    def get_package(name: str) -> dict:
        """Return one package record."""
        record = graph.get(name)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Package not found: {name}")
        return _record_to_json(record)

    @app.get("/api/subgraph/{name}")
    def get_subgraph(name: str, direction: Direction = Query(Direction.FORWARD)) -> dict:
        """Nodes and links around a package; unknown names give an empty graph."""
        sub = extract_subgraph(graph, name, direction)
        return {
            "nodes": [_record_to_json(r) for r in sub.nodes],
            "links": [link.to_dict() for link in sub.links],
        }

    @app.get("/api/orphans")
    def get_orphans() -> dict:
        return {"packages": [r.name for r in find_orphans(graph.values())]}

    @app.get("/api/counts")
    def get_counts() -> dict:
        return count_packages(graph.values()).to_dict()

    return app
