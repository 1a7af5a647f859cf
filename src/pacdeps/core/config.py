"""Collector settings, with defaults taken from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_TIMEOUT = 60.0
DEFAULT_OUTPUT_DIR = Path("ui/public/data")
# pactree depth for per-package edges: direct neighbours only.
DEFAULT_EDGE_DEPTH = 1


def _default_jobs() -> int:
    return os.cpu_count() or 1


@dataclass
class CollectorConfig:
    """Settings for one collection run."""

    jobs: int = field(default_factory=_default_jobs)
    timeout: float = DEFAULT_TIMEOUT
    output_dir: Path = DEFAULT_OUTPUT_DIR
    edge_depth: int | None = DEFAULT_EDGE_DEPTH

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> CollectorConfig:
        """
        Build a config from PACDEPS_* environment variables.

        PACDEPS_JOBS, PACDEPS_TIMEOUT and PACDEPS_OUTPUT_DIR override the
        defaults; empty or malformed values are ignored.
        """
        env = os.environ if environ is None else environ
        config = cls()
        jobs = env.get("PACDEPS_JOBS", "").strip()
        if jobs.isdigit() and int(jobs) > 0:
            config.jobs = int(jobs)
        timeout = env.get("PACDEPS_TIMEOUT", "").strip()
        if timeout:
            try:
                config.timeout = float(timeout)
            except ValueError:
                pass
        output_dir = env.get("PACDEPS_OUTPUT_DIR", "").strip()
        if output_dir:
            config.output_dir = Path(output_dir)
        return config
