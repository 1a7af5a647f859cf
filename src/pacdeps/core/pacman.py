"""Query pacman and pactree for installed packages, metadata and dependency trees."""

from __future__ import annotations

import logging
import os
import shutil
import socket
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pacdeps.core.config import DEFAULT_TIMEOUT
from pacdeps.core.errors import PrerequisiteMissing, ToolInvocationFailure

logger = logging.getLogger(__name__)

REQUIRED_COMMANDS = ("pacman", "pactree")
# Package providing each command, for install guidance.
PROVIDING_PACKAGES = {"pacman": "pacman", "pactree": "pacman-contrib"}
ARCH_FAMILY = ("arch", "manjaro", "endeavouros")
OS_RELEASE = Path("/etc/os-release")
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ%z"


def check_prerequisites(commands: tuple[str, ...] = REQUIRED_COMMANDS) -> None:
    """Raise PrerequisiteMissing if any required command is not on PATH."""
    missing = [cmd for cmd in commands if shutil.which(cmd) is None]
    if not missing:
        return
    packages = sorted({PROVIDING_PACKAGES.get(cmd, cmd) for cmd in missing})
    raise PrerequisiteMissing(
        f"The following commands are missing: {' '.join(missing)}",
        "Please install the missing dependencies using:\n"
        f"  sudo pacman -S {' '.join(packages)}",
    )


def read_os_release(path: Path = OS_RELEASE) -> dict[str, str]:
    """Parse KEY=value lines of an os-release file; missing file gives {}."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() and not key.startswith("#"):
            fields[key.strip()] = value.strip().strip('"').strip("'")
    return fields


def check_distribution(os_release: dict[str, str]) -> None:
    """Raise PrerequisiteMissing unless the host is an Arch-based distribution."""
    ids = " ".join((os_release.get("ID", ""), os_release.get("ID_LIKE", ""))).lower()
    if not any(name in ids for name in ARCH_FAMILY):
        raise PrerequisiteMissing(
            "This tool must be run on an Arch-based distribution "
            "(pacman not found or incompatible OS)."
        )


def _run(cmd: list[str], timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run a command and return stdout; raise ToolInvocationFailure on any failure."""
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise ToolInvocationFailure(cmd, f"timed out after {timeout:g}s") from None
    except OSError as e:
        raise ToolInvocationFailure(cmd, str(e)) from e
    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise ToolInvocationFailure(cmd, detail)
    return result.stdout


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def installed_packages(timeout: float = DEFAULT_TIMEOUT) -> list[str]:
    """All installed package names, sorted."""
    return sorted(_lines(_run(["pacman", "-Qq"], timeout)))


def explicit_packages(timeout: float = DEFAULT_TIMEOUT) -> list[str]:
    """Explicitly installed package names, in pacman's enumeration order."""
    return [line.split()[0] for line in _lines(_run(["pacman", "-Qqe"], timeout))]


def foreign_packages(timeout: float = DEFAULT_TIMEOUT) -> set[str]:
    """Packages not found in any sync database (AUR or locally built)."""
    try:
        return set(_lines(_run(["pacman", "-Qqm"], timeout)))
    except ToolInvocationFailure as e:
        # pacman exits non-zero when there are no foreign packages.
        logger.debug("No foreign packages: %s", e)
        return set()


def package_versions(timeout: float = DEFAULT_TIMEOUT) -> dict[str, str]:
    """Map package name -> installed version."""
    versions: dict[str, str] = {}
    for line in _lines(_run(["pacman", "-Q"], timeout)):
        name, _, version = line.partition(" ")
        versions[name] = version.strip()
    return versions


def parse_info_urls(text: str) -> dict[str, str]:
    """Extract Name -> URL from `pacman -Qi` output blocks."""
    urls: dict[str, str] = {}
    name = ""
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "Name":
            name = value.strip()
        elif key == "URL" and name:
            urls[name] = value.strip()
    return urls


def parse_sync_repositories(text: str) -> dict[str, str]:
    """Extract Name -> Repository from `pacman -Si` output blocks."""
    repos: dict[str, str] = {}
    repo = ""
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "Repository":
            repo = value.strip()
        elif key == "Name" and repo:
            repos[value.strip()] = repo
    return repos


def package_urls(timeout: float = DEFAULT_TIMEOUT) -> dict[str, str]:
    return parse_info_urls(_run(["pacman", "-Qi"], timeout))


def sync_repositories(timeout: float = DEFAULT_TIMEOUT) -> dict[str, str]:
    return parse_sync_repositories(_run(["pacman", "-Si"], timeout))


def tree_command(
    package: str,
    *,
    reverse: bool = False,
    depth: int | None = None,
    optional: bool = True,
) -> list[str]:
    """Build a pactree command line."""
    cmd = ["pactree"]
    if reverse:
        cmd.append("-r")
    if depth is not None:
        cmd.extend(["-d", str(depth)])
    if optional:
        cmd.append("-o")
    cmd.append(package)
    return cmd


def list_tree(
    package: str,
    reverse: bool = False,
    *,
    depth: int | None = 1,
    optional: bool = True,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """
    Return raw pactree output for one package and direction.

    Mandatory and optional edges are both listed (pactree -o) unless
    optional is False. Empty output is treated as a failure, since pactree
    always prints the root package.
    """
    cmd = tree_command(package, reverse=reverse, depth=depth, optional=optional)
    output = _run(cmd, timeout)
    if not output.strip():
        raise ToolInvocationFailure(cmd, "no output")
    return output


def list_closure(package: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Return the full optional-inclusive forward tree of a package."""
    return _run(tree_command(package, depth=None), timeout)


@dataclass(frozen=True)
class HostInfo:
    """Facts about the collecting host recorded in the snapshot."""

    os: str
    hostname: str
    shell: str
    timestamp: str


def host_info(os_release: dict[str, str] | None = None, now: datetime | None = None) -> HostInfo:
    """Gather OS id, short hostname, shell name and a timestamp."""
    release = read_os_release() if os_release is None else os_release
    os_id = (release.get("ID") or "arch").lower()
    hostname = socket.gethostname().split(".")[0] or "localhost"
    shell = Path(os.environ.get("SHELL") or "/bin/bash").name
    stamp = (now or datetime.now()).astimezone().strftime(TIMESTAMP_FORMAT)
    return HostInfo(os=os_id, hostname=hostname, shell=shell, timestamp=stamp)
