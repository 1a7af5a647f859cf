"""Parse pactree output into flat dependency name sets."""

from __future__ import annotations

import re
from dataclasses import dataclass

OPTIONAL_MARKER = "(optional)"
UNRESOLVABLE_MARKER = "[unresolvable]"
# Appended to optional dependencies that pactree could not resolve.
BROKEN_SUFFIX = "*"

# Box-drawing glyphs and indentation pactree uses to draw the tree.
_TREE_PREFIX = re.compile(r"^[├└│─ ]+")
_VERSION_CONSTRAINT = re.compile(r"[<>=].*$")
_NAME = re.compile(r"^[^:\s]+")


@dataclass(frozen=True)
class ListingEntry:
    """One classified line of a pactree listing."""

    name: str
    optional: bool = False
    unresolvable: bool = False


@dataclass(frozen=True)
class DependencyListing:
    """Mandatory and optional names from one pactree listing (one direction)."""

    mandatory: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()


def _bare_name(line: str) -> str:
    """Strip tree decoration, version constraints and trailing text from a line."""
    text = _TREE_PREFIX.sub("", line.strip("\n"))
    match = _NAME.match(text)
    if match is None:
        return ""
    return _VERSION_CONSTRAINT.sub("", match.group(0))


def classify_line(line: str, package: str) -> ListingEntry | None:
    """
    Classify a single line of pactree output.

    Returns None for blank lines and for the queried package itself. Optional
    entries that pactree marks unresolvable keep their name with a trailing
    '*' so broken optional dependencies stay visible.
    """
    name = _bare_name(line)
    if not name:
        return None
    optional = OPTIONAL_MARKER in line
    unresolvable = UNRESOLVABLE_MARKER in line
    if optional and unresolvable:
        name += BROKEN_SUFFIX
    if name == package:
        return None
    return ListingEntry(name=name, optional=optional, unresolvable=unresolvable)


def parse_listing(text: str, package: str) -> DependencyListing:
    """
    Split a pactree listing into mandatory and optional dependency names.

    Output tuples are deduplicated and sorted by name.
    """
    mandatory: set[str] = set()
    optional: set[str] = set()
    for line in text.splitlines():
        entry = classify_line(line, package)
        if entry is None:
            continue
        (optional if entry.optional else mandatory).add(entry.name)
    return DependencyListing(mandatory=tuple(sorted(mandatory)), optional=tuple(sorted(optional)))


def parse_closure_listing(text: str) -> set[str]:
    """
    Collect every resolvable name from an optional-inclusive pactree listing.

    Used for selection closures: the root package is kept, mandatory and
    optional entries are merged, and unresolvable entries are dropped.
    """
    names: set[str] = set()
    for line in text.splitlines():
        if UNRESOLVABLE_MARKER in line:
            continue
        text_line = _TREE_PREFIX.sub("", line)
        text_line = text_line.split(" provides", 1)[0]
        name = _bare_name(text_line)
        if name:
            names.add(name)
    return names
