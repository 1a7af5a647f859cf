"""Choose seed packages and expand them to their full dependency closure."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from pacdeps.core.errors import InvalidArgument, PackageNotFound, ToolInvocationFailure
from pacdeps.core.parser import parse_closure_listing

logger = logging.getLogger(__name__)

# list_closure(package) -> raw optional-inclusive, depth-unbounded pactree text.
ClosureLister = Callable[[str], str]


class SelectionMode(str, Enum):
    ALL = "all"
    FIRST = "first"
    LAST = "last"
    RANDOM = "random"
    SELECT = "select"


@dataclass(frozen=True)
class Selection:
    """Which packages a collection run should cover."""

    mode: SelectionMode = SelectionMode.ALL
    count: int | None = None
    names: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.mode in (SelectionMode.FIRST, SelectionMode.LAST, SelectionMode.RANDOM):
            if self.count is None or self.count < 0:
                raise InvalidArgument(f"--{self.mode.value} requires a non-negative number")
        if self.mode is SelectionMode.SELECT and not self.names:
            raise InvalidArgument("--select requires a comma-separated list of packages")

    @classmethod
    def from_args(
        cls,
        *,
        first: int | None = None,
        last: int | None = None,
        random_count: int | None = None,
        select: str | Sequence[str] | None = None,
    ) -> Selection:
        """Build a selection from CLI-style options; at most one may be given."""
        given = [
            (mode, value)
            for mode, value in (
                (SelectionMode.FIRST, first),
                (SelectionMode.LAST, last),
                (SelectionMode.RANDOM, random_count),
                (SelectionMode.SELECT, select),
            )
            if value is not None
        ]
        if not given:
            return cls()
        if len(given) > 1:
            raise InvalidArgument("Only one selection mode may be given")
        mode, value = given[0]
        if mode is SelectionMode.SELECT:
            raw = value.split(",") if isinstance(value, str) else value
            names = tuple(n.strip() for n in raw if n.strip())
            return cls(mode=mode, names=names)
        return cls(mode=mode, count=value)

    def to_filter_dict(self, seeds: Sequence[str] = ()) -> dict:
        """
        Describe the selection for the snapshot envelope.

        Random draws are recorded as the explicit list of drawn packages, so
        the snapshot says exactly what was collected.
        """
        if self.mode is SelectionMode.ALL:
            return {"type": "none", "value": None}
        if self.mode in (SelectionMode.FIRST, SelectionMode.LAST):
            return {"type": self.mode.value, "value": self.count}
        if self.mode is SelectionMode.RANDOM:
            return {"type": "select", "value": list(seeds)}
        return {"type": "select", "value": list(self.names)}


@dataclass(frozen=True)
class SelectionResult:
    """Packages to collect, plus the seeds they were expanded from."""

    selection: Selection
    packages: list[str] = field(default_factory=list)
    seeds: list[str] = field(default_factory=list)


def select_seeds(
    selection: Selection,
    installed: Sequence[str],
    explicit: Sequence[str],
    *,
    rng: random.Random | None = None,
) -> list[str]:
    """
    Pick the seed packages for a selection.

    first/last slice the explicitly installed list in enumeration order and
    clamp to its length. random draws without replacement and fails when asked
    for more packages than are explicitly installed. select requires every
    name to be installed, explicit or not.
    """
    mode = selection.mode
    if mode is SelectionMode.ALL:
        return list(installed)
    if mode is SelectionMode.FIRST:
        return list(explicit[: selection.count])
    if mode is SelectionMode.LAST:
        start = max(len(explicit) - selection.count, 0)
        return list(explicit[start:])
    if mode is SelectionMode.RANDOM:
        if selection.count > len(explicit):
            raise InvalidArgument(
                f"Cannot select {selection.count} random packages: "
                f"only {len(explicit)} explicitly installed"
            )
        return (rng or random).sample(list(explicit), selection.count)
    known = set(installed)
    for name in selection.names:
        if name not in known:
            raise PackageNotFound(name)
    return list(selection.names)


def expand_closure(seeds: Iterable[str], list_closure: ClosureLister) -> set[str]:
    """
    Union of the optional-inclusive forward closures of all seeds.

    Each seed is part of its own closure even if its listing cannot be read.
    """
    included: set[str] = set()
    for seed in seeds:
        included.add(seed)
        try:
            text = list_closure(seed)
        except ToolInvocationFailure as e:
            logger.warning("Could not expand %s: %s", seed, e.reason)
            continue
        included.update(parse_closure_listing(text))
    return included


def expand_selection(
    selection: Selection,
    installed: Sequence[str],
    explicit: Sequence[str],
    list_closure: ClosureLister,
    *,
    rng: random.Random | None = None,
) -> SelectionResult:
    """
    Resolve a selection to the installed packages a run should collect.

    Returns installed names (in their original alphabetical order) that fall
    inside the closure of the selected seeds; for the all mode, every
    installed package.
    """
    seeds = select_seeds(selection, installed, explicit, rng=rng)
    if selection.mode is SelectionMode.ALL:
        return SelectionResult(selection=selection, packages=list(installed), seeds=[])
    logger.info("Selected %d seed package(s): %s", len(seeds), ", ".join(seeds))
    closure = expand_closure(seeds, list_closure)
    packages = [name for name in installed if name in closure]
    logger.info("Total packages in dependency tree: %d", len(packages))
    return SelectionResult(selection=selection, packages=packages, seeds=seeds)
