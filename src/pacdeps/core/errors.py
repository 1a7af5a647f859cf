"""Error taxonomy for collection and selection."""

from __future__ import annotations


class PacdepsError(Exception):
    """Base class for all pacdeps errors."""


class ToolInvocationFailure(PacdepsError):
    """An external tool call failed, timed out, or produced no output.

    Non-fatal during collection: the package's edges degrade to empty and the
    failure is recorded in the end-of-run report.
    """

    def __init__(self, command: list[str] | str, reason: str) -> None:
        self.command = command if isinstance(command, str) else " ".join(command)
        self.reason = reason
        super().__init__(f"{self.command}: {reason}")


class InvalidArgument(PacdepsError):
    """A selection parameter is out of range."""


class PackageNotFound(PacdepsError):
    """A package named in an explicit selection is not installed."""

    def __init__(self, package: str) -> None:
        self.package = package
        super().__init__(f"Package '{package}' is not installed")


class PrerequisiteMissing(PacdepsError):
    """Required external tooling is absent."""

    def __init__(self, message: str, guidance: str = "") -> None:
        self.guidance = guidance
        super().__init__(f"{message}\n{guidance}" if guidance else message)
