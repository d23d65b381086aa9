"""Error types raised or produced by flowbox."""

from __future__ import annotations

from typing import Any


class FlowBoxError(Exception):
    """Base class for errors originating in flowbox itself."""


class ConfigurationError(FlowBoxError):
    """Error raised when a configuration change fails validation.

    The rejected changes are preserved so callers can report them.
    """

    def __init__(self, message: str, changes: dict[str, Any]) -> None:
        self.changes = changes
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ConfigurationError({super().__repr__()}, changes={self.changes!r})"


class UnwrapDepthError(FlowBoxError):
    """Error value produced when nested boxes or awaitables exceed the unwrap bound.

    It is returned as a value, not raised, so it travels down the pipeline
    like any other error.
    """

    def __init__(self, depth: int) -> None:
        self.depth = depth
        super().__init__(f"Exceeded maximum unwrap depth of {depth}")
