"""Exception hierarchy for the wallet glue."""

from __future__ import annotations


class GlueError(Exception):
    """Base exception for all glue-specific errors."""


class NoSuchWindowError(GlueError):
    """Raised when a window handle no longer refers to an open window.

    Attributes:
        handle: The handle that could not be resolved.
    """

    def __init__(self, handle: str | None) -> None:
        self.handle = handle
        super().__init__(f"No such window: {handle}")


class UnsupportedActionError(GlueError):
    """Raised when a command carries an action outside ``approve`` / ``reject``."""

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"unsupported action {action!r}")


class ActionNotImplementedError(GlueError):
    """Raised for command families the harness declares but the glue does not implement."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"coinbase - {command} not implemented")


class UnknownCommandError(GlueError):
    """Raised when an inbound command names a kind the glue has never heard of."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"unknown command {kind!r}")


class LockInvariantError(GlueError):
    """Raised when the session lock's queue bookkeeping is violated."""


class UiTimeoutError(GlueError):
    """Raised when a UI element did not become visible or interactable in time.

    Attributes:
        selector: The selector (or description) that was waited on.
        timeout_ms: The bound that expired.
    """

    def __init__(self, selector: str, timeout_ms: int) -> None:
        self.selector = selector
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out after {timeout_ms}ms waiting for {selector}")


class WindowTimeoutError(UiTimeoutError):
    """Raised when an expected new window did not appear in time."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__("new window", timeout_ms)


class SetupError(GlueError):
    """Raised when the one-time wallet import/unlock flow fails."""
