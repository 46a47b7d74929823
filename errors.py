"""Exception hierarchy for the demo flows.

Every failure raised by the dispatcher, the extractor or the model client
inherits from DemoError. None of them are retried.
"""
from __future__ import annotations

from typing import Any, Optional


class DemoError(Exception):
    """Base exception for all demo errors."""


class RemoteCallError(DemoError):
    """The model service call failed (transport, auth, rate limit, timeout)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message)


class CancelledError(DemoError):
    """The pending model call was cancelled by the caller."""

    def __init__(self) -> None:
        super().__init__("Model call was cancelled")


class NoActionSelectedError(DemoError):
    """The model replied without selecting a tool although one was required."""

    def __init__(self) -> None:
        super().__init__("No tool was used")


class MalformedArgumentsError(DemoError):
    """Tool arguments could not be decoded into the handler's parameters."""

    def __init__(self, name: str, raw_arguments: Any, reason: str) -> None:
        self.name = name
        self.raw_arguments = raw_arguments
        super().__init__(f"Malformed arguments for {name}: {reason} (raw={raw_arguments!r})")


class UnknownActionError(DemoError):
    """The model selected a tool that has no local handler."""

    def __init__(self, name: Any) -> None:
        self.name = name
        super().__init__(f"Unknown function called: {name!r}")


class CatalogMismatchError(DemoError):
    """The declared tool catalog and the handler table disagree."""

    def __init__(self, missing_handlers: list[str], undeclared_handlers: list[str]) -> None:
        self.missing_handlers = missing_handlers
        self.undeclared_handlers = undeclared_handlers
        parts = []
        if missing_handlers:
            parts.append(f"no handler for {', '.join(missing_handlers)}")
        if undeclared_handlers:
            parts.append(f"handler not declared to the model: {', '.join(undeclared_handlers)}")
        super().__init__("Tool catalog mismatch: " + "; ".join(parts))


class MalformedResponseError(DemoError):
    """The model response could not be read as the declared output schema."""


class ConfigError(DemoError):
    """A DEMO_* environment variable holds an unusable value."""
