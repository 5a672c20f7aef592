"""Ghost Bridge — Exception hierarchy.

All exceptions raised by the control plane inherit from GhostError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    GhostError
    ├── ProtocolError
    │   ├── DecodeError
    │   └── ParamsError
    ├── StoreError
    │   └── RecipeValidationError
    └── RecipeError
        ├── MissingParameterError
        └── SubstitutionError
"""

from __future__ import annotations

from typing import Any


class GhostError(Exception):
    """Base exception for all Ghost Bridge errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Protocol layer
# ---------------------------------------------------------------------------


class ProtocolError(GhostError):
    """Base for all wire protocol errors."""


class DecodeError(ProtocolError):
    """The incoming bytes could not be decoded into a protocol envelope."""

    def __init__(self, message: str, raw_payload: str | None = None) -> None:
        super().__init__(message, context={"raw_payload": raw_payload})
        self.raw_payload = raw_payload


class ParamsError(ProtocolError):
    """A method's parameter contract was not satisfied."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(message, context={"method": method})
        self.method = method


# ---------------------------------------------------------------------------
# Persistence layer
# ---------------------------------------------------------------------------


class StoreError(GhostError):
    """A recipe/recording file could not be written, renamed or removed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message, context={"path": path})
        self.path = path


class RecipeValidationError(StoreError):
    """Raw recipe bytes do not describe a well-formed Recipe."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.context["validation_errors"] = errors or []
        self.errors = errors or []


# ---------------------------------------------------------------------------
# Recipe execution
# ---------------------------------------------------------------------------


class RecipeError(GhostError):
    """Base for errors raised while preparing a recipe run."""


class MissingParameterError(RecipeError):
    """A required recipe parameter has neither a value nor a default."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required parameter: '{name}'", context={"param": name})
        self.name = name


class SubstitutionError(RecipeError):
    """A ``{{param}}`` placeholder has no value to substitute."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Unresolved recipe parameter: {{{{{name}}}}}", context={"param": name}
        )
        self.name = name
