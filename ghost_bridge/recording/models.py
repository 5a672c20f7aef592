"""Recording & recipes — data models.

A Recording is the raw, immutable capture of a session: every dispatched
command with its outcome, mistakes and retries included.  A Recipe is a
named, parameterized command sequence authored (usually from a recording)
for replay.  Both serialize to pretty-printed, key-sorted JSON files.

Recordings use camelCase keys like the rest of the wire protocol; recipe
files use snake_case keys because they are written by hand.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ghost_bridge import __version__
from ghost_bridge.protocol.constants import RECIPE_SCHEMA_VERSION, RECORDING_STAMP_FORMAT
from ghost_bridge.protocol.models import ContextInfo, ParamBag, Timestamp, WireModel

# Names become file names.
_NAME_RE = re.compile(r"[^/\\.\x00-\x1f][^/\\\x00-\x1f]*")


def check_name(value: str) -> str:
    if not _NAME_RE.fullmatch(value):
        raise ValueError(
            f"invalid name {value!r}: must not contain path separators or control "
            "characters, or start with '.'"
        )
    return value


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class RecordedStep(WireModel):
    """One dispatched command captured while a recording was active."""

    model_config = ConfigDict(frozen=True)

    timestamp: Timestamp
    method: str
    params: ParamBag | None = None
    success: bool
    description: str | None = None
    context: ContextInfo | None = None


class Recording(WireModel):
    """A stopped recording session.  Identified by ``name`` + ``recorded_at``."""

    model_config = ConfigDict(frozen=True)

    name: str
    ghost_version: str = Field(
        default=__version__, description="Package version that captured the session."
    )
    recorded_at: Timestamp
    duration: float = Field(ge=0.0, description="Elapsed wall-clock seconds.")
    steps: tuple[RecordedStep, ...] = ()

    @property
    def file_stem(self) -> str:
        """``{name}-{YYYYMMDDTHHMMSS}``: the stored filename without ``.json``."""
        return f"{self.name}-{self.recorded_at.strftime(RECORDING_STAMP_FORMAT)}"


# ---------------------------------------------------------------------------
# Recipe
# ---------------------------------------------------------------------------


class FailurePolicy(str, Enum):
    """What the runner does when a step's action fails."""

    STOP = "stop"
    SKIP = "skip"


class WaitCondition(BaseModel):
    """Condition polled after a step succeeds.

    ``condition`` is one of elementExists, elementGone, titleContains,
    titleChanged.  ``timeout`` falls back to the runner's default.
    """

    condition: str
    value: str | None = None
    timeout: float | None = Field(default=None, gt=0.0)


class RecipeParam(BaseModel):
    """Declaration of a value the caller supplies when running a recipe."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = "string"
    description: str | None = None
    required: bool = True
    default_value: str | None = Field(default=None, alias="default")


class RecipeStep(BaseModel):
    """A single recipe step — maps onto one dispatched method call.

    ``params`` is a flat string map supporting ``{{param}}`` substitution;
    list-valued parameters (hotkey ``keys``) are comma separated.
    """

    id: int
    action: str = Field(min_length=1)
    params: dict[str, str] = Field(default_factory=dict)
    wait_after: WaitCondition | None = None
    delay_ms: int | None = Field(default=None, ge=0)
    note: str | None = None
    on_failure: FailurePolicy | None = None


class Recipe(BaseModel):
    schema_version: int = RECIPE_SCHEMA_VERSION
    name: str = Field(min_length=1)
    description: str | None = None
    app: str | None = Field(
        default=None,
        description="Primary app; listing metadata only, does not restrict steps.",
    )
    params: dict[str, RecipeParam] | None = None
    steps: list[RecipeStep]

    @field_validator("name")
    @classmethod
    def _valid_name(cls, v: str) -> str:
        return check_name(v)

    def to_file_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def summary(self, source: str = "user") -> "RecipeSummary":
        return RecipeSummary(
            name=self.name,
            description=self.description,
            app=self.app,
            params=sorted(self.params or {}),
            step_count=len(self.steps),
            source=source,
        )


class RecipeSummary(WireModel):
    """Compact listing entry — no step details."""

    name: str
    description: str | None = None
    app: str | None = None
    params: list[str] = Field(default_factory=list)
    step_count: int
    source: str = "user"


# ---------------------------------------------------------------------------
# Run results
# ---------------------------------------------------------------------------


class StepResult(WireModel):
    id: int
    action: str
    success: bool
    description: str | None = None
    duration: float


class FailedStepInfo(WireModel):
    id: int
    action: str
    params: dict[str, str] = Field(default_factory=dict)
    error: str
    context: ContextInfo | None = None


class RunResult(WireModel):
    recipe: str
    success: bool
    steps_completed: int
    steps_total: int
    duration: float
    failed_step: FailedStepInfo | None = None
    final_context: ContextInfo | None = None
    step_results: list[StepResult] = Field(default_factory=list)
