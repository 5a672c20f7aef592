"""Wire protocol — result variants and the response envelope.

``Result`` is a closed tagged union: every variant serializes as
``{"type": <tag>, "data": <payload>}`` and decoding dispatches on ``type``.
An unrecognized tag is a hard validation error, never silently dropped.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter, model_validator

from ghost_bridge.protocol.models import (
    ActionOutcome,
    AppInfo,
    ContentItem,
    ContextInfo,
    ElementNode,
    RPCError,
    ScreenState,
    StateDiff,
    WireModel,
)
from ghost_bridge.recording.models import Recipe, RecipeSummary, Recording, RunResult


class StateResult(WireModel):
    type: Literal["state"] = "state"
    data: ScreenState


class ElementsResult(WireModel):
    type: Literal["elements"] = "elements"
    data: list[ElementNode]


class TreeResult(WireModel):
    type: Literal["tree"] = "tree"
    data: ElementNode


class DiffResult(WireModel):
    type: Literal["diff"] = "diff"
    data: StateDiff


class ContentResult(WireModel):
    type: Literal["content"] = "content"
    data: list[ContentItem]


class AppResult(WireModel):
    type: Literal["app"] = "app"
    data: AppInfo


class MessageResult(WireModel):
    type: Literal["message"] = "message"
    data: str


class BoolResult(WireModel):
    type: Literal["bool"] = "bool"
    data: bool


class ActionOutcomeResult(WireModel):
    type: Literal["actionResult"] = "actionResult"
    data: ActionOutcome


class ContextResult(WireModel):
    type: Literal["context"] = "context"
    data: ContextInfo


class RecipeResult(WireModel):
    type: Literal["recipe"] = "recipe"
    data: Recipe


class RecipeListResult(WireModel):
    type: Literal["recipeList"] = "recipeList"
    data: list[RecipeSummary]


class RunResultResult(WireModel):
    type: Literal["runResult"] = "runResult"
    data: RunResult


class RecordingResult(WireModel):
    type: Literal["recording"] = "recording"
    data: Recording


class RecordingListResult(WireModel):
    type: Literal["recordingList"] = "recordingList"
    data: list[str]


Result = Annotated[
    Union[
        StateResult,
        ElementsResult,
        TreeResult,
        DiffResult,
        ContentResult,
        AppResult,
        MessageResult,
        BoolResult,
        ActionOutcomeResult,
        ContextResult,
        RecipeResult,
        RecipeListResult,
        RunResultResult,
        RecordingResult,
        RecordingListResult,
    ],
    Field(discriminator="type"),
]

result_adapter: TypeAdapter[Result] = TypeAdapter(Result)


class Response(WireModel):
    """Exactly one of ``result`` / ``error`` is populated."""

    result: Result | None = None
    error: RPCError | None = None
    id: int

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "Response":
        if (self.result is None) == (self.error is None):
            raise ValueError("response must carry exactly one of 'result' or 'error'")
        return self

    @classmethod
    def success(cls, result: Result, id: int) -> "Response":
        return cls(result=result, id=id)

    @classmethod
    def failure(cls, error: RPCError, id: int) -> "Response":
        return cls(error=error, id=id)

    @property
    def ok(self) -> bool:
        return self.error is None
