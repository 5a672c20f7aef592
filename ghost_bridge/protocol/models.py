"""Wire protocol — canonical data models.

Request envelope, parameter bag, error payload and the UI state snapshots
returned by the state provider, validated through Pydantic v2.  Result
variants and the response envelope live in :mod:`ghost_bridge.protocol.results`.
Behaviour here is limited to small read-only derivations over the data.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from ghost_bridge.protocol.constants import TIMESTAMP_FORMAT, ErrorCode


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


Timestamp = Annotated[
    datetime, PlainSerializer(_format_timestamp, return_type=str, when_used="json")
]


def utcnow() -> datetime:
    """Current UTC time truncated to whole seconds (the wire precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class WireModel(BaseModel):
    """Base for models exchanged with callers: camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Request envelope
# ---------------------------------------------------------------------------


class ParamBag(WireModel):
    """Flat bag of optional named parameters shared by every method.

    Unknown keys are ignored; required-ness is decided per method by
    :mod:`ghost_bridge.protocol.params`, never here.
    """

    model_config = ConfigDict(extra="ignore")

    query: str | None = None
    role: str | None = None
    target: str | None = None
    text: str | None = None
    key: str | None = None
    keys: list[str] | None = None
    app: str | None = None
    x: float | None = None
    y: float | None = None
    direction: str | None = None
    amount: float | None = None
    action: str | None = None
    depth: int | None = None
    name: str | None = None
    value: str | None = None


class Request(WireModel):
    method: str
    params: ParamBag | None = None
    id: int


class RPCError(WireModel):
    code: ErrorCode
    message: str

    @classmethod
    def not_found(cls, message: str) -> "RPCError":
        return cls(code=ErrorCode.NOT_FOUND, message=message)

    @classmethod
    def invalid_params(cls, message: str) -> "RPCError":
        return cls(code=ErrorCode.INVALID_PARAMS, message=message)

    @classmethod
    def permission_denied(cls, message: str) -> "RPCError":
        return cls(code=ErrorCode.PERMISSION_DENIED, message=message)

    @classmethod
    def internal_error(cls, message: str) -> "RPCError":
        return cls(code=ErrorCode.INTERNAL_ERROR, message=message)

    @classmethod
    def method_not_found(cls, message: str) -> "RPCError":
        return cls(code=ErrorCode.METHOD_NOT_FOUND, message=message)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class Point(WireModel):
    x: float
    y: float


class Size(WireModel):
    width: float
    height: float


# ---------------------------------------------------------------------------
# Screen state
# ---------------------------------------------------------------------------


class WindowInfo(WireModel):
    title: str | None = None
    position: Point | None = None
    size: Size | None = None
    is_main: bool = False
    is_focused: bool = False
    is_minimized: bool = False


class AppInfo(WireModel):
    name: str
    bundle_id: str | None = None
    pid: int
    is_active: bool = False
    windows: list[WindowInfo] = Field(default_factory=list)


class ElementNode(WireModel):
    """Serializable snapshot of one accessibility-tree element."""

    id: str
    role: str
    label: str | None = None
    value: str | None = None
    role_description: str | None = None
    position: Point | None = None
    size: Size | None = None
    is_interactive: bool = False
    is_enabled: bool = True
    is_focused: bool = False
    actions: list[str] | None = None
    children: list[ElementNode] | None = None


class ScreenState(WireModel):
    timestamp: Timestamp = Field(default_factory=utcnow)
    frontmost_app: AppInfo | None = None
    focused_element: ElementNode | None = None
    apps: list[AppInfo] = Field(default_factory=list)

    def find_app(self, name: str) -> AppInfo | None:
        """First app whose name contains *name*, case-insensitively."""
        needle = name.lower()
        for app in self.apps:
            if needle in app.name.lower():
                return app
        return None


class FocusInfo(WireModel):
    role: str
    label: str | None = None
    value: str | None = None
    is_editable: bool = False


class ContextInfo(WireModel):
    """Situational summary of one app: where the agent is and what it can do."""

    app: str
    bundle_id: str | None = None
    window: str | None = None
    url: str | None = None
    page_title: str | None = None
    focused: FocusInfo | None = None
    interactive_elements: list[str] = Field(default_factory=list)
    window_tabs: list[str] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: ScreenState, app_name: str | None = None) -> "ContextInfo | None":
        """Derive a context for *app_name* (or the frontmost app) from *state*."""
        app = state.find_app(app_name) if app_name else state.frontmost_app
        if app is None:
            return None

        titles = [w.title for w in app.windows if w.title]
        window = next(
            (w.title for w in app.windows if w.is_focused and w.title),
            next((w.title for w in app.windows if w.is_main and w.title), None),
        )
        if window is None and titles:
            window = titles[0]

        focused = None
        is_frontmost = state.frontmost_app is not None and state.frontmost_app.pid == app.pid
        if is_frontmost and state.focused_element is not None:
            element = state.focused_element
            focused = FocusInfo(
                role=element.role,
                label=element.label,
                value=element.value,
                is_editable=element.role in ("AXTextField", "AXTextArea", "AXComboBox"),
            )

        return cls(
            app=app.name,
            bundle_id=app.bundle_id,
            window=window,
            focused=focused,
            window_tabs=titles,
        )


class ActionOutcome(WireModel):
    """Result of an action together with where the UI ended up."""

    success: bool
    description: str
    method: str = "none"
    context: ContextInfo | None = None


class ContentItem(WireModel):
    type: str
    text: str
    role: str
    depth: int = 0


# ---------------------------------------------------------------------------
# State diffs
# ---------------------------------------------------------------------------


class AppActivated(WireModel):
    type: Literal["appActivated"] = "appActivated"
    name: str


class AppLaunched(WireModel):
    type: Literal["appLaunched"] = "appLaunched"
    name: str


class AppQuit(WireModel):
    type: Literal["appQuit"] = "appQuit"
    name: str


class WindowOpened(WireModel):
    type: Literal["windowOpened"] = "windowOpened"
    app: str
    title: str | None = None


class WindowClosed(WireModel):
    type: Literal["windowClosed"] = "windowClosed"
    app: str
    title: str | None = None


class WindowTitleChanged(WireModel):
    type: Literal["windowTitleChanged"] = "windowTitleChanged"
    app: str
    previous: str | None = Field(default=None, alias="from")
    to: str | None = None


class FocusChanged(WireModel):
    type: Literal["focusChanged"] = "focusChanged"
    app: str
    element: str


StateChange = Annotated[
    Union[
        AppActivated,
        AppLaunched,
        AppQuit,
        WindowOpened,
        WindowClosed,
        WindowTitleChanged,
        FocusChanged,
    ],
    Field(discriminator="type"),
]


class StateDiff(WireModel):
    timestamp: Timestamp = Field(default_factory=utcnow)
    changes: list[StateChange] = Field(default_factory=list)
