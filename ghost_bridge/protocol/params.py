"""Typed parameter structs for every method.

The wire carries one flat :class:`ParamBag` for all methods.  Each handler
first converts it into the explicit struct below, which enforces the
method's required fields and applies its documented defaults:

    method          requires                      optional / defaults
    getState        —                             app
    getAppState     app                           —
    findElement(s)  query or target               role, app
    click           (x and y) or target/query     app
    type            text                          —
    press           key                           —
    hotkey          keys (non-empty)              —
    scroll          —                             direction="down", amount=3.0, x/y
    focus           app or target                 —
    refresh, ping   —                             —

Conversion failures raise :class:`ParamsError`, which the dispatcher maps
to ``invalidParams``.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from ghost_bridge.exceptions import ParamsError
from ghost_bridge.protocol import constants as c
from ghost_bridge.protocol.models import ParamBag, Point

DEFAULTS: dict[str, dict[str, Any]] = {
    c.METHOD_SCROLL: {"direction": "down", "amount": 3.0},
}

CLICK_TARGET_REQUIRED = "'target' or 'x'/'y' required"


def _bag(bag: ParamBag | None) -> ParamBag:
    return bag if bag is not None else ParamBag()


def _first(*values: Any) -> Any:
    """First value that is not None (``a ?? b`` semantics; empty strings count)."""
    for value in values:
        if value is not None:
            return value
    return None


def _point(bag: ParamBag) -> Point | None:
    if bag.x is not None and bag.y is not None:
        return Point(x=bag.x, y=bag.y)
    return None


class MethodParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    METHOD: ClassVar[str] = ""

    @classmethod
    def _fail(cls, message: str) -> ParamsError:
        return ParamsError(cls.METHOD, message)


# ---------------------------------------------------------------------------
# State queries
# ---------------------------------------------------------------------------


class GetStateParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_GET_STATE

    app: str | None = None

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "GetStateParams":
        return cls(app=_bag(bag).app)


class GetAppStateParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_GET_APP_STATE

    app: str

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "GetAppStateParams":
        app = _bag(bag).app
        if app is None:
            raise cls._fail("'app' parameter required")
        return cls(app=app)


class FindElementsParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_FIND_ELEMENTS

    query: str
    role: str | None = None
    app: str | None = None

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "FindElementsParams":
        b = _bag(bag)
        query = _first(b.query, b.target)
        if query is None:
            raise cls._fail("'query' or 'target' parameter required")
        return cls(query=query, role=b.role, app=b.app)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class ClickParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_CLICK

    point: Point | None = None
    target: str | None = None
    app: str | None = None

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "ClickParams":
        b = _bag(bag)
        point = _point(b)
        if point is not None:
            return cls(point=point, app=b.app)
        target = _first(b.target, b.query)
        if target is None:
            raise cls._fail(CLICK_TARGET_REQUIRED)
        return cls(target=target, app=b.app)


class TypeParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_TYPE

    text: str

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "TypeParams":
        text = _bag(bag).text
        if text is None:
            raise cls._fail("'text' parameter required")
        return cls(text=text)


class PressParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_PRESS

    key: str

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "PressParams":
        key = _bag(bag).key
        if key is None:
            raise cls._fail("'key' parameter required")
        return cls(key=key)


class HotkeyParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_HOTKEY

    keys: list[str]

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "HotkeyParams":
        keys = _bag(bag).keys
        if not keys:
            raise cls._fail("'keys' array required")
        return cls(keys=list(keys))


class ScrollParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_SCROLL

    direction: str = DEFAULTS[c.METHOD_SCROLL]["direction"]
    amount: float = DEFAULTS[c.METHOD_SCROLL]["amount"]
    point: Point | None = None

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "ScrollParams":
        b = _bag(bag)
        defaults = DEFAULTS[c.METHOD_SCROLL]
        return cls(
            direction=_first(b.direction, defaults["direction"]),
            amount=_first(b.amount, defaults["amount"]),
            point=_point(b),
        )


class FocusParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_FOCUS

    app: str

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "FocusParams":
        b = _bag(bag)
        app = _first(b.app, b.target)
        if app is None:
            raise cls._fail("'app' or 'target' parameter required")
        return cls(app=app)


# ---------------------------------------------------------------------------
# Recording / recipe management
# ---------------------------------------------------------------------------


class RecordStartParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_RECORD_START

    name: str | None = None

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "RecordStartParams":
        b = _bag(bag)
        return cls(name=_first(b.name, b.value))


class NameParams(MethodParams):
    """``name`` (or legacy ``value``) identifying a recipe or recording."""

    name: str

    @classmethod
    def from_bag(cls, bag: ParamBag | None, method: str = "") -> "NameParams":
        b = _bag(bag)
        name = _first(b.name, b.value)
        if not name:
            raise ParamsError(method, "'name' parameter required")
        return cls(name=name)


class RecipeSaveParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_RECIPE_SAVE

    text: str
    name: str | None = None

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "RecipeSaveParams":
        b = _bag(bag)
        if not b.text:
            raise cls._fail("'text' parameter (recipe JSON) required")
        return cls(text=b.text, name=b.name)


class RunParams(MethodParams):
    METHOD: ClassVar[str] = c.METHOD_RUN

    name: str
    values: dict[str, str] = {}

    @classmethod
    def from_bag(cls, bag: ParamBag | None) -> "RunParams":
        b = _bag(bag)
        name = _first(b.name, b.query)
        if not name:
            raise cls._fail("'name' parameter (recipe name) required")
        values: dict[str, str] = {}
        if b.text:
            try:
                raw = json.loads(b.text)
            except json.JSONDecodeError as exc:
                raise cls._fail(f"'text' must be a JSON object of parameter values: {exc}") from exc
            if not isinstance(raw, dict):
                raise cls._fail("'text' must be a JSON object of parameter values")
            values = {str(k): str(v) for k, v in raw.items()}
        return cls(name=name, values=values)
