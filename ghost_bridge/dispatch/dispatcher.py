"""Dispatch — method router.

Maps ``Request.method`` (exact, case-sensitive) to a handler that converts
the request's ParamBag into the method's parameter struct, calls the state
provider or the action executor, and wraps the outcome in a Result.

The dispatcher holds no state of its own and never raises: parameter
violations become ``invalidParams``, collaborator failures become the
per-method code from :data:`FAILURE_CODES`, unknown methods become
``methodNotFound``.
"""

from __future__ import annotations

from collections.abc import Callable

from ghost_bridge.dispatch.interfaces import ActionExecutor, ActionReturn, StateProvider
from ghost_bridge.exceptions import ParamsError
from ghost_bridge.logging import get_logger
from ghost_bridge.protocol import constants as c
from ghost_bridge.protocol.constants import ErrorCode
from ghost_bridge.protocol.models import ActionOutcome, ParamBag, Request, RPCError
from ghost_bridge.protocol.params import (
    CLICK_TARGET_REQUIRED,
    ClickParams,
    FindElementsParams,
    FocusParams,
    GetAppStateParams,
    GetStateParams,
    HotkeyParams,
    PressParams,
    ScrollParams,
    TypeParams,
)
from ghost_bridge.protocol.results import (
    ActionOutcomeResult,
    AppResult,
    ElementsResult,
    MessageResult,
    Response,
    Result,
    StateResult,
)

log = get_logger(__name__)

# Error code used when a collaborator call fails inside a handler.  This is
# part of the observable contract; clients branch on these codes.
FAILURE_CODES: dict[str, ErrorCode] = {
    c.METHOD_CLICK: ErrorCode.NOT_FOUND,
    c.METHOD_FOCUS: ErrorCode.NOT_FOUND,
    c.METHOD_TYPE: ErrorCode.INTERNAL_ERROR,
    c.METHOD_HOTKEY: ErrorCode.INTERNAL_ERROR,
    c.METHOD_PRESS: ErrorCode.INVALID_PARAMS,
    c.METHOD_SCROLL: ErrorCode.INVALID_PARAMS,
}

REFRESHED_MESSAGE = "State refreshed"

Handler = Callable[[ParamBag | None], "Result | RPCError"]


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _action_result(value: ActionReturn) -> Result:
    if isinstance(value, ActionOutcome):
        return ActionOutcomeResult(data=value)
    return MessageResult(data=value)


class Dispatcher:
    """Routes decoded requests to the state provider / action executor.

    Usage::

        dispatcher = Dispatcher(state_provider, action_executor)
        response = dispatcher.dispatch(Request(method="ping", id=1))
    """

    def __init__(self, state_provider: StateProvider, action_executor: ActionExecutor) -> None:
        self._state = state_provider
        self._actions = action_executor
        self._routes: dict[str, Handler] = {
            c.METHOD_GET_STATE: self._get_state,
            c.METHOD_GET_APP_STATE: self._get_app_state,
            c.METHOD_FIND_ELEMENT: self._find_elements,
            c.METHOD_FIND_ELEMENTS: self._find_elements,
            c.METHOD_CLICK: self._click,
            c.METHOD_TYPE: self._type,
            c.METHOD_PRESS: self._press,
            c.METHOD_HOTKEY: self._hotkey,
            c.METHOD_SCROLL: self._scroll,
            c.METHOD_FOCUS: self._focus,
            c.METHOD_REFRESH: self._refresh,
            c.METHOD_PING: self._ping,
        }

    @property
    def methods(self) -> frozenset[str]:
        return frozenset(self._routes)

    def dispatch(self, request: Request) -> Response:
        handler = self._routes.get(request.method)
        if handler is None:
            log.info("rpc_method_not_found", method=request.method, request_id=request.id)
            return Response.failure(
                RPCError.method_not_found(f"Unknown method: {request.method}"), request.id
            )

        try:
            outcome = handler(request.params)
        except ParamsError as exc:
            outcome = RPCError.invalid_params(exc.message)
        except Exception as exc:
            code = FAILURE_CODES.get(request.method, ErrorCode.INTERNAL_ERROR)
            log.warning(
                "rpc_handler_failed",
                method=request.method,
                code=code.name,
                error=_describe(exc),
            )
            outcome = RPCError(code=code, message=_describe(exc))

        if isinstance(outcome, RPCError):
            log.debug("rpc_dispatched", method=request.method, success=False, code=outcome.code)
            return Response.failure(outcome, request.id)
        log.debug("rpc_dispatched", method=request.method, success=True, result=outcome.type)
        return Response.success(outcome, request.id)

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    def _get_state(self, bag: ParamBag | None) -> Result | RPCError:
        params = GetStateParams.from_bag(bag)
        if params.app is not None:
            # Served from the cached snapshot: no refresh for single-app reads.
            app = self._state.get_app_state(params.app)
            if app is None:
                return RPCError.not_found(f"App '{params.app}' not found")
            return AppResult(data=app)
        self._state.refresh()
        return StateResult(data=self._state.get_state())

    def _get_app_state(self, bag: ParamBag | None) -> Result | RPCError:
        params = GetAppStateParams.from_bag(bag)
        self._state.refresh_focus()
        app = self._state.get_app_state(params.app)
        if app is None:
            return RPCError.not_found(f"App '{params.app}' not found")
        return AppResult(data=app)

    def _find_elements(self, bag: ParamBag | None) -> Result:
        params = FindElementsParams.from_bag(bag)
        self._state.refresh_focus()
        elements = self._state.find_elements(params.query, role=params.role, app_name=params.app)
        return ElementsResult(data=elements)

    def _refresh(self, bag: ParamBag | None) -> Result:
        self._state.refresh()
        return MessageResult(data=REFRESHED_MESSAGE)

    def _ping(self, bag: ParamBag | None) -> Result:
        return MessageResult(data=c.PONG)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _click(self, bag: ParamBag | None) -> Result:
        params = ClickParams.from_bag(bag)
        if params.point is not None:
            return _action_result(self._actions.click_at(params.point.x, params.point.y))
        if params.target is None:
            raise ParamsError(c.METHOD_CLICK, CLICK_TARGET_REQUIRED)
        return _action_result(self._actions.click_target(params.target, app_name=params.app))

    def _type(self, bag: ParamBag | None) -> Result:
        params = TypeParams.from_bag(bag)
        return _action_result(self._actions.type_text(params.text))

    def _press(self, bag: ParamBag | None) -> Result:
        params = PressParams.from_bag(bag)
        return _action_result(self._actions.press(params.key))

    def _hotkey(self, bag: ParamBag | None) -> Result:
        params = HotkeyParams.from_bag(bag)
        return _action_result(self._actions.hotkey(params.keys))

    def _scroll(self, bag: ParamBag | None) -> Result:
        params = ScrollParams.from_bag(bag)
        return _action_result(
            self._actions.scroll(params.direction, params.amount, at=params.point)
        )

    def _focus(self, bag: ParamBag | None) -> Result:
        params = FocusParams.from_bag(bag)
        return _action_result(self._actions.focus(params.app))
