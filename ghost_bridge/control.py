"""Control plane — decode, route, observe, encode.

    caller bytes
        │ decode_request          (DecodeError -> invalidParams, id 0)
        ▼
    ControlPlane.dispatch ── meta-command? ──► recording / recipe handlers
        │                                     (recordStart, run, recipeList, ...)
        ▼
    Dispatcher.dispatch  ──► StateProvider / ActionExecutor
        │
        ▼
    RecordingInterceptor.observe(method, params, response)
        │ encode_response         (never raises)
        ▼
    caller bytes

Every dispatch runs under one re-entrant lock, so no two requests interleave
their effects on session state.  Transport framing is left to the caller:
anything that can hand over one request's bytes can drive :meth:`handle`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from ghost_bridge.config import Settings, get_settings
from ghost_bridge.dispatch.dispatcher import Dispatcher
from ghost_bridge.dispatch.interfaces import ActionExecutor, NotificationSource, StateProvider
from ghost_bridge.exceptions import DecodeError, ParamsError, RecipeValidationError, StoreError
from ghost_bridge.logging import bind_request_context, clear_request_context, get_logger
from ghost_bridge.observer import SystemObserver
from ghost_bridge.protocol import constants as c
from ghost_bridge.protocol.codec import decode_request, encode_response
from ghost_bridge.protocol.models import ParamBag, Request, RPCError
from ghost_bridge.protocol.params import NameParams, RecipeSaveParams, RecordStartParams, RunParams
from ghost_bridge.protocol.results import (
    MessageResult,
    RecipeListResult,
    RecipeResult,
    RecordingListResult,
    RecordingResult,
    Response,
    Result,
    RunResultResult,
)
from ghost_bridge.recording.models import check_name
from ghost_bridge.recording.recorder import RecordingInterceptor
from ghost_bridge.recording.runner import RecipeRunner
from ghost_bridge.recording.store import RecipeStore

log = get_logger(__name__)

MetaHandler = Callable[[ParamBag | None], "Result | RPCError"]


class ControlPlane:
    """Single-actor front door of the agent.

    Usage::

        plane = ControlPlane(state_provider, action_executor)
        reply = plane.handle(b'{"method": "ping", "id": 1}')
    """

    def __init__(
        self,
        state_provider: StateProvider,
        action_executor: ActionExecutor,
        store: RecipeStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._state = state_provider
        self._store = store if store is not None else RecipeStore(self._settings.storage.base_dir)
        self._dispatcher = Dispatcher(state_provider, action_executor)
        self._recorder = RecordingInterceptor(self._store)
        self._runner = RecipeRunner(self._dispatch_core, state_provider, self._settings.runner)
        self._lock = threading.RLock()
        self._meta: dict[str, MetaHandler] = {
            c.METHOD_RECORD_START: self._record_start,
            c.METHOD_RECORD_STOP: self._record_stop,
            c.METHOD_RECORD_STATUS: self._record_status,
            c.METHOD_RECORDING_LIST: self._recording_list,
            c.METHOD_RECORDING_SHOW: self._recording_show,
            c.METHOD_RECIPE_LIST: self._recipe_list,
            c.METHOD_RECIPE_SHOW: self._recipe_show,
            c.METHOD_RECIPE_SAVE: self._recipe_save,
            c.METHOD_RECIPE_DELETE: self._recipe_delete,
            c.METHOD_RUN: self._run,
        }

    @property
    def recorder(self) -> RecordingInterceptor:
        return self._recorder

    @property
    def store(self) -> RecipeStore:
        return self._store

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def create_observer(self, source: NotificationSource) -> SystemObserver:
        """Observer whose refreshes are serialised with dispatches."""
        return SystemObserver(self._state, source, lock=self._lock)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle(self, raw: bytes | str) -> bytes:
        """Process one encoded request and return the encoded response."""
        try:
            request = decode_request(raw)
        except DecodeError as exc:
            log.info("request_decode_failed", error=exc.message)
            error = RPCError.invalid_params(f"Failed to parse request: {exc.message}")
            return encode_response(Response.failure(error, 0))
        return encode_response(self.dispatch(request))

    def dispatch(self, request: Request) -> Response:
        with self._lock:
            bind_request_context(
                request_id=request.id,
                method=request.method,
                recording=self._recorder.session_name,
            )
            try:
                handler = self._meta.get(request.method)
                if handler is None:
                    return self._dispatch_core(request)
                response = self._dispatch_meta(handler, request)
                self._recorder.observe(request.method, request.params, response)
                return response
            finally:
                clear_request_context()

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _dispatch_core(self, request: Request) -> Response:
        response = self._dispatcher.dispatch(request)
        self._recorder.observe(request.method, request.params, response)
        return response

    def _dispatch_meta(self, handler: MetaHandler, request: Request) -> Response:
        try:
            outcome = handler(request.params)
        except ParamsError as exc:
            outcome = RPCError.invalid_params(exc.message)
        except Exception as exc:
            log.error("meta_command_failed", method=request.method, error=str(exc), exc_info=True)
            outcome = RPCError.internal_error(str(exc) or type(exc).__name__)
        if isinstance(outcome, RPCError):
            return Response.failure(outcome, request.id)
        return Response.success(outcome, request.id)

    # -- recording ----------------------------------------------------

    def _record_start(self, bag: ParamBag | None) -> Result | RPCError:
        if not self._settings.recording.enabled:
            return RPCError.permission_denied("Recording is disabled")
        name = RecordStartParams.from_bag(bag).name or self._settings.recording.default_name
        try:
            check_name(name)
        except ValueError as exc:
            return RPCError.invalid_params(str(exc))
        if not self._recorder.start(name):
            return RPCError.invalid_params(
                f"Already recording '{self._recorder.session_name}'. Stop it first."
            )
        return MessageResult(data=f"Recording started: '{name}'")

    def _record_stop(self, bag: ParamBag | None) -> Result | RPCError:
        recording = self._recorder.stop()
        if recording is None:
            return RPCError.not_found("No recording in progress")
        return RecordingResult(data=recording)

    def _record_status(self, bag: ParamBag | None) -> Result:
        if not self._recorder.is_active:
            return MessageResult(data="Not recording")
        return MessageResult(
            data=f"Recording '{self._recorder.session_name}' ({self._recorder.step_count} steps)"
        )

    def _recording_list(self, bag: ParamBag | None) -> Result:
        return RecordingListResult(data=self._store.list_recordings())

    def _recording_show(self, bag: ParamBag | None) -> Result | RPCError:
        name = NameParams.from_bag(bag, c.METHOD_RECORDING_SHOW).name
        recording = self._store.load_recording(name)
        if recording is None:
            return RPCError.not_found(f"Recording '{name}' not found")
        return RecordingResult(data=recording)

    # -- recipes ------------------------------------------------------

    def _recipe_list(self, bag: ParamBag | None) -> Result:
        return RecipeListResult(data=self._store.list_recipes())

    def _recipe_show(self, bag: ParamBag | None) -> Result | RPCError:
        name = NameParams.from_bag(bag, c.METHOD_RECIPE_SHOW).name
        recipe = self._store.load_recipe(name)
        if recipe is None:
            return RPCError.not_found(f"Recipe '{name}' not found")
        return RecipeResult(data=recipe)

    def _recipe_save(self, bag: ParamBag | None) -> Result | RPCError:
        params = RecipeSaveParams.from_bag(bag)
        try:
            recipe = self._store.save_recipe_data(params.text, name=params.name)
        except RecipeValidationError as exc:
            return RPCError.invalid_params(exc.message)
        except StoreError as exc:
            log.warning("recipe_save_failed", error=exc.message, path=exc.path)
            return RPCError.internal_error(exc.message)
        return MessageResult(data=f"Recipe '{params.name or recipe.name}' saved")

    def _recipe_delete(self, bag: ParamBag | None) -> Result | RPCError:
        name = NameParams.from_bag(bag, c.METHOD_RECIPE_DELETE).name
        if not self._store.delete_recipe(name):
            return RPCError.not_found(f"Recipe '{name}' not found")
        return MessageResult(data=f"Recipe '{name}' deleted")

    def _run(self, bag: ParamBag | None) -> Result | RPCError:
        params = RunParams.from_bag(bag)
        recipe = self._store.load_recipe(params.name)
        if recipe is None:
            return RPCError.not_found(f"Recipe '{params.name}' not found")
        return RunResultResult(data=self._runner.run(recipe, params.values))
