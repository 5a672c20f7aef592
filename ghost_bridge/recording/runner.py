"""Recipe runner — replays a Recipe through the dispatcher.

Per step:
  1. Substitute ``{{param}}`` placeholders in the step's params.
  2. If the step has ``wait_after``, capture a baseline context.
  3. Dispatch the mapped method with ``id = step.id``.
  4. On failure apply ``on_failure``: ``stop`` (default) ends the run,
     ``skip`` records the failure and moves on.
  5. On success poll ``wait_after`` until it holds or times out.  A wait
     failure always stops the run.
  6. Sleep ``delay_ms`` (also after a skipped step).

The run never raises for step-level problems; everything is reported in
the returned :class:`RunResult`.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from typing import Any

from ghost_bridge.config import RunnerConfig
from ghost_bridge.dispatch.interfaces import StateProvider
from ghost_bridge.exceptions import MissingParameterError, SubstitutionError
from ghost_bridge.logging import get_logger
from ghost_bridge.protocol import constants as c
from ghost_bridge.protocol.models import AppInfo, ContextInfo, ParamBag, Request
from ghost_bridge.protocol.results import Response
from ghost_bridge.recording.models import (
    FailedStepInfo,
    FailurePolicy,
    Recipe,
    RecipeStep,
    RunResult,
    StepResult,
    WaitCondition,
)
from ghost_bridge.recording.recorder import context_of, describe_response

log = get_logger(__name__)

DispatchFn = Callable[[Request], Response]

# Recipe action name -> dispatched method.  Unlisted actions pass through.
ACTION_METHODS: dict[str, str] = {
    "click": c.METHOD_CLICK,
    "type": c.METHOD_TYPE,
    "press": c.METHOD_PRESS,
    "hotkey": c.METHOD_HOTKEY,
    "focus": c.METHOD_FOCUS,
    "scroll": c.METHOD_SCROLL,
    "find": c.METHOD_FIND_ELEMENTS,
    "state": c.METHOD_GET_STATE,
    "app": c.METHOD_GET_APP_STATE,
}

WAIT_ELEMENT_EXISTS = "elementExists"
WAIT_ELEMENT_GONE = "elementGone"
WAIT_TITLE_CONTAINS = "titleContains"
WAIT_TITLE_CHANGED = "titleChanged"

_PARAM_RE = re.compile(r"\{\{(\w+)\}\}")

_NUMERIC_FIELDS: dict[str, Callable[[str], Any]] = {"x": float, "y": float, "amount": float, "depth": int}


def method_for_action(action: str) -> str:
    return ACTION_METHODS.get(action, action)


def substitute(params: dict[str, str], values: dict[str, str]) -> dict[str, str]:
    """Return *params* with every ``{{name}}`` replaced from *values*.

    Raises:
        SubstitutionError: a placeholder has no value.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            raise SubstitutionError(name)
        return values[name]

    return {key: _PARAM_RE.sub(_replace, value) for key, value in params.items()}


def to_param_bag(params: dict[str, str]) -> ParamBag:
    """Convert a recipe step's flat string map into a ParamBag.

    ``keys`` is comma separated.  A numeric field whose value does not parse
    is left unset, so the method's own required-field check reports it.
    """
    data: dict[str, Any] = dict(params)
    if "keys" in data:
        data["keys"] = [k.strip() for k in data["keys"].split(",") if k.strip()]
    for field, convert in _NUMERIC_FIELDS.items():
        if field in data:
            try:
                data[field] = convert(data[field])
            except ValueError:
                del data[field]
    return ParamBag.model_validate(data)


def resolve_values(recipe: Recipe, values: dict[str, str]) -> dict[str, str]:
    """Merge caller *values* with declared defaults.

    Raises:
        MissingParameterError: a required param has neither value nor default.
    """
    resolved = dict(values)
    for name, spec in (recipe.params or {}).items():
        if name in resolved:
            continue
        if spec.default_value is not None:
            resolved[name] = spec.default_value
        elif spec.required:
            raise MissingParameterError(name)
    return resolved


class RecipeRunner:
    """Executes recipes step by step.

    Args:
        dispatch:       Callable that executes one Request (normally the
                        control plane's core dispatch, so steps are recorded).
        state_provider: Used for wait_after polling and the final context.
        config:         Timeouts, poll interval and delay cap.
        sleep / clock:  Injected for tests.
    """

    def __init__(
        self,
        dispatch: DispatchFn,
        state_provider: StateProvider,
        config: RunnerConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dispatch = dispatch
        self._state = state_provider
        self._config = config or RunnerConfig()
        self._sleep = sleep
        self._clock = clock

    def run(self, recipe: Recipe, values: dict[str, str] | None = None) -> RunResult:
        started = self._clock()
        total = len(recipe.steps)
        results: list[StepResult] = []

        def _finish(success: bool, failed: FailedStepInfo | None = None,
                    final_context: ContextInfo | None = None) -> RunResult:
            result = RunResult(
                recipe=recipe.name,
                success=success,
                steps_completed=len(results),
                steps_total=total,
                duration=self._clock() - started,
                failed_step=failed,
                final_context=final_context,
                step_results=list(results),
            )
            log.info(
                "recipe_run_finished",
                recipe=recipe.name,
                success=success,
                steps_completed=result.steps_completed,
                steps_total=total,
            )
            return result

        log.info("recipe_run_started", recipe=recipe.name, steps=total)

        try:
            resolved = resolve_values(recipe, values or {})
        except MissingParameterError as exc:
            return _finish(False, FailedStepInfo(id=0, action="validate", error=exc.message))

        for step in recipe.steps:
            step_started = self._clock()

            try:
                params = substitute(step.params, resolved)
                bag = to_param_bag(params)
            except SubstitutionError as exc:
                return _finish(False, self._failed(step, step.params,
                                                   f"Parameter substitution failed: {exc.message}"))

            baseline: ContextInfo | None = None
            if step.wait_after is not None:
                self._state.refresh()
                baseline = ContextInfo.from_state(self._state.get_state(), params.get("app"))

            request = Request(method=method_for_action(step.action), params=bag, id=step.id)
            response = self._dispatch(request)

            if response.error is not None:
                message = response.error.message
                policy = step.on_failure or FailurePolicy.STOP
                if policy is FailurePolicy.SKIP:
                    log.info("recipe_step_skipped", recipe=recipe.name, step=step.id, error=message)
                    results.append(self._step_result(step, False, f"Skipped: {message}", step_started))
                    self._delay(step)
                    continue
                results.append(self._step_result(step, False, message, step_started))
                return _finish(False, self._failed(step, params, message, context_of(response)))

            if step.wait_after is not None and not self._wait(step.wait_after, params.get("app"), baseline):
                cond = step.wait_after
                message = (
                    f"Action succeeded but wait_after failed: "
                    f"{cond.condition} '{cond.value or ''}' timed out"
                )
                results.append(self._step_result(step, False, message, step_started))
                return _finish(False, self._failed(step, params, message, context_of(response)))

            results.append(self._step_result(step, True, describe_response(response), step_started))
            self._delay(step)

        self._state.refresh()
        return _finish(True, final_context=ContextInfo.from_state(self._state.get_state()))

    # ------------------------------------------------------------------
    # Step helpers
    # ------------------------------------------------------------------

    def _step_result(
        self, step: RecipeStep, success: bool, description: str | None, started: float
    ) -> StepResult:
        return StepResult(
            id=step.id,
            action=step.action,
            success=success,
            description=description,
            duration=self._clock() - started,
        )

    @staticmethod
    def _failed(
        step: RecipeStep,
        params: dict[str, str],
        error: str,
        context: ContextInfo | None = None,
    ) -> FailedStepInfo:
        return FailedStepInfo(
            id=step.id, action=step.action, params=params, error=error, context=context
        )

    def _delay(self, step: RecipeStep) -> None:
        if step.delay_ms:
            self._sleep(min(step.delay_ms, self._config.max_delay_ms) / 1000.0)

    # ------------------------------------------------------------------
    # wait_after
    # ------------------------------------------------------------------

    def _wait(self, cond: WaitCondition, app: str | None, baseline: ContextInfo | None) -> bool:
        check = self._condition(cond, app, baseline)
        if check is None:
            log.warning("recipe_wait_unknown_condition", condition=cond.condition)
            return False

        timeout = cond.timeout or self._config.default_wait_timeout
        deadline = self._clock() + timeout
        while True:
            try:
                if check():
                    return True
            except Exception as exc:
                log.warning("recipe_wait_check_failed", condition=cond.condition, error=str(exc))
            if self._clock() >= deadline:
                log.info("recipe_wait_timed_out", condition=cond.condition, value=cond.value)
                return False
            self._sleep(self._config.poll_interval)

    def _condition(
        self, cond: WaitCondition, app: str | None, baseline: ContextInfo | None
    ) -> Callable[[], bool] | None:
        value = cond.value
        if cond.condition == WAIT_ELEMENT_EXISTS and value is not None:
            return lambda: bool(self._find(value, app))
        if cond.condition == WAIT_ELEMENT_GONE and value is not None:
            return lambda: not self._find(value, app)
        if cond.condition == WAIT_TITLE_CONTAINS and value is not None:
            needle = value.lower()
            return lambda: any(needle in title.lower() for title in self._titles(app))
        if cond.condition == WAIT_TITLE_CHANGED:
            before = baseline.window if baseline is not None else None
            return lambda: self._current_window(app) != before
        return None

    def _find(self, query: str, app: str | None) -> list[Any]:
        self._state.refresh_focus()
        return self._state.find_elements(query, app_name=app)

    def _target_app(self, app: str | None) -> AppInfo | None:
        self._state.refresh_focus()
        state = self._state.get_state()
        return state.find_app(app) if app else state.frontmost_app

    def _titles(self, app: str | None) -> list[str]:
        target = self._target_app(app)
        if target is None:
            return []
        return [w.title for w in target.windows if w.title]

    def _current_window(self, app: str | None) -> str | None:
        self._state.refresh_focus()
        context = ContextInfo.from_state(self._state.get_state(), app)
        return context.window if context is not None else None
