"""Unit tests for RecipeRunner (replay, substitution, wait_after)."""

from __future__ import annotations

from typing import Any

import pytest

from ghost_bridge.config import RunnerConfig
from ghost_bridge.dispatch.dispatcher import Dispatcher
from ghost_bridge.exceptions import MissingParameterError, SubstitutionError
from ghost_bridge.protocol.models import ParamBag, Request, WindowInfo
from ghost_bridge.protocol.results import Response
from ghost_bridge.recording.models import Recipe
from ghost_bridge.recording.runner import (
    RecipeRunner,
    method_for_action,
    resolve_values,
    substitute,
    to_param_bag,
)


class FakeClock:
    """Monotonic clock that only advances when the runner sleeps."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _recipe(steps: list[dict[str, Any]], params: dict[str, Any] | None = None) -> Recipe:
    data: dict[str, Any] = {"name": "test-recipe", "steps": steps}
    if params is not None:
        data["params"] = params
    return Recipe.model_validate(data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runner(dispatcher: Dispatcher, state_provider, clock: FakeClock) -> RecipeRunner:
    config = RunnerConfig(default_wait_timeout=1.0, poll_interval=0.25, max_delay_ms=2000)
    return RecipeRunner(dispatcher.dispatch, state_provider, config, sleep=clock.sleep, clock=clock)


@pytest.mark.unit
class TestHelpers:
    def test_action_mapping(self) -> None:
        assert method_for_action("find") == "findElements"
        assert method_for_action("state") == "getState"
        assert method_for_action("app") == "getAppState"
        assert method_for_action("click") == "click"
        assert method_for_action("ping") == "ping"

    def test_substitute_replaces_every_occurrence(self) -> None:
        out = substitute({"text": "{{a}} and {{a}} or {{b}}", "key": "tab"}, {"a": "x", "b": "y"})
        assert out == {"text": "x and x or y", "key": "tab"}

    def test_substitute_unknown_placeholder(self) -> None:
        with pytest.raises(SubstitutionError) as exc_info:
            substitute({"text": "{{who}}"}, {})
        assert exc_info.value.name == "who"

    def test_to_param_bag_splits_keys(self) -> None:
        bag = to_param_bag({"keys": "cmd, shift ,t"})
        assert bag.keys == ["cmd", "shift", "t"]

    def test_to_param_bag_coerces_numbers(self) -> None:
        bag = to_param_bag({"x": "10", "y": "20.5"})
        assert bag == ParamBag(x=10.0, y=20.5)

    def test_to_param_bag_drops_unparsable_numbers(self) -> None:
        bag = to_param_bag({"x": "abc", "y": "2", "amount": "lots", "depth": "3.5"})
        assert bag == ParamBag(y=2.0)

    def test_resolve_values_uses_defaults(self) -> None:
        recipe = _recipe(
            [{"id": 1, "action": "press", "params": {"key": "tab"}}],
            params={"a": {"required": True}, "b": {"required": False, "default": "bee"}},
        )
        assert resolve_values(recipe, {"a": "ay"}) == {"a": "ay", "b": "bee"}

    def test_resolve_values_caller_value_wins(self) -> None:
        recipe = _recipe([{"id": 1, "action": "press"}], params={"b": {"default": "bee"}})
        assert resolve_values(recipe, {"b": "mine"}) == {"b": "mine"}

    def test_resolve_values_missing_required(self) -> None:
        recipe = _recipe([{"id": 1, "action": "press"}], params={"a": {}})
        with pytest.raises(MissingParameterError):
            resolve_values(recipe, {})

    def test_optional_without_default_stays_unset(self) -> None:
        recipe = _recipe([{"id": 1, "action": "press"}], params={"a": {"required": False}})
        assert resolve_values(recipe, {}) == {}


@pytest.mark.unit
class TestRun:
    def test_successful_run(self, runner: RecipeRunner, action_executor, state_provider) -> None:
        recipe = _recipe(
            [
                {"id": 1, "action": "click", "params": {"target": "{{to}}"}},
                {"id": 2, "action": "type", "params": {"text": "Hello {{to}}"}},
            ],
            params={"to": {"description": "recipient"}},
        )

        result = runner.run(recipe, {"to": "Bob"})

        assert result.success is True
        assert result.steps_completed == 2
        assert result.steps_total == 2
        assert result.failed_step is None
        assert action_executor.calls == [("click_target", "Bob", None), ("type_text", "Hello Bob")]
        assert [s.description for s in result.step_results] == ["click_target ok", "type_text ok"]
        assert state_provider.calls[-1] == "refresh"
        assert result.final_context is not None
        assert result.final_context.app == "Safari"

    def test_request_ids_are_step_ids(self, state_provider, dispatcher: Dispatcher) -> None:
        seen: list[Request] = []

        def _dispatch(request: Request) -> Response:
            seen.append(request)
            return dispatcher.dispatch(request)

        recipe = _recipe([{"id": 7, "action": "press", "params": {"key": "a"}},
                          {"id": 3, "action": "find", "params": {"query": "Send"}}])
        RecipeRunner(_dispatch, state_provider).run(recipe)

        assert [(r.id, r.method) for r in seen] == [(7, "press"), (3, "findElements")]

    def test_hotkey_keys_from_comma_list(self, runner: RecipeRunner, action_executor) -> None:
        runner.run(_recipe([{"id": 1, "action": "hotkey", "params": {"keys": "cmd,shift,n"}}]))
        assert action_executor.calls == [("hotkey", ["cmd", "shift", "n"])]

    def test_missing_parameter_fails_before_any_step(self, runner: RecipeRunner, action_executor) -> None:
        recipe = _recipe([{"id": 1, "action": "type", "params": {"text": "{{body}}"}}], params={"body": {}})

        result = runner.run(recipe)

        assert result.success is False
        assert result.steps_completed == 0
        assert result.failed_step is not None
        assert result.failed_step.id == 0
        assert result.failed_step.action == "validate"
        assert "body" in result.failed_step.error
        assert action_executor.calls == []

    def test_undeclared_placeholder_stops_run(self, runner: RecipeRunner, action_executor) -> None:
        recipe = _recipe([{"id": 4, "action": "type", "params": {"text": "{{who}}"}}])

        result = runner.run(recipe)

        assert result.failed_step is not None
        assert result.failed_step.id == 4
        assert result.failed_step.error.startswith("Parameter substitution failed:")
        assert result.failed_step.params == {"text": "{{who}}"}
        assert action_executor.calls == []

    def test_unparsable_coordinate_reported_by_method(self, runner: RecipeRunner, action_executor) -> None:
        result = runner.run(_recipe([{"id": 1, "action": "click", "params": {"x": "left", "y": "1"}}]))
        assert result.failed_step is not None
        assert result.failed_step.error == "'target' or 'x'/'y' required"
        assert action_executor.calls == []

    def test_unparsable_coordinate_ignored_when_target_given(self, runner: RecipeRunner, action_executor) -> None:
        result = runner.run(_recipe([{"id": 1, "action": "click", "params": {"target": "Send", "x": "abc"}}]))
        assert result.success is True
        assert action_executor.calls == [("click_target", "Send", None)]

    def test_recipe_without_steps_succeeds(self, runner: RecipeRunner, action_executor) -> None:
        result = runner.run(_recipe([]))
        assert result.success is True
        assert result.steps_total == 0
        assert result.final_context is not None
        assert action_executor.calls == []

    def test_failure_stops_by_default(self, runner: RecipeRunner, action_executor) -> None:
        action_executor.failures["click_target"] = RuntimeError("Element 'Send' not found")
        recipe = _recipe(
            [
                {"id": 1, "action": "click", "params": {"target": "Send"}},
                {"id": 2, "action": "type", "params": {"text": "never"}},
            ]
        )

        result = runner.run(recipe)

        assert result.success is False
        assert result.failed_step is not None
        assert result.failed_step.id == 1
        assert result.failed_step.params == {"target": "Send"}
        assert "not found" in result.failed_step.error
        assert len(result.step_results) == 1
        assert result.step_results[0].success is False
        assert result.final_context is None
        assert ("type_text", "never") not in action_executor.calls

    def test_skip_policy_continues(self, runner: RecipeRunner, action_executor, clock: FakeClock) -> None:
        action_executor.failures["press"] = RuntimeError("unknown key")
        recipe = _recipe(
            [
                {"id": 1, "action": "press", "params": {"key": "bogus"}, "on_failure": "skip", "delay_ms": 100},
                {"id": 2, "action": "type", "params": {"text": "after"}},
            ]
        )

        result = runner.run(recipe)

        assert result.success is True
        assert result.steps_completed == 2
        assert result.step_results[0].success is False
        assert result.step_results[0].description == "Skipped: unknown key"
        assert ("type_text", "after") in action_executor.calls
        assert clock.sleeps == [0.1]

    def test_delay_is_capped(self, runner: RecipeRunner, clock: FakeClock) -> None:
        runner.run(_recipe([{"id": 1, "action": "press", "params": {"key": "a"}, "delay_ms": 999_999}]))
        assert clock.sleeps == [2.0]

    def test_zero_delay_does_not_sleep(self, runner: RecipeRunner, clock: FakeClock) -> None:
        runner.run(_recipe([{"id": 1, "action": "press", "params": {"key": "a"}, "delay_ms": 0}]))
        assert clock.sleeps == []


@pytest.mark.unit
class TestWaitAfter:
    def _wait_step(self, condition: str, value: str | None = None, **extra: Any) -> Recipe:
        wait: dict[str, Any] = {"condition": condition}
        if value is not None:
            wait["value"] = value
        wait.update(extra)
        return _recipe([{"id": 1, "action": "press", "params": {"key": "return"}, "wait_after": wait}])

    def test_element_exists_met_immediately(self, runner: RecipeRunner, state_provider, clock: FakeClock) -> None:
        result = runner.run(self._wait_step("elementExists", "Send"))
        assert result.success is True
        assert "find:Send" in state_provider.calls
        assert clock.sleeps == []

    def test_element_exists_times_out(self, runner: RecipeRunner, clock: FakeClock) -> None:
        result = runner.run(self._wait_step("elementExists", "Nope"))

        assert result.success is False
        assert result.failed_step is not None
        assert result.failed_step.error == "Action succeeded but wait_after failed: elementExists 'Nope' timed out"
        assert result.step_results[0].success is False
        assert sum(clock.sleeps) == pytest.approx(1.0)

    def test_step_timeout_overrides_default(self, runner: RecipeRunner, clock: FakeClock) -> None:
        runner.run(self._wait_step("elementExists", "Nope", timeout=0.5))
        assert sum(clock.sleeps) == pytest.approx(0.5)

    def test_element_gone(self, runner: RecipeRunner) -> None:
        assert runner.run(self._wait_step("elementGone", "Nope")).success is True
        assert runner.run(self._wait_step("elementGone", "Send")).success is False

    def test_title_contains_is_case_insensitive(self, runner: RecipeRunner) -> None:
        assert runner.run(self._wait_step("titleContains", "start page")).success is True
        assert runner.run(self._wait_step("titleContains", "Inbox")).success is False

    def test_title_changed_after_action(self, state_provider, dispatcher: Dispatcher, clock: FakeClock) -> None:
        def _dispatch(request: Request) -> Response:
            response = dispatcher.dispatch(request)
            state = state_provider.state
            safari = state.frontmost_app.model_copy(
                update={"windows": [WindowInfo(title="Inbox", is_main=True, is_focused=True)]}
            )
            state_provider.state = state.model_copy(update={"frontmost_app": safari, "apps": [safari, state.apps[1]]})
            return response

        runner = RecipeRunner(_dispatch, state_provider, sleep=clock.sleep, clock=clock)
        result = runner.run(self._wait_step("titleChanged"))

        assert result.success is True
        assert result.final_context is not None
        assert result.final_context.window == "Inbox"

    def test_title_unchanged_times_out(self, runner: RecipeRunner) -> None:
        result = runner.run(self._wait_step("titleChanged"))
        assert result.success is False

    def test_unknown_condition_fails_without_polling(self, runner: RecipeRunner, clock: FakeClock) -> None:
        result = runner.run(self._wait_step("pixelMatches", "red"))
        assert result.success is False
        assert clock.sleeps == []

    def test_missing_value_fails(self, runner: RecipeRunner) -> None:
        result = runner.run(self._wait_step("elementExists"))
        assert result.success is False
        assert result.failed_step is not None
        assert "elementExists ''" in result.failed_step.error
