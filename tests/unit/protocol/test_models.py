"""Unit tests — wire data models and the result union."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from ghost_bridge.protocol.constants import ErrorCode
from ghost_bridge.protocol.models import (
    ActionOutcome,
    AppInfo,
    ContextInfo,
    ElementNode,
    ParamBag,
    RPCError,
    ScreenState,
    StateDiff,
    WindowInfo,
    WindowTitleChanged,
    utcnow,
)
from ghost_bridge.protocol.results import (
    ActionOutcomeResult,
    BoolResult,
    MessageResult,
    RecordingListResult,
    Response,
    result_adapter,
)


@pytest.mark.unit
class TestErrorCodes:
    def test_codes_are_stable(self) -> None:
        assert ErrorCode.NOT_FOUND == -1
        assert ErrorCode.INVALID_PARAMS == -2
        assert ErrorCode.PERMISSION_DENIED == -3
        assert ErrorCode.INTERNAL_ERROR == -4
        assert ErrorCode.METHOD_NOT_FOUND == -5

    def test_constructors(self) -> None:
        assert RPCError.not_found("a").code is ErrorCode.NOT_FOUND
        assert RPCError.invalid_params("a").code is ErrorCode.INVALID_PARAMS
        assert RPCError.permission_denied("a").code is ErrorCode.PERMISSION_DENIED
        assert RPCError.internal_error("a").code is ErrorCode.INTERNAL_ERROR
        assert RPCError.method_not_found("a").code is ErrorCode.METHOD_NOT_FOUND


@pytest.mark.unit
class TestResponseEnvelope:
    def test_success_is_ok(self) -> None:
        response = Response.success(BoolResult(data=True), 1)
        assert response.ok
        assert response.error is None

    def test_failure_is_not_ok(self) -> None:
        response = Response.failure(RPCError.internal_error("x"), 1)
        assert not response.ok
        assert response.result is None

    def test_both_populated_is_invalid(self) -> None:
        with pytest.raises(ValidationError):
            Response(result=BoolResult(data=True), error=RPCError.not_found("x"), id=1)

    def test_neither_populated_is_invalid(self) -> None:
        with pytest.raises(ValidationError):
            Response(id=1)


@pytest.mark.unit
class TestResultUnion:
    def test_dispatches_on_type_tag(self) -> None:
        result = result_adapter.validate_python({"type": "message", "data": "hello"})
        assert isinstance(result, MessageResult)
        assert result.data == "hello"

    def test_action_result_tag(self) -> None:
        result = result_adapter.validate_python(
            {"type": "actionResult", "data": {"success": True, "description": "Clicked"}}
        )
        assert isinstance(result, ActionOutcomeResult)
        assert result.data.method == "none"

    def test_recording_list_tag(self) -> None:
        result = result_adapter.validate_python({"type": "recordingList", "data": ["a", "b"]})
        assert isinstance(result, RecordingListResult)

    def test_unknown_tag_is_hard_error(self) -> None:
        with pytest.raises(ValidationError):
            result_adapter.validate_python({"type": "mystery", "data": None})

    def test_missing_tag_is_hard_error(self) -> None:
        with pytest.raises(ValidationError):
            result_adapter.validate_python({"data": "x"})

    def test_serialises_as_type_and_data(self) -> None:
        assert MessageResult(data="hi").to_wire() == {"type": "message", "data": "hi"}


@pytest.mark.unit
class TestParamBag:
    def test_wire_form_omits_unset_fields(self) -> None:
        bag = ParamBag.model_validate({"query": "Send", "role": "AXButton"})
        assert bag.query == "Send"
        assert bag.to_wire() == {"query": "Send", "role": "AXButton"}

    def test_unknown_fields_ignored(self) -> None:
        bag = ParamBag.model_validate({"text": "x", "unexpected": True})
        assert bag.to_wire() == {"text": "x"}


@pytest.mark.unit
class TestTimestamps:
    def test_utcnow_truncated_to_seconds(self) -> None:
        now = utcnow()
        assert now.microsecond == 0
        assert now.tzinfo is not None

    def test_naive_timestamp_treated_as_utc(self) -> None:
        diff = StateDiff(timestamp=datetime(2026, 5, 6, 7, 8, 9))
        assert diff.to_wire()["timestamp"] == "2026-05-06T07:08:09Z"

    def test_python_dump_keeps_datetime(self) -> None:
        stamp = datetime(2026, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        assert StateDiff(timestamp=stamp).model_dump()["timestamp"] == stamp


@pytest.mark.unit
class TestStateModels:
    def test_state_camel_case_on_wire(self) -> None:
        app = AppInfo(name="Safari", bundle_id="com.apple.Safari", pid=1, is_active=True)
        wire = app.to_wire()
        assert wire["bundleId"] == "com.apple.Safari"
        assert wire["isActive"] is True

    def test_find_app_is_case_insensitive_contains(self) -> None:
        state = ScreenState(apps=[AppInfo(name="Google Chrome", pid=1)])
        assert state.find_app("chrome") is not None
        assert state.find_app("firefox") is None

    def test_element_tree_nests(self) -> None:
        tree = ElementNode(
            id="root",
            role="AXWindow",
            children=[ElementNode(id="c1", role="AXButton", label="OK")],
        )
        wire = tree.to_wire()
        assert wire["children"][0]["label"] == "OK"

    def test_title_change_uses_from_key(self) -> None:
        change = WindowTitleChanged(app="Safari", previous="a", to="b")
        assert change.to_wire() == {"type": "windowTitleChanged", "app": "Safari", "from": "a", "to": "b"}

    def test_state_diff_changes_are_tagged(self) -> None:
        diff = StateDiff.model_validate(
            {"changes": [{"type": "appLaunched", "name": "Notes"}, {"type": "focusChanged", "app": "Notes", "element": "e1"}]}
        )
        assert [c.type for c in diff.changes] == ["appLaunched", "focusChanged"]


@pytest.mark.unit
class TestContextInfo:
    def _state(self) -> ScreenState:
        safari = AppInfo(
            name="Safari",
            pid=10,
            windows=[
                WindowInfo(title="Docs", is_main=True),
                WindowInfo(title="Inbox", is_focused=True),
            ],
        )
        notes = AppInfo(name="Notes", pid=20, windows=[WindowInfo(title="List")])
        return ScreenState(
            frontmost_app=safari,
            focused_element=ElementNode(id="f", role="AXTextField", label="Search"),
            apps=[safari, notes],
        )

    def test_frontmost_context_prefers_focused_window(self) -> None:
        context = ContextInfo.from_state(self._state())
        assert context is not None
        assert context.app == "Safari"
        assert context.window == "Inbox"
        assert context.window_tabs == ["Docs", "Inbox"]
        assert context.focused is not None
        assert context.focused.is_editable

    def test_named_background_app_has_no_focus(self) -> None:
        context = ContextInfo.from_state(self._state(), "notes")
        assert context is not None
        assert context.window == "List"
        assert context.focused is None

    def test_unknown_app_returns_none(self) -> None:
        assert ContextInfo.from_state(self._state(), "Mail") is None

    def test_action_outcome_carries_context(self) -> None:
        outcome = ActionOutcome(
            success=True,
            description="Clicked",
            method="ax",
            context=ContextInfo(app="Safari"),
        )
        assert outcome.to_wire()["context"]["app"] == "Safari"
