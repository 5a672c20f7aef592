"""Shared pytest fixtures for the ghost-bridge test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from ghost_bridge.config import Settings, override_settings
from ghost_bridge.control import ControlPlane
from ghost_bridge.dispatch.dispatcher import Dispatcher
from ghost_bridge.dispatch.interfaces import (
    ActionExecutor,
    NotificationHandler,
    NotificationKind,
    NotificationSource,
    StateProvider,
    Subscription,
)
from ghost_bridge.protocol.models import (
    ActionOutcome,
    AppInfo,
    ElementNode,
    Point,
    ScreenState,
    WindowInfo,
)
from ghost_bridge.recording.store import RecipeStore


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


def make_state() -> ScreenState:
    safari = AppInfo(
        name="Safari",
        bundle_id="com.apple.Safari",
        pid=100,
        is_active=True,
        windows=[WindowInfo(title="Start Page", is_main=True, is_focused=True)],
    )
    textedit = AppInfo(
        name="TextEdit",
        bundle_id="com.apple.TextEdit",
        pid=200,
        windows=[WindowInfo(title="Untitled", is_main=True)],
    )
    return ScreenState(
        frontmost_app=safari,
        focused_element=ElementNode(id="e1", role="AXTextField", label="Address", value=""),
        apps=[safari, textedit],
    )


class FakeStateProvider(StateProvider):
    """In-memory state provider that logs every call in ``calls``."""

    def __init__(self) -> None:
        self.state = make_state()
        self.elements: dict[str, list[ElementNode]] = {
            "Send": [ElementNode(id="b1", role="AXButton", label="Send", is_interactive=True)],
        }
        self.calls: list[str] = []
        self.error: Exception | None = None

    def refresh(self) -> None:
        self.calls.append("refresh")

    def refresh_focus(self) -> None:
        self.calls.append("refresh_focus")

    def refresh_app(self, pid: int) -> None:
        self.calls.append(f"refresh_app:{pid}")

    def get_state(self) -> ScreenState:
        if self.error is not None:
            raise self.error
        return self.state

    def get_app_state(self, name: str) -> AppInfo | None:
        return self.state.find_app(name)

    def find_elements(
        self, query: str, role: str | None = None, app_name: str | None = None
    ) -> list[ElementNode]:
        self.calls.append(f"find:{query}")
        found = self.elements.get(query, [])
        if role is not None:
            found = [e for e in found if e.role == role]
        return found


class FakeActionExecutor(ActionExecutor):
    """Records every action; raises whatever is registered in ``failures``."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, Exception] = {}
        self.outcome: ActionOutcome | None = None

    def _do(self, name: str, *args: Any) -> str:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]
        return f"{name} ok"

    def click_at(self, x: float, y: float) -> str:
        return self._do("click_at", x, y)

    def click_target(self, target: str, app_name: str | None = None) -> str | ActionOutcome:
        message = self._do("click_target", target, app_name)
        return self.outcome if self.outcome is not None else message

    def type_text(self, text: str) -> str:
        return self._do("type_text", text)

    def press(self, key: str) -> str:
        return self._do("press", key)

    def hotkey(self, keys: list[str]) -> str:
        return self._do("hotkey", list(keys))

    def scroll(self, direction: str, amount: float, at: Point | None = None) -> str:
        return self._do("scroll", direction, amount, at)

    def focus(self, app_name: str) -> str:
        return self._do("focus", app_name)


class FakeNotificationSource(NotificationSource):
    def __init__(self) -> None:
        self.active: list[Subscription] = []
        self.handlers: list[NotificationHandler] = []
        self.refuse: set[NotificationKind] = set()

    def subscribe(
        self, pid: int | None, kind: NotificationKind, handler: NotificationHandler
    ) -> Subscription:
        if kind in self.refuse:
            raise RuntimeError(f"cannot observe {kind.value}")
        subscription = Subscription(pid, kind, token=len(self.active))
        self.active.append(subscription)
        self.handlers.append(handler)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self.active.remove(subscription)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        storage={"base_dir": str(tmp_path / "ghost")},
        runner={"default_wait_timeout": 0.5, "poll_interval": 0.01},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


@pytest.fixture
def state_provider() -> FakeStateProvider:
    return FakeStateProvider()


@pytest.fixture
def action_executor() -> FakeActionExecutor:
    return FakeActionExecutor()


@pytest.fixture
def notification_source() -> FakeNotificationSource:
    return FakeNotificationSource()


@pytest.fixture
def store(test_settings: Settings) -> RecipeStore:
    return RecipeStore(test_settings.storage.base_dir)


@pytest.fixture
def dispatcher(state_provider: FakeStateProvider, action_executor: FakeActionExecutor) -> Dispatcher:
    return Dispatcher(state_provider, action_executor)


@pytest.fixture
def control_plane(
    state_provider: FakeStateProvider,
    action_executor: FakeActionExecutor,
    store: RecipeStore,
    test_settings: Settings,
) -> ControlPlane:
    return ControlPlane(state_provider, action_executor, store=store, settings=test_settings)
