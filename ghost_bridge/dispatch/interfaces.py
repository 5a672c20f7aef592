"""Dispatch — abstract contracts of the external collaborators.

The control plane never touches the accessibility tree, the input devices
or the OS notification centre directly.  It talks to three collaborators
through the contracts below:

  - :class:`StateProvider`     reads and refreshes UI state snapshots.
  - :class:`ActionExecutor`    performs physical input actions.
  - :class:`NotificationSource` delivers focus/window lifecycle events.

All calls are synchronous and treated as opaque and non-reentrant.  Any
exception raised by a collaborator is considered a failure of that call;
the dispatcher converts it to a wire error, it never propagates further.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

from ghost_bridge.protocol.models import ActionOutcome, AppInfo, ElementNode, Point, ScreenState

# Executors return either a plain confirmation or an outcome with context.
ActionReturn = str | ActionOutcome


# ---------------------------------------------------------------------------
# State provider
# ---------------------------------------------------------------------------


class StateProvider(ABC):
    """Reads the live UI state."""

    @abstractmethod
    def refresh(self) -> None:
        """Re-read the state of every running application."""

    @abstractmethod
    def refresh_focus(self) -> None:
        """Re-read only the frontmost application and focused element."""

    @abstractmethod
    def refresh_app(self, pid: int) -> None:
        """Re-read the state of the application with process id *pid*."""

    @abstractmethod
    def get_state(self) -> ScreenState:
        """Return the current (cached) snapshot."""

    @abstractmethod
    def get_app_state(self, name: str) -> AppInfo | None:
        """Return the cached state of the app matching *name*, if any."""

    @abstractmethod
    def find_elements(
        self, query: str, role: str | None = None, app_name: str | None = None
    ) -> list[ElementNode]:
        """Search the accessibility tree for elements matching *query*."""


# ---------------------------------------------------------------------------
# Action executor
# ---------------------------------------------------------------------------


class ActionExecutor(ABC):
    """Performs input actions.  Each method raises on failure."""

    @abstractmethod
    def click_at(self, x: float, y: float) -> ActionReturn: ...

    @abstractmethod
    def click_target(self, target: str, app_name: str | None = None) -> ActionReturn: ...

    @abstractmethod
    def type_text(self, text: str) -> ActionReturn: ...

    @abstractmethod
    def press(self, key: str) -> ActionReturn: ...

    @abstractmethod
    def hotkey(self, keys: list[str]) -> ActionReturn: ...

    @abstractmethod
    def scroll(self, direction: str, amount: float, at: Point | None = None) -> ActionReturn: ...

    @abstractmethod
    def focus(self, app_name: str) -> ActionReturn: ...


# ---------------------------------------------------------------------------
# Notification source
# ---------------------------------------------------------------------------


class NotificationKind(str, Enum):
    """OS-level UI notifications the observer subscribes to."""

    FOCUSED_APPLICATION_CHANGED = "focusedApplicationChanged"
    FOCUSED_UI_ELEMENT_CHANGED = "focusedUIElementChanged"
    WINDOW_CREATED = "windowCreated"
    WINDOW_RESIZED = "windowResized"
    WINDOW_MOVED = "windowMoved"
    WINDOW_MINIMIZED = "windowMinimized"
    WINDOW_DEMINIATURIZED = "windowDeminiaturized"
    TITLE_CHANGED = "titleChanged"
    VALUE_CHANGED = "valueChanged"


# (pid, kind, raw_handle) -> None.  ``raw_handle`` is opaque to the core.
NotificationHandler = Callable[[int, NotificationKind, Any], None]


class Subscription:
    """Handle returned by :meth:`NotificationSource.subscribe`.

    The holder owns the subscription until it passes the handle back to
    :meth:`NotificationSource.unsubscribe`.
    """

    def __init__(self, pid: int | None, kind: NotificationKind, token: Any = None) -> None:
        self.pid = pid
        self.kind = kind
        self.token = token

    def __repr__(self) -> str:
        return f"Subscription(pid={self.pid}, kind={self.kind.value})"


class NotificationSource(ABC):
    @abstractmethod
    def subscribe(
        self, pid: int | None, kind: NotificationKind, handler: NotificationHandler
    ) -> Subscription:
        """Start delivering *kind* events for *pid* (``None`` = system-wide).

        Raises on failure; the caller decides whether that is fatal.
        """

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        """Stop delivering events for *subscription*."""
