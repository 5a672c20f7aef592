"""System observer — keeps the state provider fresh from OS notifications.

Subscriptions are explicit: every ``subscribe`` call returns a
:class:`Subscription` handle that the observer holds until
:meth:`SystemObserver.stop_observing` hands it back to the source.

Notification kind -> refresh:
    focusedApplicationChanged, focusedUIElementChanged   refresh_focus()
    windowCreated/Resized/Moved/Minimized/Deminiaturized refresh_app(pid)
    titleChanged, valueChanged                           refresh_focus()
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any

from ghost_bridge.dispatch.interfaces import (
    NotificationKind,
    NotificationSource,
    StateProvider,
    Subscription,
)
from ghost_bridge.logging import get_logger

log = get_logger(__name__)

GLOBAL_KINDS: tuple[NotificationKind, ...] = (
    NotificationKind.FOCUSED_APPLICATION_CHANGED,
    NotificationKind.FOCUSED_UI_ELEMENT_CHANGED,
)

APP_KINDS: tuple[NotificationKind, ...] = (
    NotificationKind.WINDOW_CREATED,
    NotificationKind.WINDOW_RESIZED,
    NotificationKind.WINDOW_MOVED,
    NotificationKind.WINDOW_MINIMIZED,
    NotificationKind.WINDOW_DEMINIATURIZED,
    NotificationKind.TITLE_CHANGED,
    NotificationKind.VALUE_CHANGED,
)

_WINDOW_KINDS = frozenset(
    {
        NotificationKind.WINDOW_CREATED,
        NotificationKind.WINDOW_RESIZED,
        NotificationKind.WINDOW_MOVED,
        NotificationKind.WINDOW_MINIMIZED,
        NotificationKind.WINDOW_DEMINIATURIZED,
    }
)


class SystemObserver:
    """Subscribes to UI notifications and triggers state refreshes.

    Pass the control plane's lock so refreshes never interleave with a
    dispatch in flight.
    """

    def __init__(
        self,
        state_provider: StateProvider,
        source: NotificationSource,
        lock: AbstractContextManager[Any] | None = None,
    ) -> None:
        self._state = state_provider
        self._source = source
        self._lock = lock
        self._subscriptions: list[Subscription] = []

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return tuple(self._subscriptions)

    def start_observing(self) -> None:
        """Subscribe to system-wide focus notifications."""
        for kind in GLOBAL_KINDS:
            self._subscribe(None, kind)

    def observe_app(self, pid: int) -> None:
        """Subscribe to window lifecycle and title/value notifications of *pid*."""
        for kind in APP_KINDS:
            self._subscribe(pid, kind)

    def stop_observing(self) -> None:
        """Release every held subscription."""
        for subscription in self._subscriptions:
            try:
                self._source.unsubscribe(subscription)
            except Exception as exc:
                log.warning("observer_unsubscribe_failed", subscription=repr(subscription), error=str(exc))
        released = len(self._subscriptions)
        self._subscriptions.clear()
        log.debug("observer_stopped", released=released)

    def handle_notification(self, pid: int, kind: NotificationKind, raw_handle: Any = None) -> None:
        """Apply the refresh mapping for one delivered notification."""
        if self._lock is None:
            self._refresh_for(pid, kind)
            return
        with self._lock:
            self._refresh_for(pid, kind)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _subscribe(self, pid: int | None, kind: NotificationKind) -> None:
        try:
            subscription = self._source.subscribe(pid, kind, self.handle_notification)
        except Exception as exc:
            log.warning("observer_subscribe_failed", pid=pid, kind=kind.value, error=str(exc))
            return
        self._subscriptions.append(subscription)

    def _refresh_for(self, pid: int, kind: NotificationKind) -> None:
        if kind in _WINDOW_KINDS:
            self._state.refresh_app(pid)
        else:
            self._state.refresh_focus()
