"""Dispatch layer — method router and the collaborator contracts it calls."""

from ghost_bridge.dispatch.dispatcher import FAILURE_CODES, Dispatcher
from ghost_bridge.dispatch.interfaces import (
    ActionExecutor,
    NotificationKind,
    NotificationSource,
    StateProvider,
    Subscription,
)

__all__ = [
    "Dispatcher",
    "FAILURE_CODES",
    "StateProvider",
    "ActionExecutor",
    "NotificationSource",
    "NotificationKind",
    "Subscription",
]
