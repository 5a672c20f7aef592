"""Recording interceptor — captures dispatched commands into a Recording.

Two-state machine::

    Idle --start(name)--> Active --stop()--> Idle

At most one session is active at a time.  While active, ``observe()`` is
called after every dispatch with the (method, params, response) triple and
appends one RecordedStep, unless the method is a meta-command (see
:data:`~ghost_bridge.protocol.constants.META_METHODS`).  The interceptor
never alters the response it observes.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime

from ghost_bridge.exceptions import StoreError
from ghost_bridge.logging import get_logger
from ghost_bridge.protocol.constants import META_METHODS
from ghost_bridge.protocol.models import ContextInfo, ParamBag, utcnow
from ghost_bridge.protocol.results import (
    ActionOutcomeResult,
    ContextResult,
    MessageResult,
    Response,
)
from ghost_bridge.recording.models import RecordedStep, Recording
from ghost_bridge.recording.store import RecipeStore

log = get_logger(__name__)


def describe_response(response: Response) -> str | None:
    """Human-readable description of *response*, if it carries one."""
    if response.result is None:
        return response.error.message if response.error is not None else None
    if isinstance(response.result, ActionOutcomeResult):
        return response.result.data.description
    if isinstance(response.result, MessageResult):
        return response.result.data
    return None


def context_of(response: Response) -> ContextInfo | None:
    if isinstance(response.result, ActionOutcomeResult):
        return response.result.data.context
    if isinstance(response.result, ContextResult):
        return response.result.data
    return None


class RecordingInterceptor:
    """Single-session recorder sitting behind the dispatcher.

    Not thread-safe on its own; the control plane serialises access.
    """

    def __init__(
        self,
        store: RecipeStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._clock = clock
        self._active = False
        self._name: str | None = None
        self._steps: list[RecordedStep] = []
        self._started_at: datetime | None = None
        self._started_monotonic = 0.0
        self._last_persist_error: StoreError | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def session_name(self) -> str | None:
        return self._name if self._active else None

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def steps(self) -> tuple[RecordedStep, ...]:
        return tuple(self._steps)

    @property
    def last_persist_error(self) -> StoreError | None:
        """The error from the most recent failed save on stop, if any."""
        return self._last_persist_error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, name: str) -> bool:
        """Begin a session.  Returns False, changing nothing, if one is active."""
        if self._active:
            log.info("recording_start_rejected", active=self._name, requested=name)
            return False
        self._active = True
        self._name = name
        self._steps = []
        self._started_at = utcnow()
        self._started_monotonic = self._clock()
        log.info("recording_started", name=name)
        return True

    def stop(self) -> Recording | None:
        """End the session and persist it.

        Returns None when idle.  Persistence is best-effort: a failed save is
        logged and kept in :attr:`last_persist_error`, and the Recording is
        returned either way.
        """
        if not self._active or self._started_at is None:
            return None

        recording = Recording(
            name=self._name or "untitled",
            recorded_at=self._started_at,
            duration=max(0.0, self._clock() - self._started_monotonic),
            steps=tuple(self._steps),
        )
        self._active = False
        self._name = None
        self._steps = []
        self._started_at = None

        self._last_persist_error = None
        if self._store is not None:
            try:
                self._store.save_recording(recording)
            except StoreError as exc:
                self._last_persist_error = exc
                log.warning("recording_persist_failed", name=recording.name, error=exc.message)

        log.info(
            "recording_stopped",
            name=recording.name,
            steps=len(recording.steps),
            duration=round(recording.duration, 3),
        )
        return recording

    # ------------------------------------------------------------------
    # Observation hook
    # ------------------------------------------------------------------

    def observe(self, method: str, params: ParamBag | None, response: Response) -> None:
        """Record one dispatch.  No-op when idle or for meta-commands."""
        if not self._active or method in META_METHODS:
            return
        self._steps.append(
            RecordedStep(
                timestamp=utcnow(),
                method=method,
                params=params,
                success=response.error is None,
                description=describe_response(response),
                context=context_of(response),
            )
        )
        log.debug("recording_step_captured", method=method, step=len(self._steps))
