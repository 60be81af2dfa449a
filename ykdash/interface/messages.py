"""Transient per-account status messages ("Copied!", "[Touch Key]")."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any, Protocol

from ykdash.interface.state import DisplayState


class _Stoppable(Protocol):
    def stop(self) -> Any: ...


# Matches textual's ``App.set_timer(delay, callback)``.
ScheduleFn = Callable[[float, Callable[[], None]], _Stoppable]


class MessageTimer:
    """Shows a message for a while, then clears it.

    Each identity has at most one pending clear; showing or clearing a message
    stops the previous one, so an old timer never erases a newer message.
    """

    def __init__(
        self,
        state: DisplayState,
        schedule: ScheduleFn,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._state = state
        self._schedule = schedule
        self._on_change = on_change
        self._timers: dict[str, tuple[int, _Stoppable]] = {}
        self._tokens = itertools.count(1)

    def _cancel(self, identity: str) -> None:
        entry = self._timers.pop(identity, None)
        if entry is not None:
            entry[1].stop()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def show(self, identity: str, text: str, duration: float) -> None:
        self._cancel(identity)
        self._state.messages[identity] = text
        token = next(self._tokens)
        timer = self._schedule(duration, lambda: self._expire(identity, token))
        self._timers[identity] = (token, timer)
        self._changed()

    def clear(self, identity: str) -> None:
        self._cancel(identity)
        if self._state.messages.pop(identity, None) is not None:
            self._changed()

    def _expire(self, identity: str, token: int) -> None:
        entry = self._timers.get(identity)
        if entry is None or entry[0] != token:
            return
        del self._timers[identity]
        self._state.messages.pop(identity, None)
        self._changed()

    def pending(self, identity: str) -> bool:
        return identity in self._timers

    def cancel_all(self) -> None:
        for identity in list(self._timers):
            self._cancel(identity)
