"""Refresh timing locked to OTP period boundaries."""

from __future__ import annotations

import time
from collections.abc import Iterable
from enum import Enum

from ykdash.accounts.models import Account


class RefreshPhase(str, Enum):
    idle = "idle"
    polling = "polling"
    merged = "merged"
    failed = "failed"


def wait_until_boundary(period: float, now: float) -> float:
    """Seconds until the next multiple of ``period``, in ``(0, period]``."""
    return period - (now % period)


class RefreshScheduler:
    def __init__(self, default_period: int = 30) -> None:
        self._default_period = default_period
        self._first = True
        self.phase = RefreshPhase.idle
        self.last_error: str | None = None

    def period_for(self, accounts: Iterable[Account]) -> int:
        periods = [account.period for account in accounts]
        return min(periods) if periods else self._default_period

    def next_wait(self, now: float | None = None, accounts: Iterable[Account] = ()) -> float:
        if self._first:
            self._first = False
            return 0.0
        if now is None:
            now = time.time()
        return wait_until_boundary(self.period_for(accounts), now)

    def start_poll(self) -> None:
        self.phase = RefreshPhase.polling

    def finish_poll(self, error: str | None = None) -> None:
        self.last_error = error
        self.phase = RefreshPhase.failed if error else RefreshPhase.merged

    def settle(self) -> None:
        self.phase = RefreshPhase.idle
