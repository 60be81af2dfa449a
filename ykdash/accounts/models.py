"""Data models for OATH credential slots."""

from __future__ import annotations

import time

from pydantic import BaseModel, Field


TOUCH_REQUIRED = "[Requires Touch]"
DEFAULT_PERIOD = 30


def seconds_until_rotation(period: int, now: float | None = None) -> int:
    """Whole seconds left in the current period window, in ``1..period``."""
    if now is None:
        now = time.time()
    return period - int(now) % period


class Account(BaseModel):
    """One OATH credential as reported by ykman."""

    identity: str  # raw ykman name, e.g. "Google:alice"
    issuer: str
    label: str = ""
    code: str
    requires_touch: bool = False
    period: int = Field(default=DEFAULT_PERIOD, ge=1)
    time_remaining: int = DEFAULT_PERIOD  # captured when the snapshot was taken

    @classmethod
    def from_ykman(
        cls,
        identity: str,
        code: str,
        *,
        period: int = DEFAULT_PERIOD,
        now: float | None = None,
    ) -> Account:
        issuer, _, label = identity.partition(":")
        return cls(
            identity=identity,
            issuer=issuer,
            label=label,
            code=code,
            requires_touch=code == TOUCH_REQUIRED,
            period=period,
            time_remaining=seconds_until_rotation(period, now),
        )

    def seconds_left(self, now: float | None = None) -> int:
        return seconds_until_rotation(self.period, now)

    def duration_label(self, now: float | None = None) -> str:
        return f"({self.seconds_left(now):02d})"
