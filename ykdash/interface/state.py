from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ykdash.accounts.models import Account
from ykdash.accounts.reconciler import reconcile, reconcile_one


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DisplayState:
    """Everything the dashboard shows. Mutated only from the app's event loop."""

    accounts: list[Account] = field(default_factory=list)
    cursor: int = 0
    messages: dict[str, str] = field(default_factory=dict)
    touch_in_flight: set[str] = field(default_factory=set)

    def selected(self) -> Account | None:
        if not self.accounts:
            return None
        return self.accounts[self.cursor]

    def find(self, identity: str) -> Account | None:
        for account in self.accounts:
            if account.identity == identity:
                return account
        return None

    def _clamp_cursor(self) -> None:
        if not self.accounts:
            self.cursor = 0
        else:
            self.cursor = min(max(self.cursor, 0), len(self.accounts) - 1)

    def move_up(self) -> None:
        if self.accounts:
            self.cursor = (self.cursor - 1) % len(self.accounts)

    def move_down(self) -> None:
        if self.accounts:
            self.cursor = (self.cursor + 1) % len(self.accounts)

    def apply_poll(self, polled: list[Account]) -> bool:
        """Merge a poll result. An empty poll keeps the current list."""
        if not polled:
            logger.warning("Poll returned no accounts, keeping %d displayed", len(self.accounts))
            return False
        self.accounts = reconcile(self.accounts, polled)
        self._clamp_cursor()
        return True

    def apply_touch(self, account: Account) -> bool:
        if self.find(account.identity) is None:
            logger.info("Touch result for %s no longer listed", account.identity)
            return False
        self.accounts = reconcile_one(self.accounts, account)
        return True

    def message_for(self, identity: str) -> str | None:
        return self.messages.get(identity) or None

    def begin_touch(self, identity: str) -> bool:
        if identity in self.touch_in_flight:
            return False
        self.touch_in_flight.add(identity)
        return True

    def end_touch(self, identity: str) -> None:
        self.touch_in_flight.discard(identity)
