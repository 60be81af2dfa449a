"""Results posted back to the dashboard from background work."""

from __future__ import annotations

from textual.message import Message

from ykdash.accounts.models import Account


class CodesPolled(Message):
    def __init__(self, accounts: list[Account]) -> None:
        super().__init__()
        self.accounts = accounts


class PollFailed(Message):
    def __init__(self, error: str) -> None:
        super().__init__()
        self.error = error


class TouchResolved(Message):
    def __init__(self, account: Account) -> None:
        super().__init__()
        self.account = account

    @property
    def identity(self) -> str:
        return self.account.identity


class TouchFailed(Message):
    def __init__(self, identity: str, error: str) -> None:
        super().__init__()
        self.identity = identity
        self.error = error
