"""Merge freshly polled snapshots into the displayed account list."""

from __future__ import annotations

from collections.abc import Sequence

from ykdash.accounts.models import Account


def _merge(previous: Account | None, polled: Account, *, keep_placeholder: bool = True) -> Account:
    if previous is None or previous.time_remaining >= polled.time_remaining:
        return polled
    if previous.requires_touch and not keep_placeholder:
        return polled
    return polled.model_copy(
        update={"code": previous.code, "requires_touch": previous.requires_touch}
    )


def reconcile(previous: Sequence[Account], polled: Sequence[Account]) -> list[Account]:
    """Return the list to display after a poll.

    The result holds exactly the polled identities in polled order. A polled
    account whose previous entry has less time remaining keeps the previous
    code and touch flag.
    """
    by_identity = {account.identity: account for account in previous}
    return [_merge(by_identity.get(account.identity), account) for account in polled]


def reconcile_one(previous: Sequence[Account], polled: Account) -> list[Account]:
    """Merge a single-account snapshot (a touch result) into ``previous``.

    Same rule as :func:`reconcile`, except that a touch placeholder never
    displaces a confirmed code. Every other account is left as it was and an
    identity that is no longer listed is ignored.
    """
    merged: list[Account] = []
    for account in previous:
        if account.identity == polled.identity:
            merged.append(_merge(account, polled, keep_placeholder=False))
        else:
            merged.append(account)
    return merged
