"""Parsing of ``ykman oath accounts`` output.

``ykman oath accounts code`` prints one credential per line::

    Google:alice      123456
    GitHub            [Requires Touch]

Lines that do not have that shape are skipped rather than failing the batch.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from ykdash.accounts.models import DEFAULT_PERIOD, TOUCH_REQUIRED, Account
from ykdash.errors import ParseError, TouchFlowError


logger = logging.getLogger(__name__)

_CODE_LINE_RE = re.compile(r"^(?P<name>.*\S)\s+(?P<code>\d+|\[Requires Touch\])\s*$")
_PERIOD_LINE_RE = re.compile(r"^(?P<name>.*\S),\s*(?P<period>\d+)\s*$")


def _split_lines(output: str | Iterable[str]) -> list[str]:
    if isinstance(output, str):
        return output.splitlines()
    return list(output)


def parse_line(
    line: str,
    *,
    period: int = DEFAULT_PERIOD,
    now: float | None = None,
) -> Account:
    match = _CODE_LINE_RE.match(line.rstrip("\r\n"))
    if match is None:
        raise ParseError(line)
    return Account.from_ykman(match["name"].strip(), match["code"], period=period, now=now)


def parse_codes(
    output: str | Iterable[str],
    *,
    periods: dict[str, int] | None = None,
    default_period: int = DEFAULT_PERIOD,
    now: float | None = None,
) -> list[Account]:
    """Parse every well-formed line, skipping blank and malformed ones.

    Duplicate names keep their first occurrence so identities stay unique.
    """
    periods = periods or {}
    accounts: list[Account] = []
    seen: set[str] = set()
    skipped = 0

    for line in _split_lines(output):
        if not line.strip():
            continue
        try:
            account = parse_line(line, now=now)
        except ParseError as exc:
            skipped += 1
            logger.debug("Skipping ykman line: %s", exc)
            continue
        if account.identity in seen:
            logger.debug("Skipping duplicate account %s", account.identity)
            continue
        period = periods.get(account.identity, default_period)
        if period != account.period:
            account = Account.from_ykman(account.identity, account.code, period=period, now=now)
        seen.add(account.identity)
        accounts.append(account)

    if skipped:
        logger.info("Skipped %d unparsable ykman line(s)", skipped)
    return accounts


def parse_periods(output: str | Iterable[str]) -> dict[str, int]:
    """Parse ``ykman oath accounts list -P`` output into ``{name: period}``."""
    periods: dict[str, int] = {}
    for line in _split_lines(output):
        match = _PERIOD_LINE_RE.match(line.strip())
        if match is None:
            continue
        period = int(match["period"])
        if period > 0:
            periods[match["name"].strip()] = period
    return periods


def parse_touch_output(
    identity: str,
    output: str | Iterable[str],
    *,
    period: int = DEFAULT_PERIOD,
    now: float | None = None,
) -> Account:
    """Return the code ykman printed after a touch.

    ykman may print a prompt line before the code, and a name query can match
    more than one credential, so the last line for ``identity`` wins.
    """
    for line in reversed(_split_lines(output)):
        if not line.strip():
            continue
        try:
            parsed = parse_line(line, now=now)
        except ParseError:
            continue
        if parsed.identity != identity:
            logger.debug("Ignoring touch output for %s", parsed.identity)
            continue
        if parsed.code == TOUCH_REQUIRED:
            raise TouchFlowError(f"{identity} still requires touch")
        return Account.from_ykman(identity, parsed.code, period=period, now=now)
    raise TouchFlowError(f"No code in ykman output for {identity}")
