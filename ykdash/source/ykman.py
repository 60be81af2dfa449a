"""Read OATH codes from a YubiKey through the ``ykman`` CLI.

All calls block; callers run them off the UI event loop. ``close`` kills any
ykman process still running, which ends a pending touch request.
"""

from __future__ import annotations

import contextlib
import logging
import subprocess
import threading
import time
from typing import Protocol

from ykdash.accounts.models import Account
from ykdash.accounts.parser import parse_codes, parse_periods, parse_touch_output
from ykdash.config import Config
from ykdash.errors import SourceUnavailableError, TouchFlowError


logger = logging.getLogger(__name__)


class CodeSource(Protocol):
    def fetch_codes(self) -> list[Account]: ...

    def fetch_code(self, identity: str) -> Account: ...

    def close(self) -> None: ...


class YkmanCodeSource:
    """CodeSource backed by ``ykman oath accounts``."""

    def __init__(
        self,
        serial: str | None = None,
        ykman_path: str | None = None,
        timeout: float | None = None,
        default_period: int | None = None,
    ) -> None:
        self._serial = serial if serial is not None else Config.device_serial()
        self._ykman_path = ykman_path or Config.get("ykdash_ykman_path") or "ykman"
        self._timeout = timeout if timeout is not None else Config.command_timeout()
        self._default_period = default_period or Config.default_period()
        self._periods: dict[str, int] = {}
        self._processes: set[subprocess.Popen[str]] = set()
        self._lock = threading.Lock()

    @property
    def serial(self) -> str | None:
        return self._serial

    def _command(self, *args: str) -> list[str]:
        command = [self._ykman_path]
        if self._serial:
            command += ["--device", self._serial]
        command += list(args)
        return command

    def _run(self, *args: str, timeout: float | None) -> str:
        command = self._command(*args)
        logger.debug("Running %s", " ".join(command))
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as exc:
            raise SourceUnavailableError(f"{self._ykman_path} not found") from exc
        except OSError as exc:
            raise SourceUnavailableError(f"Failed to run {self._ykman_path}: {exc}") from exc

        with self._lock:
            self._processes.add(process)
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise SourceUnavailableError(f"{' '.join(args)} timed out after {timeout}s") from exc
        finally:
            with self._lock:
                self._processes.discard(process)

        if process.returncode != 0:
            stderr = (stderr or "").strip()
            raise SourceUnavailableError(
                f"ykman exited with status {process.returncode}"
                + (f": {stderr.splitlines()[-1]}" if stderr else "")
            )
        return stdout or ""

    def close(self) -> None:
        """Kill every ykman process that is still running."""
        with self._lock:
            processes = list(self._processes)
        for process in processes:
            if process.poll() is None:
                logger.info("Stopping ykman (pid %s)", process.pid)
                with contextlib.suppress(OSError):
                    process.kill()

    def _refresh_periods(self, identities: list[str]) -> None:
        if all(identity in self._periods for identity in identities):
            return
        try:
            output = self._run("oath", "accounts", "list", "-P", timeout=self._timeout)
        except SourceUnavailableError as exc:
            logger.debug("Could not list periods, using default: %s", exc)
            return
        self._periods.update(parse_periods(output))

    def period_for(self, identity: str) -> int:
        return self._periods.get(identity, self._default_period)

    def fetch_codes(self) -> list[Account]:
        output = self._run("oath", "accounts", "code", timeout=self._timeout)
        now = time.time()
        accounts = parse_codes(output, default_period=self._default_period, now=now)
        if not accounts:
            return accounts

        self._refresh_periods([account.identity for account in accounts])
        if any(account.period != self.period_for(account.identity) for account in accounts):
            accounts = parse_codes(
                output,
                periods=self._periods,
                default_period=self._default_period,
                now=now,
            )
        return accounts

    def fetch_code(self, identity: str) -> Account:
        """Request one code, blocking until the key is touched."""
        try:
            output = self._run("oath", "accounts", "code", identity, timeout=None)
        except SourceUnavailableError as exc:
            raise TouchFlowError(str(exc)) from exc
        return parse_touch_output(identity, output, period=self.period_for(identity))
