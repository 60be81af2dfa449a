import subprocess
import threading
import time

import pytest

from ykdash.errors import SourceUnavailableError, TouchFlowError
from ykdash.source import ykman as ykman_module
from ykdash.source.ykman import YkmanCodeSource


CODES_OUTPUT = "Google:alice   123456\nGitHub   [Requires Touch]\nSteam:me   54321\n\n"
PERIODS_OUTPUT = "Google:alice, 30\nGitHub, 30\nSteam:me, 60\n"


class _FakeProcess:
    def __init__(
        self,
        command: list[str],
        *,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        timeout_first: bool = False,
        block: bool = False,
    ) -> None:
        self.command = command
        self.pid = 4242
        self.returncode: int | None = None
        self.timeouts: list[float | None] = []
        self.killed = threading.Event()
        self._stdout = stdout
        self._stderr = stderr
        self._exit_code = returncode
        self._timeout_first = timeout_first
        self._block = block

    def communicate(self, timeout=None):
        self.timeouts.append(timeout)
        if self._timeout_first and not self.killed.is_set():
            raise subprocess.TimeoutExpired(self.command, timeout)
        if self._block:
            self.killed.wait(timeout=5)
        if self.killed.is_set():
            self.returncode = -9
            return "", ""
        self.returncode = self._exit_code
        return self._stdout, self._stderr

    def poll(self):
        return self.returncode

    def kill(self) -> None:
        self.killed.set()


def _fake_popen(responses: dict[tuple[str, ...], dict], processes: list[_FakeProcess]):
    def _popen(command, **kwargs):
        for suffix, response in responses.items():
            if tuple(command[-len(suffix):]) == suffix:
                process = _FakeProcess(command, **response)
                processes.append(process)
                return process
        raise AssertionError(f"unexpected command {command}")

    return _popen


def _install(monkeypatch, responses: dict[tuple[str, ...], dict]) -> list[_FakeProcess]:
    processes: list[_FakeProcess] = []
    monkeypatch.setattr(ykman_module.subprocess, "Popen", _fake_popen(responses, processes))
    return processes


def test_fetch_codes_parses_accounts_and_periods(monkeypatch) -> None:
    processes = _install(
        monkeypatch,
        {
            ("oath", "accounts", "code"): {"stdout": CODES_OUTPUT},
            ("oath", "accounts", "list", "-P"): {"stdout": PERIODS_OUTPUT},
        },
    )
    source = YkmanCodeSource(serial="", ykman_path="ykman", timeout=5, default_period=30)

    accounts = source.fetch_codes()

    assert [a.identity for a in accounts] == ["Google:alice", "GitHub", "Steam:me"]
    assert accounts[1].requires_touch is True
    assert accounts[2].period == 60
    assert processes[0].command == ["ykman", "oath", "accounts", "code"]
    assert processes[0].timeouts == [5]


def test_periods_are_cached_between_polls(monkeypatch) -> None:
    processes = _install(
        monkeypatch,
        {
            ("oath", "accounts", "code"): {"stdout": CODES_OUTPUT},
            ("oath", "accounts", "list", "-P"): {"stdout": PERIODS_OUTPUT},
        },
    )
    source = YkmanCodeSource(serial="", timeout=5, default_period=30)

    source.fetch_codes()
    source.fetch_codes()

    assert sum(1 for p in processes if "list" in p.command) == 1


def test_period_lookup_failure_falls_back_to_default(monkeypatch) -> None:
    _install(
        monkeypatch,
        {
            ("oath", "accounts", "code"): {"stdout": CODES_OUTPUT},
            ("oath", "accounts", "list", "-P"): {
                "returncode": 2,
                "stderr": "No such option: -P",
            },
        },
    )
    source = YkmanCodeSource(serial="", timeout=5, default_period=30)

    accounts = source.fetch_codes()

    assert {a.period for a in accounts} == {30}


def test_device_serial_is_passed_to_ykman(monkeypatch) -> None:
    processes = _install(monkeypatch, {("oath", "accounts", "code"): {"stdout": ""}})
    source = YkmanCodeSource(serial="12345678", timeout=5)

    assert source.fetch_codes() == []
    assert processes[0].command == ["ykman", "--device", "12345678", "oath", "accounts", "code"]


def test_serial_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("YUBIKEY_SERIAL_NUMBER", "87654321")

    assert YkmanCodeSource().serial == "87654321"


def test_non_zero_exit_raises_source_unavailable(monkeypatch) -> None:
    _install(
        monkeypatch,
        {
            ("oath", "accounts", "code"): {
                "returncode": 1,
                "stderr": "Error: No YubiKey detected!",
            }
        },
    )
    source = YkmanCodeSource(serial="", timeout=5)

    with pytest.raises(SourceUnavailableError, match="No YubiKey detected"):
        source.fetch_codes()


def test_missing_ykman_raises_source_unavailable(monkeypatch) -> None:
    def _missing(*_args, **_kwargs):
        raise FileNotFoundError("ykman")

    monkeypatch.setattr(ykman_module.subprocess, "Popen", _missing)
    source = YkmanCodeSource(serial="", timeout=5)

    with pytest.raises(SourceUnavailableError, match="not found"):
        source.fetch_codes()


def test_timeout_kills_ykman_and_raises_source_unavailable(monkeypatch) -> None:
    processes = _install(
        monkeypatch,
        {("oath", "accounts", "code"): {"timeout_first": True}},
    )
    source = YkmanCodeSource(serial="", timeout=5)

    with pytest.raises(SourceUnavailableError, match="timed out"):
        source.fetch_codes()

    assert processes[0].killed.is_set()


def test_fetch_code_waits_without_timeout(monkeypatch) -> None:
    processes = _install(
        monkeypatch,
        {("oath", "accounts", "code", "GitHub"): {"stdout": "Touch your YubiKey...\nGitHub   654321\n"}},
    )
    source = YkmanCodeSource(serial="", timeout=5)

    account = source.fetch_code("GitHub")

    assert account.code == "654321"
    assert account.requires_touch is False
    assert processes[0].command == ["ykman", "oath", "accounts", "code", "GitHub"]
    assert processes[0].timeouts == [None]


def test_fetch_code_failure_raises_touch_flow_error(monkeypatch) -> None:
    _install(
        monkeypatch,
        {("oath", "accounts", "code", "GitHub"): {"returncode": 1, "stderr": "Touch timed out"}},
    )
    source = YkmanCodeSource(serial="", timeout=5)

    with pytest.raises(TouchFlowError):
        source.fetch_code("GitHub")


def test_close_kills_pending_touch_request(monkeypatch) -> None:
    processes = _install(
        monkeypatch,
        {("oath", "accounts", "code", "GitHub"): {"block": True}},
    )
    source = YkmanCodeSource(serial="", timeout=5)
    errors: list[Exception] = []

    def _request() -> None:
        try:
            source.fetch_code("GitHub")
        except TouchFlowError as exc:
            errors.append(exc)

    worker = threading.Thread(target=_request, daemon=True)
    worker.start()
    for _ in range(200):
        if processes and processes[0].timeouts:
            break
        time.sleep(0.01)

    source.close()
    worker.join(timeout=2)

    assert not worker.is_alive()
    assert processes[0].killed.is_set()
    assert len(errors) == 1
    assert "status -9" in str(errors[0])
