import pytest

from ykdash.accounts.models import TOUCH_REQUIRED
from ykdash.accounts.parser import parse_codes, parse_line, parse_periods, parse_touch_output
from ykdash.errors import ParseError, TouchFlowError


def test_parse_line_with_issuer_and_label() -> None:
    account = parse_line("Google:alice   123456")

    assert account.identity == "Google:alice"
    assert account.issuer == "Google"
    assert account.label == "alice"
    assert account.code == "123456"
    assert account.requires_touch is False


def test_parse_line_touch_required_without_label() -> None:
    account = parse_line("GitHub   [Requires Touch]")

    assert account.identity == "GitHub"
    assert account.issuer == "GitHub"
    assert account.label == ""
    assert account.code == TOUCH_REQUIRED
    assert account.requires_touch is True


def test_parse_line_keeps_spaces_and_digits_inside_name() -> None:
    account = parse_line("Acme Corp 2024:bob@example.com    00123456")

    assert account.issuer == "Acme Corp 2024"
    assert account.label == "bob@example.com"
    assert account.code == "00123456"


def test_parse_line_records_time_remaining_from_clock() -> None:
    account = parse_line("Google:alice 123456", now=1000.0)

    assert account.period == 30
    assert account.time_remaining == 20


def test_parse_line_rejects_malformed_line() -> None:
    with pytest.raises(ParseError):
        parse_line("no code here")


def test_parse_codes_skips_blank_and_malformed_lines() -> None:
    output = "Google:alice   123456\nthis is not valid\n\nGitHub   [Requires Touch]\n\n"

    accounts = parse_codes(output)

    assert [a.identity for a in accounts] == ["Google:alice", "GitHub"]


def test_parse_codes_returns_empty_list_when_nothing_parses() -> None:
    assert parse_codes("garbage\nmore garbage\n") == []


def test_parse_codes_keeps_first_of_duplicate_identities() -> None:
    accounts = parse_codes("Google:alice 111111\nGoogle:alice 222222\n")

    assert len(accounts) == 1
    assert accounts[0].code == "111111"


def test_parse_codes_applies_known_periods() -> None:
    accounts = parse_codes(
        "Steam:me 12345\nGoogle:alice 123456\n",
        periods={"Steam:me": 60},
        now=1000.0,
    )

    steam, google = accounts
    assert steam.period == 60
    assert steam.time_remaining == 60 - 1000 % 60
    assert google.period == 30


def test_parse_periods() -> None:
    output = "Google:alice, 30\nSteam:me, 60\nnot a period line\nBroken, 0\n"

    assert parse_periods(output) == {"Google:alice": 30, "Steam:me": 60}


def test_parse_touch_output_consumes_prompt_line() -> None:
    account = parse_touch_output("GitHub", "Touch your YubiKey...\nGitHub   654321\n")

    assert account.identity == "GitHub"
    assert account.code == "654321"
    assert account.requires_touch is False


def test_parse_touch_output_single_line() -> None:
    account = parse_touch_output("GitHub", "GitHub   654321")

    assert account.code == "654321"


def test_parse_touch_output_without_code_fails() -> None:
    with pytest.raises(TouchFlowError):
        parse_touch_output("GitHub", "\n\n")


def test_parse_touch_output_still_requiring_touch_fails() -> None:
    with pytest.raises(TouchFlowError):
        parse_touch_output("GitHub", "GitHub   [Requires Touch]\n")


def test_parse_touch_output_ignores_other_credentials() -> None:
    output = "GitHub   654321\nGitHub:work   111111\n"

    account = parse_touch_output("GitHub", output)

    assert account.identity == "GitHub"
    assert account.code == "654321"


def test_parse_touch_output_for_another_name_fails() -> None:
    with pytest.raises(TouchFlowError):
        parse_touch_output("GitHub", "GitLab   654321\n")
