import time

from rich.style import Style
from rich.table import Table
from rich.text import Text

from ykdash.accounts.models import Account
from ykdash.interface.scheduler import RefreshPhase, RefreshScheduler
from ykdash.interface.state import DisplayState


PRIMARY_COLOR = "#6f8f92"
CODE_WIDTH = 16
DURATION_WIDTH = 4


def truncate_label(label: str, width: int) -> str:
    if len(label) > width and width > 3:
        return label[: width - 3] + "..."
    return label


def format_account_label(account: Account, selected: bool) -> str:
    cursor = "> " if selected else "  "
    return f"{cursor}{account.issuer}"


def account_display_value(state: DisplayState, account: Account) -> str:
    message = state.message_for(account.identity)
    return message if message else account.code


def build_accounts_table(state: DisplayState, width: int, now: float | None = None) -> Table | Text:
    if not state.accounts:
        return Text("Waiting for codes...", style=Style(color=PRIMARY_COLOR, italic=True))

    if now is None:
        now = time.time()

    label_width = max(4, width - (CODE_WIDTH + DURATION_WIDTH) - 4)

    table = Table.grid(padding=(0, 1), expand=True)
    table.add_column("account", ratio=1, no_wrap=True)
    table.add_column("code", width=CODE_WIDTH, justify="right", no_wrap=True)
    table.add_column("ttl", width=DURATION_WIDTH, justify="right", no_wrap=True)

    for index, account in enumerate(state.accounts):
        selected = index == state.cursor
        label = Text(
            truncate_label(format_account_label(account, selected), label_width),
            style=Style(color=PRIMARY_COLOR, bold=selected),
        )
        if account.label:
            label.append(f" {account.label}", style=Style(color=PRIMARY_COLOR, dim=True))
            label.truncate(label_width, overflow="ellipsis")

        value = account_display_value(state, account)
        code_style = Style(color=PRIMARY_COLOR, bold=selected, italic=value != account.code)
        table.add_row(
            label,
            Text(value, style=code_style),
            Text(account.duration_label(now), style=Style(color=PRIMARY_COLOR, dim=True)),
        )
    return table


def build_status_text(scheduler: RefreshScheduler, serial: str | None) -> Text:
    text = Text()
    text.append("j/k move  c copy  q quit", style=Style(color=PRIMARY_COLOR, dim=True))
    if serial:
        text.append(f"  device {serial}", style=Style(color=PRIMARY_COLOR, dim=True))
    if scheduler.phase == RefreshPhase.polling:
        text.append("  refreshing...", style=Style(color=PRIMARY_COLOR, italic=True))
    elif scheduler.last_error:
        text.append(f"  {scheduler.last_error}", style=Style(color="red"))
    return text
