import asyncio
import logging
import threading
import time
from typing import TYPE_CHECKING, Any, ClassVar


if TYPE_CHECKING:
    from textual.timer import Timer

from rich.panel import Panel
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Static

from ykdash.clipboard import Clipboard
from ykdash.config import Config
from ykdash.errors import SourceUnavailableError
from ykdash.interface.events import CodesPolled, PollFailed, TouchFailed, TouchResolved
from ykdash.interface.messages import MessageTimer
from ykdash.interface.scheduler import RefreshScheduler
from ykdash.interface.state import DisplayState
from ykdash.interface.touch import TouchFlow
from ykdash.interface.utils import PRIMARY_COLOR, build_accounts_table, build_status_text
from ykdash.source.ykman import CodeSource


logger = logging.getLogger(__name__)

COPIED_MESSAGE = "Copied!"
TOUCH_PENDING_MESSAGE = "[Touch Key]"
TOUCH_FAILED_MESSAGE = "Touch failed"


class DashboardApp(App[int]):  # type: ignore[misc]
    CSS_PATH = "assets/dashboard_styles.tcss"

    BINDINGS: ClassVar[list[Binding]] = [  # type: ignore[assignment]
        Binding("up", "cursor_up", "Up", show=False, priority=True),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("down", "cursor_down", "Down", show=False, priority=True),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("enter", "confirm", "Copy", show=False, priority=True),
        Binding("c", "confirm", "Copy", show=False),
        Binding("q", "quit_app", "Quit", show=False),
        Binding("ctrl+c", "quit_app", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        source: CodeSource,
        clipboard: Clipboard,
        *,
        serial: str | None = None,
    ) -> None:
        super().__init__()
        self._code_source = source
        self._code_clipboard = clipboard
        self._device_serial = serial
        self._copy_seconds = Config.copy_message_seconds()
        self._touch_seconds = Config.touch_message_seconds()

        self.state = DisplayState()
        self.scheduler = RefreshScheduler(Config.default_period())
        self.message_timer = MessageTimer(self.state, self.set_timer, on_change=self._refresh_view)
        self.touch_flow = TouchFlow(source, self.post_message)

        self._poll_timer: Timer | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._render_timer: Any | None = None

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("", id="accounts_list"),
            Static("", id="status_bar"),
            id="dashboard_root",
        )

    def on_mount(self) -> None:
        self.title = "ykdash"
        self._render_timer = self.set_interval(1.0, self._refresh_view)
        self._schedule_poll()

    def on_unmount(self) -> None:
        self._stop_background()

    def on_resize(self, _event: events.Resize) -> None:
        self._refresh_view()

    # ── Polling ───────────────────────────────────────────────────────

    def _schedule_poll(self) -> None:
        wait = self.scheduler.next_wait(time.time(), self.state.accounts)
        logger.debug("Next refresh in %.2fs", wait)
        if wait <= 0:
            self._start_poll()
        else:
            self._poll_timer = self.set_timer(wait, self._start_poll)

    def _start_poll(self) -> None:
        self._poll_timer = None
        if self._poll_task is not None and not self._poll_task.done():
            return
        self.scheduler.start_poll()
        self._refresh_view()
        self._poll_task = asyncio.create_task(self._poll_codes())

    async def _poll_codes(self) -> None:
        try:
            accounts = await asyncio.to_thread(self._code_source.fetch_codes)
        except SourceUnavailableError as exc:
            self.post_message(PollFailed(str(exc)))
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error while polling codes")
            self.post_message(PollFailed(str(exc)))
            return
        self.post_message(CodesPolled(accounts))

    def on_codes_polled(self, message: CodesPolled) -> None:
        merged = self.state.apply_poll(message.accounts)
        self.scheduler.finish_poll(None if merged else "No accounts found")
        self._after_poll()

    def on_poll_failed(self, message: PollFailed) -> None:
        logger.warning("Poll failed: %s", message.error)
        self.scheduler.finish_poll(message.error)
        self._after_poll()

    def _after_poll(self) -> None:
        self.scheduler.settle()
        self._refresh_view()
        self._schedule_poll()

    # ── Touch flow ────────────────────────────────────────────────────

    def on_touch_resolved(self, message: TouchResolved) -> None:
        identity = message.identity
        self.state.end_touch(identity)
        self.message_timer.clear(identity)
        if not self.state.apply_touch(message.account):
            return

        account = self.state.find(identity)
        if account is not None and not account.requires_touch:
            # Silently copy, the code itself is already visible.
            self._copy_code(account.code)
        self._refresh_view()

    def on_touch_failed(self, message: TouchFailed) -> None:
        self.state.end_touch(message.identity)
        self.message_timer.show(message.identity, TOUCH_FAILED_MESSAGE, self._copy_seconds)

    # ── Actions (bound to keys via BINDINGS) ──────────────────────────

    def action_cursor_up(self) -> None:
        self.state.move_up()
        self._refresh_view()

    def action_cursor_down(self) -> None:
        self.state.move_down()
        self._refresh_view()

    def action_confirm(self) -> None:
        account = self.state.selected()
        if account is None:
            return

        if account.requires_touch:
            if not self.state.begin_touch(account.identity):
                logger.debug("Touch already pending for %s", account.identity)
                return
            self.message_timer.show(account.identity, TOUCH_PENDING_MESSAGE, self._touch_seconds)
            self.touch_flow.request(account.identity)
            return

        self._copy_code(account.code)
        self.message_timer.show(account.identity, COPIED_MESSAGE, self._copy_seconds)

    def _copy_code(self, code: str) -> threading.Thread:
        thread = threading.Thread(target=self._code_clipboard.write, args=(code,), daemon=True)
        thread.start()
        return thread

    def action_quit_app(self) -> None:
        self._stop_background()
        self.exit(0)

    def _stop_background(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None
        if self._render_timer is not None:
            self._render_timer.stop()
            self._render_timer = None
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None
        self.message_timer.cancel_all()
        self.touch_flow.cancel_all()
        self._code_source.close()

    # ── Rendering ─────────────────────────────────────────────────────

    def _refresh_view(self) -> None:
        if not self.is_mounted:
            return
        try:
            accounts_list = self.query_one("#accounts_list", Static)
            status_bar = self.query_one("#status_bar", Static)
        except Exception:  # noqa: BLE001
            return

        width = max(20, self.size.width - 4)
        accounts_list.update(
            Panel(
                build_accounts_table(self.state, width),
                border_style=PRIMARY_COLOR,
                padding=(0, 2, 0, 0),
            )
        )
        status_bar.update(build_status_text(self.scheduler, self._device_serial))


async def run_dashboard(
    source: CodeSource,
    clipboard: Clipboard,
    serial: str | None = None,
) -> int | None:
    """Run the dashboard until the user quits."""
    app = DashboardApp(source, clipboard, serial=serial)
    return await app.run_async()
