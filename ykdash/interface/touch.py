"""Touch-confirmation requests that wait on the key without blocking the UI."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from textual.message import Message

from ykdash.errors import TouchFlowError
from ykdash.interface.events import TouchFailed, TouchResolved
from ykdash.source.ykman import CodeSource


logger = logging.getLogger(__name__)


class TouchFlow:
    """Runs each touch request on a daemon thread and posts the outcome.

    ``post`` must be safe to call from another thread, as textual's
    ``App.post_message`` is. Requests run until the key is touched; the
    process does not wait for them on exit.
    """

    def __init__(self, source: CodeSource, post: Callable[[Message], Any]) -> None:
        self._source = source
        self._post = post
        self._stopped = threading.Event()

    def request(self, identity: str) -> threading.Thread:
        thread = threading.Thread(
            target=self._run,
            args=(identity,),
            name=f"touch-{identity}",
            daemon=True,
        )
        thread.start()
        return thread

    def _run(self, identity: str) -> None:
        logger.info("Waiting for touch on %s", identity)
        try:
            account = self._source.fetch_code(identity)
        except TouchFlowError as exc:
            logger.warning("Touch request for %s failed: %s", identity, exc)
            self._deliver(TouchFailed(identity, str(exc)))
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during touch request for %s", identity)
            self._deliver(TouchFailed(identity, str(exc)))
            return

        self._deliver(TouchResolved(account))

    def _deliver(self, message: Message) -> None:
        if self._stopped.is_set():
            logger.debug("Dropping touch result after shutdown")
            return
        self._post(message)

    def cancel_all(self) -> None:
        """Stop delivering results. Pending ykman calls are ended by the source."""
        self._stopped.set()
