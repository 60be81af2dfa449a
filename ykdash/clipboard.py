"""Best-effort clipboard writes.

pyperclip covers X11, macOS and Windows; ``wl-copy`` is tried as well when it
is installed so Wayland sessions work too.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading

import pyperclip

from ykdash.errors import StartupError


logger = logging.getLogger(__name__)


class Clipboard:
    def __init__(self, wl_copy_path: str | None = None) -> None:
        self._wl_copy = wl_copy_path if wl_copy_path is not None else shutil.which("wl-copy")
        self._pyperclip_ok = True
        self._lock = threading.Lock()

    def check(self) -> None:
        """Raise StartupError when no clipboard mechanism is usable."""
        try:
            pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            self._pyperclip_ok = False
            if not self._wl_copy:
                raise StartupError(f"Clipboard unavailable: {exc}") from exc
            logger.info("pyperclip unavailable, using wl-copy only")

    def write(self, text: str) -> None:
        """Copy ``text``. Blocks on helper processes, call it off the UI loop."""
        with self._lock:
            self._write(text)

    def _write(self, text: str) -> None:
        if self._pyperclip_ok:
            try:
                pyperclip.copy(text)
            except pyperclip.PyperclipException:
                logger.debug("pyperclip copy failed", exc_info=True)

        if self._wl_copy:
            try:
                subprocess.run(
                    [self._wl_copy, text],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    timeout=5,
                    check=False,
                )
            except (OSError, subprocess.SubprocessError):
                logger.debug("wl-copy failed", exc_info=True)
