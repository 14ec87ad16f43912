# keepalive.py
from __future__ import annotations

import threading
from typing import Optional

from .system import System
from .ui.console import get_console


class SudoKeepAlive:
    """
    Keeps the sudo timestamp fresh while a run is in progress.

    start() asks for the password once (`sudo -v`), then a daemon thread runs
    `sudo -n true` every `interval` seconds until stop(). The thread dies with
    the process, so an aborted run never leaves it behind.
    """

    def __init__(self, system: System, interval: float = 60.0):
        self.system = system
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.refreshes = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        get_console().print_debug("validating sudo session")
        self.system.run(["sudo", "-v"])
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sudo-keepalive", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            code, _out = self.system.probe(["sudo", "-n", "true"])
            self.refreshes += 1
            if code != 0:
                # session expired or revoked; the next privileged command will say so
                return

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=5)
        self._thread = None

    def __enter__(self) -> "SudoKeepAlive":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
