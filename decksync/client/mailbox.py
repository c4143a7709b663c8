"""Single consumer task queue plus the fixed-interval poll timer that feeds it."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable


logger = logging.getLogger(__name__)

Task = Callable[[], object]


class SyncMailbox:
    """All session state is touched from whichever thread drains this queue."""

    def __init__(self, name: str = "decksync-mailbox") -> None:
        self.name = name
        self._queue: "queue.Queue[Task]" = queue.Queue()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def post(self, task: Task) -> None:
        self._queue.put(task)

    def pending(self) -> int:
        return self._queue.qsize()

    def _run(self, task: Task) -> None:
        try:
            task()
        except Exception:
            logger.exception("Sync task %r failed", task)

    def drain(self) -> int:
        """Run queued tasks on the calling thread until the queue is empty."""
        ran = 0
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                return ran
            self._run(task)
            ran += 1

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 1.0) -> None:
        self._stopped.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _loop(self) -> None:
        while not self._stopped.is_set():
            try:
                task = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            self._run(task)


class PollTimer:
    def __init__(self, interval_s: float, on_tick: Callable[[], None], name: str = "decksync-poll") -> None:
        self.interval_s = interval_s
        self.on_tick = on_tick
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _loop(self) -> None:
        while not self._cancelled.wait(self.interval_s):
            self.on_tick()
