"""A ticker that either delivers tick times or runs a callback on each tick."""

from __future__ import annotations

import queue
import threading
import time
from datetime import datetime
from typing import Any, Callable, Optional

__all__ = ["Ticker"]


class Ticker:
    """Ticks every *interval* seconds on a background thread.

    Without a callback each tick's time is offered to :meth:`get`; a tick
    that nobody has collected yet causes later ticks to be dropped.  With a
    callback set by :meth:`func`, the callback runs instead.
    """

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("non-positive interval for Ticker")
        self._interval = interval
        self._next = time.monotonic() + interval
        self._func: Optional[Callable[[], Any]] = None
        self._stopped = False
        self._cond = threading.Condition()
        self._ticks: "queue.Queue[datetime]" = queue.Queue(maxsize=1)
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def __enter__(self) -> "Ticker":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._stopped:
                    remaining = self._next - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if self._stopped:
                    return
                now = time.monotonic()
                self._next += self._interval
                if self._next <= now:
                    self._next = now + self._interval
                callback = self._func
            if callback is not None:
                callback()
                continue
            try:
                self._ticks.put_nowait(datetime.now())
            except queue.Full:
                pass

    def func(self, f: Optional[Callable[[], Any]]) -> Optional[Callable[[], Any]]:
        """Run *f* on each tick instead of delivering tick times; return *f*."""
        with self._cond:
            self._func = f
        return f

    def get(self, timeout: Optional[float] = None) -> datetime:
        """Wait for the next tick and return its time."""
        try:
            return self._ticks.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no tick within timeout") from None

    def reset(self, interval: float) -> None:
        """Change the period; the next tick comes *interval* seconds from now."""
        if interval <= 0:
            raise ValueError("non-positive interval for Ticker.reset")
        with self._cond:
            self._interval = interval
            self._next = time.monotonic() + interval
            self._cond.notify_all()

    def stop(self) -> None:
        """Stop ticking."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        if threading.current_thread() is not self._thread:
            self._thread.join()