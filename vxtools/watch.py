"""Watch files and directories and call back on changes."""

from __future__ import annotations

import os
import threading
import time
from typing import Any, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

__all__ = ["Watch"]

WatchCallback = Callable[[FileSystemEvent], Any]


class _Handler(FileSystemEventHandler):
    def __init__(self, watch: "Watch") -> None:
        super().__init__()
        self._watch = watch

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._watch._dispatch(event)


class Watch:
    """Calls registered callbacks, each on its own thread, for file system events.

    A callback registered for an absolute path receives events whose path
    starts with it; any callback also receives events whose path contains
    its registered path.  An event repeating the previous one within the
    same second is dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._callbacks: dict[str, WatchCallback] = {}
        self._watches: dict[str, Any] = {}
        self._closed = False
        self._last: tuple[str, str] = ("", "")
        self._last_second = -1
        self._handler = _Handler(self)
        self._observer = Observer()
        self._observer.daemon = True
        self._observer.start()

    def __enter__(self) -> "Watch":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _dispatch(self, event: FileSystemEvent) -> None:
        name = os.fsdecode(event.src_path)
        with self._lock:
            if self._closed:
                return
            second = int(time.time())
            key = (event.event_type, name)
            if second == self._last_second and key == self._last:
                return
            self._last_second = second
            self._last = key
            targets = [
                callback
                for path, callback in self._callbacks.items()
                if (os.path.isabs(path) and name.startswith(path)) or path in name
            ]
        for callback in targets:
            threading.Thread(target=callback, args=(event,), daemon=True).start()

    def monitor(self, path: str, callback: WatchCallback) -> None:
        """Watch *path* (not recursively) and call *callback* for its events."""
        with self._lock:
            if self._closed:
                raise RuntimeError("watch is closed")
            if not os.path.exists(path):
                raise FileNotFoundError(path)
            if path not in self._watches:
                self._watches[path] = self._observer.schedule(
                    self._handler, path, recursive=False
                )
            self._callbacks[path] = callback

    def remove(self, path: str) -> None:
        """Stop watching *path* and drop its callback."""
        with self._lock:
            watch = self._watches.pop(path, None)
            self._callbacks.pop(path, None)
            if watch is not None:
                try:
                    self._observer.unschedule(watch)
                except KeyError:
                    pass

    def close(self) -> None:
        """Stop watching everything."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._callbacks.clear()
            self._watches.clear()
        self._observer.stop()
        self._observer.join()