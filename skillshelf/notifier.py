"""
skillshelf.notifier

Collapse raw filesystem events on a set of directories into one debounced
"changed" callback.

A watchdog Observer holds one watch per existing directory. Every create,
delete, modify or move event restarts a timer; the callback fires once the
timer runs out with no further events. The callback runs on the timer thread,
never on the observer thread, so it may rebuild a catalog without blocking
event delivery. It must not call watch() itself; re-arming belongs to the code
that decides which paths are interesting.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5

_RELEVANT_EVENTS = {
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
}


class _Forwarder(FileSystemEventHandler):
    def __init__(self, notifier: ChangeNotifier):
        super().__init__()
        self._notifier = notifier

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _RELEVANT_EVENTS:
            self._notifier.schedule_change()


class ChangeNotifier:
    """
    function_purpose: Watch directories and fire ``on_change`` after activity settles.

    Usage:
        notifier = ChangeNotifier(on_change=reload, debounce=0.5)
        notifier.watch([personal_dir, project_dir])
        ...
        notifier.stop()
    """

    def __init__(
        self,
        on_change: Callable[[], None],
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        recursive: bool = False,
    ):
        self.on_change = on_change
        self.debounce = debounce
        self.recursive = recursive
        self._observer: Observer | None = None
        self._watches: list[ObservedWatch] = []
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()
        # held across a whole watch() / stop() so observers are replaced one at a time
        self._rearm_lock = threading.RLock()
        self._handler = _Forwarder(self)

    @property
    def watched_paths(self) -> list[Path]:
        return [Path(w.path) for w in self._watches]

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def watch(self, paths: Iterable[Path]) -> list[Path]:
        """
        function_purpose: Replace every existing watch with watches on ``paths``.

        Paths that do not exist right now are skipped; call watch() again when the
        set of interesting paths changes. Returns the paths actually watched.
        """
        with self._rearm_lock:
            self.stop()

            observer = Observer()
            watches: list[ObservedWatch] = []
            seen: set[str] = set()
            for path in paths:
                key = str(path)
                if key in seen or not Path(path).is_dir():
                    continue
                seen.add(key)
                try:
                    watches.append(observer.schedule(self._handler, key, recursive=self.recursive))
                except OSError as exc:
                    logger.warning("Cannot watch %s: %s", path, exc)

            if not watches:
                logger.info("No existing directories to watch")
                return []

            observer.daemon = True
            observer.start()
            with self._lock:
                self._observer = observer
                self._watches = watches
            logger.info("Watching %d director%s", len(watches), "y" if len(watches) == 1 else "ies")
            return self.watched_paths

    def stop(self) -> None:
        """Tear down all watches and cancel any pending notification."""
        with self._rearm_lock:
            with self._lock:
                observer, self._observer = self._observer, None
                self._watches = []
                timer, self._timer = self._timer, None
            if timer is not None:
                timer.cancel()
            if observer is not None:
                observer.unschedule_all()
                observer.stop()
                if observer is not threading.current_thread():
                    observer.join()

    def schedule_change(self) -> None:
        """(Re)start the debounce timer. Ignored while nothing is watched."""
        with self._lock:
            if self._observer is None:
                return
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.debounce, self._fire)
            timer.name = "ChangeNotifierDebounce"
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _fire(self) -> None:
        with self._lock:
            if self._timer is not threading.current_thread():
                return
            self._timer = None
        try:
            self.on_change()
        except Exception:
            logger.exception("Change callback failed")


__all__: list[str] = ["ChangeNotifier", "DEFAULT_DEBOUNCE_SECONDS"]
