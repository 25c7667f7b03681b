from __future__ import annotations

import threading
import time
from pathlib import Path

from watchdog.observers.api import BaseObserver

from skillshelf.notifier import ChangeNotifier


class _Recorder:
    def __init__(self) -> None:
        self.calls = 0
        self.fired = threading.Event()

    def __call__(self) -> None:
        self.calls += 1
        self.fired.set()


def test_file_event_fires_callback(tmp_path: Path) -> None:
    recorder = _Recorder()
    notifier = ChangeNotifier(recorder, debounce=0.05)
    try:
        assert notifier.watch([tmp_path]) == [tmp_path]
        (tmp_path / "new-skill").mkdir()
        assert recorder.fired.wait(5)
    finally:
        notifier.stop()


def test_bursts_are_coalesced(tmp_path: Path) -> None:
    recorder = _Recorder()
    notifier = ChangeNotifier(recorder, debounce=0.2)
    try:
        _ = notifier.watch([tmp_path])
        for _ in range(5):
            notifier.schedule_change()
            time.sleep(0.01)
        assert recorder.fired.wait(5)
        time.sleep(0.4)
        assert recorder.calls == 1
    finally:
        notifier.stop()


def test_missing_paths_are_skipped(tmp_path: Path) -> None:
    recorder = _Recorder()
    notifier = ChangeNotifier(recorder, debounce=0.01)

    assert notifier.watch([tmp_path / "missing"]) == []
    assert not notifier.is_watching
    notifier.schedule_change()
    assert not recorder.fired.wait(0.1)


def test_rewatch_replaces_previous_watches(tmp_path: Path) -> None:
    first, second = tmp_path / "a", tmp_path / "b"
    first.mkdir()
    second.mkdir()
    notifier = ChangeNotifier(_Recorder(), debounce=0.05)
    try:
        assert notifier.watch([first, first, tmp_path / "missing"]) == [first]
        assert notifier.watch([second]) == [second]
        assert notifier.watched_paths == [second]
    finally:
        notifier.stop()


def test_stop_cancels_pending_notification(tmp_path: Path) -> None:
    recorder = _Recorder()
    notifier = ChangeNotifier(recorder, debounce=0.1)
    _ = notifier.watch([tmp_path])
    notifier.schedule_change()
    notifier.stop()

    assert notifier.watched_paths == []
    assert not notifier.is_watching
    assert not recorder.fired.wait(0.3)


def test_failing_callback_does_not_break_notifier(tmp_path: Path) -> None:
    fired = threading.Event()
    attempts: list[int] = []

    def on_change() -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        fired.set()

    notifier = ChangeNotifier(on_change, debounce=0.02)
    try:
        _ = notifier.watch([tmp_path])
        notifier.schedule_change()
        deadline = time.monotonic() + 5
        while not attempts and time.monotonic() < deadline:
            time.sleep(0.01)
        notifier.schedule_change()
        assert fired.wait(5)
    finally:
        notifier.stop()


def test_concurrent_watch_calls_leave_one_observer(tmp_path: Path) -> None:
    notifier = ChangeNotifier(_Recorder(), debounce=0.05)
    before = set(threading.enumerate())
    start = threading.Barrier(8)

    def rearm() -> None:
        start.wait()
        _ = notifier.watch([tmp_path])

    workers = [threading.Thread(target=rearm) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert notifier.watched_paths == [tmp_path]
    notifier.stop()

    leaked = [
        t for t in threading.enumerate() if t not in before and isinstance(t, BaseObserver) and t.is_alive()
    ]
    assert leaked == []
