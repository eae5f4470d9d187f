from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import pytest

from ddcsync.const import DEFAULTS, ENABLE_AUDIO_SYNC, ENABLE_CONTRAST, SHOW_OSD, STEP_CHANGE_KEYBOARD


class FakeWatcher:
    def __init__(self, argv, on_line, on_exit):
        self.argv = tuple(argv)
        self.on_line = on_line
        self.on_exit = on_exit
        self.stopped = False

    def emit(self, line: str) -> None:
        self.on_line(line)

    def stop(self) -> None:
        self.stopped = True


class FakeRunner:
    """Answers commands from a table; unknown commands fail like a bad exit.

    Like ``ProcessRunner``, ``close()`` drops every pending callback and the
    runner ignores commands until ``open()``.
    """

    def __init__(self) -> None:
        self.responses: Dict[Tuple[str, ...], object] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.deferred = False
        self.pending: List[Tuple[Tuple[str, ...], Callable[[Optional[str]], None]]] = []
        self.watchers: List[FakeWatcher] = []
        self.closed = False

    def respond(self, argv, output) -> None:
        self.responses[tuple(argv)] = output

    def run(self, argv, callback) -> None:
        if self.closed:
            return
        key = tuple(argv)
        self.calls.append(key)
        if self.deferred:
            self.pending.append((key, callback))
            return
        callback(self._lookup(key))

    def complete_all(self) -> None:
        while self.pending:
            key, callback = self.pending.pop(0)
            callback(self._lookup(key))

    def _lookup(self, key):
        value = self.responses.get(key)
        if isinstance(value, list):
            return value.pop(0) if value else None
        return value

    def calls_to(self, *prefix: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[: len(prefix)] == prefix]

    def watch_lines(self, argv, on_line, on_exit=None):
        if self.closed:
            return None
        watcher = FakeWatcher(argv, on_line, on_exit)
        self.watchers.append(watcher)
        return watcher

    def open(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.pending.clear()


class FakeTimers:
    """Millisecond clock driving GLib-style timeout sources by hand."""

    def __init__(self) -> None:
        self.now = 0
        self._next_id = 1
        self._sources: Dict[int, list] = {}

    def timeout_add(self, interval: int, callback: Callable[[], bool]) -> int:
        source_id = self._next_id
        self._next_id += 1
        self._sources[source_id] = [interval, callback, self.now + interval]
        return source_id

    def source_remove(self, source_id: int) -> bool:
        return self._sources.pop(source_id, None) is not None

    @property
    def active(self) -> int:
        return len(self._sources)

    def advance(self, ms: int) -> None:
        for _ in range(ms):
            self.now += 1
            for source_id in sorted(self._sources):
                source = self._sources.get(source_id)
                if source is None or source[2] != self.now:
                    continue
                if source[1]():
                    source[2] = self.now + source[0]
                else:
                    self._sources.pop(source_id, None)


class FakeSettings:
    def __init__(self, **overrides) -> None:
        self.values = dict(DEFAULTS)
        self.values.update({key.replace("_", "-"): value for key, value in overrides.items()})
        self._handlers: Dict[int, Tuple[str, Callable[[str], None]]] = {}
        self._next_id = 1

    @property
    def audio_sync(self) -> bool:
        return self.values[ENABLE_AUDIO_SYNC]

    @property
    def contrast_blend(self) -> bool:
        return self.values[ENABLE_CONTRAST]

    @property
    def keyboard_step(self) -> float:
        return self.values[STEP_CHANGE_KEYBOARD]

    @property
    def show_osd(self) -> bool:
        return self.values[SHOW_OSD]

    def shortcut(self, key: str) -> List[str]:
        return list(self.values[key])

    def connect_changed(self, key, callback) -> int:
        handler_id = self._next_id
        self._next_id += 1
        self._handlers[handler_id] = (key, callback)
        return handler_id

    def disconnect(self, handler_id: int) -> None:
        del self._handlers[handler_id]

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def set(self, key: str, value) -> None:
        self.values[key] = value
        for handler_key, callback in list(self._handlers.values()):
            if handler_key == key:
                callback(key)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def settings():
    return FakeSettings()
