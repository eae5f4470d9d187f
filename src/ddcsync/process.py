"""Asynchronous subprocess helpers built on ``Gio.Subprocess``.

Everything here runs on the GLib main loop: callbacks are invoked from the
loop once the child has exited (or produced a line), never from a thread.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Set

import gi

gi.require_version("Gio", "2.0")

from gi.repository import Gio, GLib

LOG = logging.getLogger(__name__)

_FLAGS = Gio.SubprocessFlags.STDOUT_PIPE | Gio.SubprocessFlags.STDERR_SILENCE


class LineWatcher:
    """Feed each stdout line of a long-lived process to ``on_line``."""

    def __init__(
        self,
        argv: Sequence[str],
        on_line: Callable[[str], None],
        on_exit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._argv = list(argv)
        self._on_line = on_line
        self._on_exit = on_exit
        self._proc: Optional[Gio.Subprocess] = None
        self._cancellable: Optional[Gio.Cancellable] = None

    @property
    def running(self) -> bool:
        return self._proc is not None

    def start(self) -> bool:
        if self._proc is not None:
            return True
        try:
            proc = Gio.Subprocess.new(self._argv, _FLAGS)
        except GLib.Error as err:
            LOG.error("Failed to start %s: %s", " ".join(self._argv), err.message)
            return False
        LOG.debug("Watching output of: %s", " ".join(self._argv))
        self._proc = proc
        self._cancellable = Gio.Cancellable()
        reader = Gio.DataInputStream(base_stream=proc.get_stdout_pipe())
        self._read_next(reader)
        return True

    def stop(self) -> None:
        if self._cancellable is not None:
            self._cancellable.cancel()
            self._cancellable = None
        if self._proc is not None:
            self._proc.force_exit()
            self._proc = None

    def _read_next(self, reader: Gio.DataInputStream) -> None:
        reader.read_line_async(GLib.PRIORITY_DEFAULT, self._cancellable, self._on_line_ready)

    def _on_line_ready(self, reader: Gio.DataInputStream, result: Gio.AsyncResult) -> None:
        try:
            line, _length = reader.read_line_finish_utf8(result)
        except GLib.Error as err:
            # Cancelled by stop() or the pipe broke because the child died.
            LOG.debug("Stopped reading %s: %s", self._argv[0], err.message)
            return
        if line is None:
            LOG.debug("%s closed its output", self._argv[0])
            self._proc = None
            if self._on_exit is not None:
                self._on_exit()
            return
        self._on_line(line)
        if self._proc is not None:
            self._read_next(reader)


class ProcessRunner:
    """Run short-lived commands and hand their stdout to a callback.

    Spawn errors and non-zero exit statuses are reported as ``None``; nothing
    is raised to the caller. Work cancelled by :meth:`close` never reaches its
    callback, and the runner refuses new commands until :meth:`open`.
    """

    def __init__(self) -> None:
        self._cancellable = Gio.Cancellable()
        self._generation = 0
        self._closed = False
        self._running: Set[Gio.Subprocess] = set()
        self._watchers: Set[LineWatcher] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        self._closed = False

    def run(self, argv: Sequence[str], callback: Callable[[Optional[str]], None]) -> None:
        cmd = list(argv)
        if self._closed:
            LOG.debug("Runner is closed, not running: %s", " ".join(cmd))
            return
        LOG.debug("Running command: %s", " ".join(cmd))
        try:
            proc = Gio.Subprocess.new(cmd, _FLAGS)
        except GLib.Error as err:
            LOG.debug("Could not spawn %s: %s", cmd[0], err.message)
            callback(None)
            return

        self._running.add(proc)
        generation = self._generation

        def _on_communicated(source: Gio.Subprocess, result: Gio.AsyncResult) -> None:
            self._running.discard(source)
            if generation != self._generation:
                LOG.debug("Dropping result of %s, runner was closed", cmd[0])
                return
            try:
                _ok, stdout, _stderr = source.communicate_utf8_finish(result)
            except GLib.Error as err:
                LOG.debug("%s did not complete: %s", cmd[0], err.message)
                callback(None)
                return
            if not source.get_successful():
                LOG.debug("Command failed: %s", " ".join(cmd))
                callback(None)
                return
            callback(stdout or "")

        proc.communicate_utf8_async(None, self._cancellable, _on_communicated)

    def watch_lines(
        self,
        argv: Sequence[str],
        on_line: Callable[[str], None],
        on_exit: Optional[Callable[[], None]] = None,
    ) -> Optional[LineWatcher]:
        if self._closed:
            return None
        watcher = LineWatcher(argv, on_line, on_exit)
        if not watcher.start():
            return None
        self._watchers.add(watcher)
        return watcher

    def close(self) -> None:
        """Force-exit every child this runner still owns and drop their results."""

        self._closed = True
        self._generation += 1
        self._cancellable.cancel()
        for proc in list(self._running):
            proc.force_exit()
        self._running.clear()
        for watcher in list(self._watchers):
            watcher.stop()
        self._watchers.clear()
        self._cancellable = Gio.Cancellable()


__all__ = ["LineWatcher", "ProcessRunner"]
