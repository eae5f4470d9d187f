"""Helpers for interacting with the ``ddcutil`` command line tool."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from . import vcp
from .displays import Display, parse_detect_output

LOG = logging.getLogger(__name__)

DDCUTIL = "ddcutil"

TextCallback = Callable[[Optional[str]], None]


class Runner(Protocol):
    def run(self, argv: Sequence[str], callback: TextCallback) -> None: ...


class DdcutilGateway:
    """Issue ``ddcutil`` queries and writes without blocking the main loop.

    Every command failure is folded into a ``None`` result. The fallback
    helpers walk a list of VCP codes one at a time, never in parallel, because
    displays differ in which code they answer for the same control.
    """

    def __init__(self, runner: Runner, binary: str = DDCUTIL) -> None:
        self._runner = runner
        self._binary = binary

    def query(self, args: Iterable[str], callback: TextCallback) -> None:
        self._runner.run([self._binary, *args], callback)

    def detect(self, callback: Callable[[Optional[List[Display]]], None]) -> None:
        def _on_output(output: Optional[str]) -> None:
            if output is None:
                LOG.error("DDC detection failed")
                callback(None)
                return
            callback(parse_detect_output(output))

        self.query(["detect", "--brief"], _on_output)

    def get_vcp(self, bus: str, code: str, callback: TextCallback) -> None:
        self.query(["getvcp", code, "--bus", bus, "--terse"], callback)

    def read_vcp(self, bus: str, code: str, callback: Callable[[Optional[vcp.VcpReading]], None]) -> None:
        def _on_output(output: Optional[str]) -> None:
            callback(vcp.decode(output) if output is not None else None)

        self.get_vcp(bus, code, _on_output)

    def set_vcp(self, bus: str, code: str, value: int, callback: Callable[[bool], None]) -> None:
        self.query(
            ["setvcp", "--bus", bus, "--noverify", code, str(int(value))],
            lambda output: callback(output is not None),
        )

    def try_sequential(
        self,
        bus: str,
        codes: Sequence[str],
        callback: Callable[[Optional[str], Optional[vcp.VcpReading]], None],
    ) -> None:
        """Read the first of ``codes`` that yields both a current and a max value."""

        candidates = list(codes)

        def _attempt(index: int) -> None:
            if index >= len(candidates):
                LOG.warning("Failed to read any of VCP %s for display on bus %s", ", ".join(candidates), bus)
                callback(None, None)
                return
            code = candidates[index]

            def _on_reading(reading: Optional[vcp.VcpReading]) -> None:
                if reading is not None and reading.complete:
                    callback(code, reading)
                    return
                LOG.debug("VCP %s unreadable on bus %s, trying next code", code, bus)
                _attempt(index + 1)

            self.read_vcp(bus, code, _on_reading)

        _attempt(0)

    def try_sequential_write(
        self,
        bus: str,
        codes: Sequence[str],
        value: int,
        callback: Optional[Callable[[Optional[str]], None]] = None,
    ) -> None:
        """Write ``value`` under the first of ``codes`` that ``ddcutil`` accepts.

        Acceptance is the tool's exit status only; the value is not read back.
        """

        candidates = list(codes)

        def _attempt(index: int) -> None:
            if index >= len(candidates):
                LOG.warning("DDC set of %d failed for bus %s with VCP %s", value, bus, ", ".join(candidates))
                if callback is not None:
                    callback(None)
                return
            code = candidates[index]

            def _on_done(accepted: bool) -> None:
                if accepted:
                    if callback is not None:
                        callback(code)
                    return
                LOG.debug("DDC set failed for bus %s with VCP %s", bus, code)
                _attempt(index + 1)

            self.set_vcp(bus, code, value, _on_done)

        _attempt(0)


__all__ = ["DDCUTIL", "DdcutilGateway", "Runner"]
