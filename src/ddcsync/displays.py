"""Display discovery: ``ddcutil detect`` parsing and power-state filtering."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from . import feature_catalog, vcp

LOG = logging.getLogger(__name__)

_INVALID_MARKER = "Invalid display"
_PHANTOM_MARKER = "phantom"
_MONITOR_MARKER = "Monitor:"
_HEADER = re.compile(r"^Display \d+")
_BUS = re.compile(r"/dev/i2c-(\d+)")


@dataclass(frozen=True, slots=True)
class Display:
    """A DDC capable display found by one detection cycle."""

    bus: str
    name: str


def parse_monitor_name(full_name: str) -> str:
    """Return ``LABEL`` from a ``BRAND:LABEL:SERIAL`` monitor string."""

    parts = full_name.split(":")
    return parts[1].strip() if len(parts) >= 2 else full_name.strip()


def parse_detect_output(output: str) -> List[Display]:
    displays: List[Display] = []
    bus: Optional[str] = None
    skipping = False

    for line in output.splitlines():
        stripped = line.strip()
        if _INVALID_MARKER in stripped:
            skipping = True
            bus = None
            continue
        if _HEADER.match(stripped):
            skipping = False
            bus = None
            continue
        if skipping:
            continue

        match = _BUS.search(stripped)
        if match and _PHANTOM_MARKER not in stripped.lower():
            bus = match.group(1)
        elif stripped.startswith(_MONITOR_MARKER) and bus is not None:
            full_name = stripped.split(_MONITOR_MARKER, 1)[1].strip()
            displays.append(Display(bus=bus, name=parse_monitor_name(full_name)))
            bus = None

    return displays


QueryPower = Callable[[Display, Callable[[Optional[str]], None]], None]


def is_powered_on(response: Optional[str]) -> bool:
    """Decide whether a power-mode response means the display is visible.

    A failed query counts as powered on: hiding a connected monitor is worse
    than showing one that happens to be off.
    """

    if response is None:
        return True
    tokens = vcp.parse_response(response)
    return len(tokens) >= 4 and tokens[3] == feature_catalog.POWER_ON


def filter_active(
    displays: Iterable[Display],
    query_power: QueryPower,
    callback: Callable[[List[Display]], None],
) -> None:
    """Query every display's power mode at once and report the powered subset.

    ``callback`` runs exactly once, after the last query has answered.
    """

    candidates = list(displays)
    if not candidates:
        callback([])
        return

    active: List[Display] = []
    pending = len(candidates)

    def _handler(display: Display) -> Callable[[Optional[str]], None]:
        def _on_response(response: Optional[str]) -> None:
            nonlocal pending
            if is_powered_on(response):
                active.append(display)
            else:
                tokens = vcp.parse_response(response)
                state = tokens[3] if len(tokens) >= 4 else None
                LOG.debug(
                    "Display %s on bus %s is not powered (%s)",
                    display.name,
                    display.bus,
                    feature_catalog.POWER_MODE.choices.get(state, state),
                )
            pending -= 1
            if pending == 0:
                callback(list(active))

        return _on_response

    for display in candidates:
        query_power(display, _handler(display))


__all__ = [
    "Display",
    "filter_active",
    "is_powered_on",
    "parse_detect_output",
    "parse_monitor_name",
]
