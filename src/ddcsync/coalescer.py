"""Per-display write debouncing.

A ``ddcutil setvcp`` call takes tens of milliseconds while a slider drag emits
many value changes per frame. The coalescer keeps one slot per bus holding the
latest writer and a countdown; every new submission replaces the writer and
restarts the countdown, so a burst ends in a single write of the last value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

LOG = logging.getLogger(__name__)

DDC_WRITE_DELAY = 130
TICK_MS = 1

Writer = Callable[[], None]
TimeoutAdd = Callable[[int, Callable[[], bool]], int]
SourceRemove = Callable[[int], object]


@dataclass(slots=True)
class WriteSlot:
    pending_action: Writer
    remaining_ticks: int
    source_id: Optional[int] = None

    @property
    def timer_active(self) -> bool:
        return self.source_id is not None


class WriteCoalescer:
    """Debounce writes per bus; the last writer of a burst wins.

    ``timeout_add``/``source_remove`` follow ``GLib.timeout_add`` and
    ``GLib.source_remove``: the tick callback returns ``True`` to keep running.
    """

    def __init__(
        self,
        timeout_add: TimeoutAdd,
        source_remove: SourceRemove,
        delay_ticks: int = DDC_WRITE_DELAY,
        tick_ms: int = TICK_MS,
    ) -> None:
        if delay_ticks < 1:
            raise ValueError("delay_ticks must be at least 1")
        self._timeout_add = timeout_add
        self._source_remove = source_remove
        self._delay_ticks = delay_ticks
        self._tick_ms = tick_ms
        self._slots: Dict[str, WriteSlot] = {}

    @property
    def delay_ticks(self) -> int:
        return self._delay_ticks

    def pending(self) -> List[str]:
        return list(self._slots)

    def submit(self, bus: str, writer: Writer) -> None:
        slot = self._slots.get(bus)
        if slot is not None:
            slot.pending_action = writer
            slot.remaining_ticks = self._delay_ticks
            if slot.timer_active:
                return
        else:
            slot = WriteSlot(pending_action=writer, remaining_ticks=self._delay_ticks)
            self._slots[bus] = slot
        slot.source_id = self._timeout_add(self._tick_ms, lambda: self._tick(bus))

    def shutdown(self) -> None:
        """Drop every pending write without running it."""

        for slot in self._slots.values():
            if slot.source_id is not None:
                self._source_remove(slot.source_id)
                slot.source_id = None
        if self._slots:
            LOG.debug("Discarded pending writes for bus %s", ", ".join(self._slots))
        self._slots.clear()

    def _tick(self, bus: str) -> bool:
        slot = self._slots.get(bus)
        if slot is None:
            return False
        slot.remaining_ticks -= 1
        if slot.remaining_ticks > 0:
            return True

        del self._slots[bus]
        slot.source_id = None
        try:
            slot.pending_action()
        except Exception:  # noqa: BLE001
            LOG.exception("Coalesced write for bus %s failed", bus)
        return False


__all__ = ["DDC_WRITE_DELAY", "WriteCoalescer", "WriteSlot"]
