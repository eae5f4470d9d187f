"""Model behind a quick-settings slider that drives one monitor control."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from . import feature_catalog, vcp
from .coalescer import WriteCoalescer
from .ddcutil import DdcutilGateway
from .displays import Display

LOG = logging.getLogger(__name__)

DEFAULT_MAXIMUM = 100


class DdcSlider:
    """Holds the normalised value (0.0 to 1.0) of a control across displays.

    Reads come from the first display; user changes fan out to every display,
    debounced per bus. With contrast blending active the brightness slider
    shows the mean of brightness and contrast and writes both.
    """

    def __init__(
        self,
        feature: feature_catalog.FeatureDefinition,
        gateway: DdcutilGateway,
        coalescer: WriteCoalescer,
        contrast_enabled: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.feature = feature
        self._gateway = gateway
        self._coalescer = coalescer
        self._contrast_enabled = contrast_enabled or (lambda: False)
        self._displays: Tuple[Display, ...] = ()
        self._value = 0.0
        self._maximum = DEFAULT_MAXIMUM
        self._contrast_maximum = DEFAULT_MAXIMUM
        self._current_code: Optional[str] = None
        self._blending = False
        self._generation = 0
        self._listeners: List[Callable[["DdcSlider"], None]] = []
        self.subtitle = ""

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def displays(self) -> Tuple[Display, ...]:
        return self._displays

    @property
    def visible(self) -> bool:
        return bool(self._displays)

    @property
    def value(self) -> float:
        return self._value

    @property
    def current_code(self) -> Optional[str]:
        return self._current_code

    @property
    def blending(self) -> bool:
        return self._blending

    def add_listener(self, callback: Callable[["DdcSlider"], None]) -> None:
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Display list
    # ------------------------------------------------------------------
    def set_displays(self, displays: Sequence[Display]) -> None:
        self._displays = tuple(displays)
        self._generation += 1
        self._blending = False
        if not self._displays:
            self.subtitle = ""
            self._notify()
            return
        self.refresh()

    def refresh(self) -> None:
        """Re-read the current value from the first display."""

        if not self._displays:
            return
        self._generation += 1
        if self.feature is feature_catalog.BRIGHTNESS and self._contrast_enabled():
            self._check_contrast_support()
        else:
            self._blending = False
            self._read_current_value()

    def _check_contrast_support(self) -> None:
        display = self._displays[0]
        generation = self._generation

        def _on_contrast(reading: Optional[vcp.VcpReading]) -> None:
            if generation != self._generation:
                return
            if reading is not None and vcp.is_valid(reading.tokens):
                self._read_contrast_and_brightness()
            else:
                self._blending = False
                self._read_current_value()

        self._gateway.read_vcp(display.bus, feature_catalog.CONTRAST.primary_code, _on_contrast)

    def _read_contrast_and_brightness(self) -> None:
        display = self._displays[0]
        generation = self._generation

        def _on_brightness(brightness: Optional[vcp.VcpReading]) -> None:
            if generation != self._generation:
                return
            if brightness is None or not brightness.complete:
                self._read_current_value()
                return

            def _on_contrast(contrast: Optional[vcp.VcpReading]) -> None:
                if generation != self._generation:
                    return
                if contrast is None or not contrast.complete:
                    self._blending = False
                    self._read_current_value()
                    return
                self._blending = True
                self._current_code = feature_catalog.BRIGHTNESS.primary_code
                self._maximum = brightness.maximum
                self._contrast_maximum = contrast.maximum
                self._apply((brightness.fraction + contrast.fraction) / 2)

            self._gateway.read_vcp(display.bus, feature_catalog.CONTRAST.primary_code, _on_contrast)

        self._gateway.read_vcp(display.bus, feature_catalog.BRIGHTNESS.primary_code, _on_brightness)

    def _read_current_value(self) -> None:
        display = self._displays[0]
        generation = self._generation

        def _on_reading(code: Optional[str], reading: Optional[vcp.VcpReading]) -> None:
            if generation != self._generation or code is None:
                return
            self._current_code = code
            self._maximum = reading.maximum
            self._apply(reading.fraction)

        self._gateway.try_sequential(display.bus, self.feature.codes, _on_reading)

    # ------------------------------------------------------------------
    # Value changes
    # ------------------------------------------------------------------
    def set_value(self, value: float) -> None:
        """Apply a user change and schedule the matching device writes."""

        if not self._displays:
            return
        self._value = min(1.0, max(0.0, value))
        raw = round(self._value * self._maximum)
        for display in self._displays:
            self._coalescer.submit(display.bus, self._make_writer(display.bus, raw))
        self._update_subtitle()
        self._notify()

    def adjust(self, step: float, increase: bool) -> float:
        new_value = min(1.0, self._value + step) if increase else max(0.0, self._value - step)
        self.set_value(new_value)
        return new_value

    def destroy(self) -> None:
        self._coalescer.shutdown()
        self._generation += 1
        self._displays = ()
        self._listeners.clear()

    def _make_writer(self, bus: str, raw: int) -> Callable[[], None]:
        codes = self._ordered_codes()
        blend = self._blending
        contrast_raw = round(self._value * self._contrast_maximum)

        def _write() -> None:
            if bus not in {display.bus for display in self._displays}:
                LOG.debug("Dropping write for bus %s, display no longer listed", bus)
                return
            if not blend:
                self._gateway.try_sequential_write(bus, codes, raw)
                return

            def _on_contrast_written(accepted: bool) -> None:
                if not accepted:
                    LOG.debug("Contrast write failed for bus %s", bus)

            def _then_contrast(code: Optional[str]) -> None:
                if code is None:
                    return
                self._gateway.set_vcp(bus, feature_catalog.CONTRAST.primary_code, contrast_raw, _on_contrast_written)

            self._gateway.try_sequential_write(bus, codes, raw, _then_contrast)

        return _write

    def _ordered_codes(self) -> List[str]:
        codes = list(self.feature.codes)
        if self._current_code in codes:
            codes.remove(self._current_code)
            codes.insert(0, self._current_code)
        return codes

    def _apply(self, fraction: float) -> None:
        self._value = min(1.0, max(0.0, fraction))
        self._update_subtitle()
        self._notify()

    def _update_subtitle(self) -> None:
        self.subtitle = f"{round(self._value * 100)}%"

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


__all__ = ["DdcSlider"]
