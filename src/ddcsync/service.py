"""Orchestration: displays, sliders and the audio volume sync."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import feature_catalog
from .audio import AudioEvent, PactlClient, filter_displays_by_monitor
from .coalescer import DDC_WRITE_DELAY, WriteCoalescer
from .const import (
    DECREASE_BRIGHTNESS_SHORTCUT,
    ENABLE_AUDIO_SYNC,
    ENABLE_CONTRAST,
    INCREASE_BRIGHTNESS_SHORTCUT,
)
from .ddcutil import DdcutilGateway
from .displays import Display, filter_active
from .slider import DdcSlider

LOG = logging.getLogger(__name__)

SETTLE_DELAY_MS = 50

OsdCallback = Callable[[str, str, float], None]


class DdcSyncService:
    """Lifecycle owner for everything the sync needs while it runs.

    ``runner`` spawns processes (see :class:`ddcsync.process.ProcessRunner`);
    ``timeout_add``/``source_remove`` are ``GLib.timeout_add`` and
    ``GLib.source_remove`` in production.
    """

    def __init__(
        self,
        settings,
        runner,
        timeout_add,
        source_remove,
        *,
        settle_delay_ms: int = SETTLE_DELAY_MS,
        write_delay_ticks: int = DDC_WRITE_DELAY,
        on_osd: Optional[OsdCallback] = None,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._timeout_add = timeout_add
        self._source_remove = source_remove
        self._settle_delay_ms = settle_delay_ms
        self._on_osd = on_osd

        self.gateway = DdcutilGateway(runner)
        self.pactl = PactlClient(runner)

        def _coalescer() -> WriteCoalescer:
            return WriteCoalescer(timeout_add, source_remove, delay_ticks=write_delay_ticks)

        self._sync_writes = _coalescer()
        self.brightness_slider = DdcSlider(
            feature_catalog.BRIGHTNESS,
            self.gateway,
            _coalescer(),
            contrast_enabled=lambda: self._settings.contrast_blend,
        )
        self.volume_slider = DdcSlider(feature_catalog.VOLUME, self.gateway, _coalescer())

        self._active_displays: Tuple[Display, ...] = ()
        self._detect_cycle = 0
        self._settle_source: Optional[int] = None
        self._watcher = None
        self._settings_handlers: List[int] = []
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._running

    @property
    def active_displays(self) -> Tuple[Display, ...]:
        return self._active_displays

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._runner.open()
        self._settings_handlers = [
            self._settings.connect_changed(ENABLE_CONTRAST, self._on_contrast_setting_changed),
            self._settings.connect_changed(ENABLE_AUDIO_SYNC, self._on_audio_sync_setting_changed),
        ]
        self.detect_displays()
        self._watcher = self.pactl.subscribe(self._on_audio_event, self._on_subscribe_exit)
        if self._watcher is None:
            LOG.error("Failed to start pactl subscribe; audio changes will not be tracked")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._detect_cycle += 1
        if self._settle_source is not None:
            self._source_remove(self._settle_source)
            self._settle_source = None
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self._sync_writes.shutdown()
        self.brightness_slider.destroy()
        self.volume_slider.destroy()
        for handler_id in self._settings_handlers:
            self._settings.disconnect(handler_id)
        self._settings_handlers = []
        self._runner.close()
        self._active_displays = ()

    # ------------------------------------------------------------------
    # Display detection
    # ------------------------------------------------------------------
    def detect_displays(self) -> None:
        """Start a detection cycle; a newer cycle supersedes this one."""

        self._detect_cycle += 1
        cycle = self._detect_cycle

        def _on_detected(displays: Optional[List[Display]]) -> None:
            if cycle != self._detect_cycle:
                return
            if displays is None:
                return
            filter_active(displays, self._query_power, _on_active)

        def _on_active(active: List[Display]) -> None:
            if cycle != self._detect_cycle:
                LOG.debug("Discarding results of superseded detection cycle %d", cycle)
                return
            self._apply_active_displays(active, cycle)

        self.gateway.detect(_on_detected)

    def _query_power(self, display: Display, callback: Callable[[Optional[str]], None]) -> None:
        self.gateway.get_vcp(display.bus, feature_catalog.POWER_MODE.primary_code, callback)

    def _apply_active_displays(self, active: Sequence[Display], cycle: int) -> None:
        self._active_displays = tuple(active)
        LOG.info(
            "Active displays: %s",
            ", ".join(f"{display.name} (bus {display.bus})" for display in active) or "none",
        )
        self.brightness_slider.set_displays(self._active_displays)
        if not self._active_displays:
            self.volume_slider.set_displays([])
            return

        def _on_monitor_name(monitor_name: Optional[str]) -> None:
            if cycle != self._detect_cycle:
                return
            self._update_volume_slider(monitor_name)
            if self._settings.audio_sync:
                self.sync_volume(self.volume_displays(monitor_name))

        self.pactl.active_monitor_name(_on_monitor_name)

    def volume_displays(self, monitor_name: Optional[str]) -> List[Display]:
        return filter_displays_by_monitor(self._active_displays, monitor_name)

    def _update_volume_slider(self, monitor_name: Optional[str]) -> None:
        # With audio sync on, the system volume drives the monitor instead.
        if not self._settings.audio_sync and monitor_name:
            self.volume_slider.set_displays(self.volume_displays(monitor_name))
        else:
            self.volume_slider.set_displays([])

    # ------------------------------------------------------------------
    # Audio sync
    # ------------------------------------------------------------------
    def _on_audio_event(self, event: AudioEvent) -> None:
        if not self._running:
            return
        if event is AudioEvent.VOLUME_CHANGED:
            self.handle_volume_change()
        else:
            self.detect_displays()

    def _on_subscribe_exit(self) -> None:
        if self._running:
            LOG.warning("pactl subscribe exited; audio changes will not be tracked")
            self._watcher = None

    def handle_volume_change(self) -> None:
        if not self._settings.audio_sync or self._settle_source is not None:
            return

        def _on_settled() -> bool:
            self._settle_source = None
            self.pactl.active_monitor_name(
                lambda monitor_name: self.sync_volume(self.volume_displays(monitor_name))
            )
            return False

        # Give the sink a moment so the new volume is readable.
        self._settle_source = self._timeout_add(self._settle_delay_ms, _on_settled)

    def sync_volume(self, displays: Sequence[Display]) -> None:
        targets = list(displays)
        if not targets:
            return

        def _on_volume(level: Optional[int]) -> None:
            if level is None or not self._running:
                return
            for display in targets:
                self._sync_writes.submit(display.bus, self._volume_writer(display.bus, level))

        self.pactl.sink_volume(_on_volume)

    def _volume_writer(self, bus: str, level: int) -> Callable[[], None]:
        def _write() -> None:
            if bus not in {display.bus for display in self._active_displays}:
                LOG.debug("Skipping volume sync for bus %s, display is gone", bus)
                return
            self.gateway.try_sequential_write(bus, feature_catalog.VOLUME.codes, level)

        return _write

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def _on_contrast_setting_changed(self, _key: str) -> None:
        if self.brightness_slider.displays:
            self.brightness_slider.refresh()

    def _on_audio_sync_setting_changed(self, _key: str) -> None:
        self.pactl.active_monitor_name(self._update_volume_slider)

    # ------------------------------------------------------------------
    # Keyboard shortcuts
    # ------------------------------------------------------------------
    def keybindings(self) -> Dict[str, Tuple[List[str], Callable[[], None]]]:
        """Shortcut definitions for whatever registers global keybindings."""

        return {
            INCREASE_BRIGHTNESS_SHORTCUT: (
                self._settings.shortcut(INCREASE_BRIGHTNESS_SHORTCUT),
                self.increase_brightness,
            ),
            DECREASE_BRIGHTNESS_SHORTCUT: (
                self._settings.shortcut(DECREASE_BRIGHTNESS_SHORTCUT),
                self.decrease_brightness,
            ),
        }

    def increase_brightness(self) -> None:
        self._adjust_brightness(True)

    def decrease_brightness(self) -> None:
        self._adjust_brightness(False)

    def _adjust_brightness(self, increase: bool) -> None:
        if not self.brightness_slider.visible or not self._active_displays:
            return
        step = self._settings.keyboard_step / 100
        level = self.brightness_slider.adjust(step, increase)
        if self._settings.show_osd and self._on_osd is not None:
            label = f"{self.display_label()} {round(level * 100)}%"
            self._on_osd(feature_catalog.BRIGHTNESS.icon_name, label, level)

    def display_label(self) -> str:
        if len(self._active_displays) == 1:
            return self._active_displays[0].name or "External Monitor"
        if len(self._active_displays) > 1:
            return f"{len(self._active_displays)} External Monitors"
        return "External Monitor"


__all__ = ["DdcSyncService", "SETTLE_DELAY_MS"]
