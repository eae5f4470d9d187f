"""Audio side of the sync: which monitor is playing, and at what volume.

All information comes from ``pactl``, which talks to both PulseAudio and
PipeWire's pulse server.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

from .displays import Display

LOG = logging.getLogger(__name__)

PACTL = "pactl"

NICK_PROPERTY = "node.nick"
ALSA_NAME_PROPERTY = "alsa.name"

_SINK_SEPARATOR = "Sink #"
_VOLUME = re.compile(r"(\d+)%")
_EVENT = re.compile(r"Event '(?P<action>[\w-]+)' on (?P<kind>[\w-]+)")

NameCallback = Callable[[Optional[str]], None]
TextCallback = Callable[[Optional[str]], None]


class AudioEvent(Enum):
    VOLUME_CHANGED = 'volume-changed'
    DEVICES_CHANGED = 'devices-changed'


def classify_event(line: str) -> Optional[AudioEvent]:
    """Map a ``pactl subscribe`` line to the event the sync cares about."""

    match = _EVENT.search(line)
    if not match:
        return None
    action, kind = match.group('action'), match.group('kind')
    if kind == 'sink':
        return AudioEvent.VOLUME_CHANGED if action == 'change' else AudioEvent.DEVICES_CHANGED
    if kind == 'server' and action == 'change':
        # The default sink moved to another device.
        return AudioEvent.DEVICES_CHANGED
    return None


def parse_audio_property(line: str, name: str) -> Optional[str]:
    key, sep, value = line.partition("=")
    if not sep or key.strip() != name:
        return None
    return value.strip().replace('"', "") or None


def _declares_sink(lines: Sequence[str], sink: str) -> bool:
    return any(line.strip() == f"Name: {sink}" for line in lines)


def extract_audio_monitor_name(section: str, default_sink: str) -> Optional[str]:
    """Return the nickname (or ALSA name) of ``section`` if it is the default sink."""

    lines = section.splitlines()
    if not _declares_sink(lines, default_sink):
        return None

    nick: Optional[str] = None
    alsa_name: Optional[str] = None
    for line in lines:
        if nick is None:
            nick = parse_audio_property(line, NICK_PROPERTY)
        if alsa_name is None:
            alsa_name = parse_audio_property(line, ALSA_NAME_PROPERTY)
        if nick and alsa_name:
            break
    return nick or alsa_name


def find_monitor_name(sinks_output: str, default_sink: str) -> Optional[str]:
    for section in sinks_output.split(_SINK_SEPARATOR):
        if _declares_sink(section.splitlines(), default_sink):
            return extract_audio_monitor_name(section, default_sink)
    return None


def resolve_active_monitor_name(
    get_default_sink: Callable[[TextCallback], None],
    list_sinks: Callable[[TextCallback], None],
    callback: NameCallback,
) -> None:
    def _on_default_sink(output: Optional[str]) -> None:
        default_sink = output.strip() if output else ""
        if not default_sink:
            callback(None)
            return

        def _on_sinks(sinks_output: Optional[str]) -> None:
            if not sinks_output:
                callback(None)
                return
            callback(find_monitor_name(sinks_output, default_sink))

        list_sinks(_on_sinks)

    get_default_sink(_on_default_sink)


def filter_displays_by_monitor(displays: Iterable[Display], monitor_name: Optional[str]) -> List[Display]:
    if not monitor_name:
        return []
    return [display for display in displays if display.name and monitor_name in display.name]


def parse_volume_percent(output: Optional[str]) -> Optional[int]:
    if not output:
        return None
    match = _VOLUME.search(output)
    return int(match.group(1)) if match else None


class PactlClient:
    """Thin async wrapper around the ``pactl`` invocations the sync needs."""

    def __init__(self, runner, binary: str = PACTL) -> None:
        self._runner = runner
        self._binary = binary

    def _argv(self, args: Sequence[str]) -> List[str]:
        return [self._binary, *args]

    def default_sink(self, callback: TextCallback) -> None:
        self._runner.run(self._argv(["get-default-sink"]), callback)

    def list_sinks(self, callback: TextCallback) -> None:
        self._runner.run(self._argv(["list", "sinks"]), callback)

    def sink_volume(self, callback: Callable[[Optional[int]], None]) -> None:
        def _on_output(output: Optional[str]) -> None:
            volume = parse_volume_percent(output)
            if volume is None:
                LOG.debug("Could not read the default sink volume")
            callback(volume)

        self._runner.run(self._argv(["get-sink-volume", "@DEFAULT_SINK@"]), _on_output)

    def active_monitor_name(self, callback: NameCallback) -> None:
        resolve_active_monitor_name(self.default_sink, self.list_sinks, callback)

    def subscribe(self, on_event: Callable[[AudioEvent], None], on_exit: Optional[Callable[[], None]] = None):
        def _on_line(line: str) -> None:
            event = classify_event(line)
            if event is not None:
                on_event(event)

        return self._runner.watch_lines(self._argv(["subscribe"]), _on_line, on_exit)


__all__ = [
    "AudioEvent",
    "PactlClient",
    "classify_event",
    "extract_audio_monitor_name",
    "filter_displays_by_monitor",
    "find_monitor_name",
    "parse_audio_property",
    "parse_volume_percent",
    "resolve_active_monitor_name",
]
