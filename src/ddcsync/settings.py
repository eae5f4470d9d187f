"""GSettings access for the sync daemon."""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, List, Optional

import gi

gi.require_version("Gio", "2.0")

from gi.repository import Gio, GLib

from .const import (
    DEFAULTS,
    ENABLE_AUDIO_SYNC,
    ENABLE_CONTRAST,
    SCHEMA_DIR_ENV,
    SCHEMA_ID,
    SHOW_OSD,
    STEP_CHANGE_KEYBOARD,
)

LOG = logging.getLogger(__name__)


class SettingsError(RuntimeError):
    """Raised when the GSettings schema cannot be found."""


class SyncSettings:
    """Typed view over the ``org.gnome.shell.extensions.ddcsync`` schema."""

    def __init__(self, settings: Gio.Settings) -> None:
        self._settings = settings

    @classmethod
    def from_schema(cls, schema_dir: Optional[str] = None) -> "SyncSettings":
        schema_dir = schema_dir or os.environ.get(SCHEMA_DIR_ENV)
        source = Gio.SettingsSchemaSource.get_default()
        if schema_dir:
            try:
                source = Gio.SettingsSchemaSource.new_from_directory(schema_dir, source, False)
            except GLib.Error as err:
                raise SettingsError(f"Cannot load schemas from {schema_dir}: {err.message}") from err
        schema = source.lookup(SCHEMA_ID, True) if source is not None else None
        if schema is None:
            raise SettingsError(f"GSettings schema {SCHEMA_ID} is not installed")
        return cls(Gio.Settings.new_full(schema, None, None))

    @property
    def audio_sync(self) -> bool:
        return self._settings.get_boolean(ENABLE_AUDIO_SYNC)

    @property
    def contrast_blend(self) -> bool:
        return self._settings.get_boolean(ENABLE_CONTRAST)

    @property
    def keyboard_step(self) -> float:
        return self._settings.get_double(STEP_CHANGE_KEYBOARD)

    @property
    def show_osd(self) -> bool:
        return self._settings.get_boolean(SHOW_OSD)

    def shortcut(self, key: str) -> List[str]:
        return list(self._settings.get_strv(key))

    def connect_changed(self, key: str, callback: Callable[[str], None]) -> int:
        return self._settings.connect(f"changed::{key}", lambda _settings, changed_key: callback(changed_key))

    def disconnect(self, handler_id: int) -> None:
        self._settings.disconnect(handler_id)


class StaticSettings:
    """Read-only defaults used when the schema is not installed."""

    def __init__(self, values: Optional[Dict[str, object]] = None) -> None:
        self._values = dict(DEFAULTS)
        if values:
            self._values.update(values)

    @property
    def audio_sync(self) -> bool:
        return bool(self._values[ENABLE_AUDIO_SYNC])

    @property
    def contrast_blend(self) -> bool:
        return bool(self._values[ENABLE_CONTRAST])

    @property
    def keyboard_step(self) -> float:
        return float(self._values[STEP_CHANGE_KEYBOARD])

    @property
    def show_osd(self) -> bool:
        return bool(self._values[SHOW_OSD])

    def shortcut(self, key: str) -> List[str]:
        return list(self._values[key])

    def connect_changed(self, key: str, callback: Callable[[str], None]) -> int:
        return 0

    def disconnect(self, handler_id: int) -> None:
        pass


def load_settings(schema_dir: Optional[str] = None):
    try:
        return SyncSettings.from_schema(schema_dir)
    except SettingsError as err:
        LOG.warning("Using default settings: %s", err)
        return StaticSettings()


__all__ = [
    "SCHEMA_ID",
    "SettingsError",
    "StaticSettings",
    "SyncSettings",
    "load_settings",
]
