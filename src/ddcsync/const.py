"""Constants shared by the settings layer and the sync service."""

from __future__ import annotations

from typing import Dict

SCHEMA_ID = "org.gnome.shell.extensions.ddcsync"
SCHEMA_DIR_ENV = "DDCSYNC_SCHEMA_DIR"

ENABLE_AUDIO_SYNC = "enable-audio-sync"
ENABLE_CONTRAST = "enable-contrast"
STEP_CHANGE_KEYBOARD = "step-change-keyboard"
SHOW_OSD = "show-osd"
INCREASE_BRIGHTNESS_SHORTCUT = "increase-brightness-shortcut"
DECREASE_BRIGHTNESS_SHORTCUT = "decrease-brightness-shortcut"

DEFAULTS: Dict[str, object] = {
    ENABLE_AUDIO_SYNC: False,
    ENABLE_CONTRAST: False,
    STEP_CHANGE_KEYBOARD: 5.0,
    SHOW_OSD: True,
    INCREASE_BRIGHTNESS_SHORTCUT: ["<Super>Page_Up"],
    DECREASE_BRIGHTNESS_SHORTCUT: ["<Super>Page_Down"],
}
