"""Application entry-point for the ddcsync daemon."""

from __future__ import annotations

import logging
import signal
import sys
from typing import Optional

import gi

gi.require_version("Gio", "2.0")

from gi.repository import Gio, GLib

from . import __version__
from .process import ProcessRunner
from .service import DdcSyncService
from .settings import load_settings

_LOGGER = logging.getLogger("ddcsync")


class DdcSyncApplication(Gio.Application):
    """Headless application that keeps the sync service alive."""

    def __init__(self) -> None:
        super().__init__(application_id="io.github.ddcsync.Daemon", flags=Gio.ApplicationFlags.HANDLES_COMMAND_LINE)
        self.add_main_option(
            "version",
            ord("v"),
            GLib.OptionFlags.NONE,
            GLib.OptionArg.NONE,
            "Print application version and exit",
            None,
        )
        self.add_main_option(
            "verbose",
            ord("d"),
            GLib.OptionFlags.NONE,
            GLib.OptionArg.NONE,
            "Log every ddcutil and pactl invocation",
            None,
        )
        self.add_main_option(
            "schema-dir",
            0,
            GLib.OptionFlags.NONE,
            GLib.OptionArg.STRING,
            "Directory holding the compiled GSettings schema",
            "DIR",
        )
        self._service: Optional[DdcSyncService] = None
        self._schema_dir: Optional[str] = None
        self.connect("startup", self._on_startup)
        self.connect("activate", self._on_activate)
        self.connect("command-line", self._on_command_line)
        self.connect("shutdown", self._on_shutdown)

    # ------------------------------------------------------------------
    # Application lifecycle
    # ------------------------------------------------------------------
    def _on_startup(self, _app: Gio.Application) -> None:
        for name, handler in (
            ("increase-brightness", self._on_increase_brightness),
            ("decrease-brightness", self._on_decrease_brightness),
            ("redetect", self._on_redetect),
        ):
            action = Gio.SimpleAction.new(name, None)
            action.connect("activate", handler)
            self.add_action(action)
        for signum in (signal.SIGINT, signal.SIGTERM):
            GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signum, self._on_quit_signal)

    def _ensure_service(self) -> None:
        if self._service is not None:
            return
        self._service = DdcSyncService(
            load_settings(self._schema_dir),
            ProcessRunner(),
            GLib.timeout_add,
            GLib.source_remove,
            on_osd=self._on_osd,
        )
        for key, (accels, _handler) in self._service.keybindings().items():
            _LOGGER.debug("Keybinding %s: %s", key, ", ".join(accels) or "unset")
        self._service.start()
        self.hold()

    def _on_activate(self, _app: Gio.Application) -> None:
        self._ensure_service()

    def _on_command_line(self, _app: Gio.Application, command_line: Gio.ApplicationCommandLine) -> int:
        options = command_line.get_options_dict()
        if options.contains("version"):
            print(f"ddcsync {__version__}")
            return 0
        if options.contains("verbose"):
            logging.getLogger().setLevel(logging.DEBUG)
        schema_dir = options.lookup_value("schema-dir", GLib.VariantType.new("s"))
        if schema_dir is not None:
            self._schema_dir = schema_dir.get_string()
        self.activate()
        return 0

    def _on_osd(self, icon_name: str, label: str, level: float) -> None:
        _LOGGER.info("%s", label)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _on_increase_brightness(self, _action: Gio.SimpleAction, _param: Optional[GLib.Variant]) -> None:
        if self._service is not None:
            self._service.increase_brightness()

    def _on_decrease_brightness(self, _action: Gio.SimpleAction, _param: Optional[GLib.Variant]) -> None:
        if self._service is not None:
            self._service.decrease_brightness()

    def _on_redetect(self, _action: Gio.SimpleAction, _param: Optional[GLib.Variant]) -> None:
        if self._service is not None:
            self._service.detect_displays()

    def _on_quit_signal(self) -> bool:
        self.quit()
        return GLib.SOURCE_REMOVE

    def _on_shutdown(self, _app: Gio.Application) -> None:
        if self._service is not None:
            self._service.stop()
            self._service = None


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    app = DdcSyncApplication()
    return app.run(argv or sys.argv)


__all__ = ["DdcSyncApplication", "main"]
