# app.py
"""
Entry points.

    shift-sync manage    management console (the single writer)
    shift-sync display   read-only board (any number of readers)
"""
import argparse
import logging
import os
import sys
from pathlib import Path

from shift_sync.data.data_manager import (
    APP_CONFIG_NAME, DISPLAY_CONFIG_NAME, default_home, load_app_config,
    load_display_config, parse_display_config,
)
from shift_sync.utils.logging_setup import configure_logging

_logger = logging.getLogger(__name__)


def _parse_args(argv):
    p = argparse.ArgumentParser(prog="shift-sync")
    p.add_argument("mode", choices=["manage", "display"])
    p.add_argument("--home", type=Path, default=None, help="config directory (default: $SHIFT_SYNC_HOME or ~/.shift_sync)")
    p.add_argument("--log-level", default=None)
    return p.parse_args(argv)


def run_manage(config):
    from PySide6.QtWidgets import QApplication
    from shift_sync.data.report_writer import ReportWriter
    from shift_sync.gui.main_window import MainWindow
    from shift_sync.logic.controller import Controller
    from shift_sync.sync.engine import SnapshotLoader

    app = QApplication.instance() or QApplication(sys.argv)
    controller = Controller(config, ReportWriter(config.reports_path))
    loader = SnapshotLoader(config.reports_path, config.manager_role_prefixes,
                            config.retry_attempts, config.retry_initial_delay_ms / 1000.0)
    report = loader.load()
    if report is not None:
        controller.load_from_report(report)
    win = MainWindow(controller)
    win.show()
    return app.exec()


def run_display(config, home: Path):
    from PySide6.QtWidgets import QApplication
    from shift_sync.gui.display_window import DisplayWindow
    from shift_sync.sync.engine import SyncEngine
    from shift_sync.sync.qt_bridge import QtDispatcher, QtFileWatcher

    app = QApplication.instance() or QApplication(sys.argv)
    display_path = home / DISPLAY_CONFIG_NAME
    display_cfg = load_display_config(display_path)
    win = DisplayWindow(display_cfg)

    dispatcher = QtDispatcher()
    engine = SyncEngine(config, on_report=win.show_report, dispatcher=dispatcher,
                        observer_factory=lambda path, notify: QtFileWatcher(path, notify))
    engine.set_poll_interval(display_cfg.refresh_interval)

    def on_display_config(raw):
        cfg = parse_display_config(raw)
        win.apply_display_config(cfg)
        engine.set_poll_interval(cfg.refresh_interval)
        _logger.info("display config reloaded")

    engine.watch(display_path, on_display_config)
    app.aboutToQuit.connect(engine.stop)

    win.show()
    engine.start()
    return app.exec()


def main(argv=None):
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    if args.home:
        os.environ["SHIFT_SYNC_HOME"] = str(args.home)
    home = default_home()
    configure_logging(home / "logs", args.log_level)
    config = load_app_config(home / APP_CONFIG_NAME)
    _logger.info("starting %s (reports: %s)", args.mode, config.reports_directory)
    if args.mode == "manage":
        return run_manage(config)
    return run_display(config, home)


if __name__ == "__main__":
    sys.exit(main())
