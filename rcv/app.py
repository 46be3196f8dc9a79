# File: rcv/app.py
# Project: RamificadorConversaciones (RCV)
# Version: 0.4.0
# Status: stable
# Date: 2026-10-18
# Purpose: Entry-point de la aplicación.
# Notes: Defaults de proyecto (rcv_settings.json) se aplican antes de crear la UI.
from __future__ import annotations

import sys
from PySide6.QtWidgets import QApplication

from rcv.core.settings import apply_project_settings
from rcv.core.version import APP_VERSION

from rcv.ui.main_window import MainWindow
from rcv.utils.log import setup_logging, get_logger

log = get_logger(__name__)


def main() -> int:
    setup_logging()
    # Project-level defaults (repo-local): rcv_settings.json
    apply_project_settings(logger=log, prefer_env=True)
    app = QApplication(sys.argv)
    w = MainWindow()
    w.show()
    log.info("RCV iniciado (v%s)", APP_VERSION)
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
