"""Application entry point."""

from __future__ import annotations

import logging
import sys

from PySide6.QtWidgets import QApplication

from broker_console.core.container import build_container
from broker_console.core.logging import setup_logging
from broker_console.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def run() -> None:
    """Launch the GUI application."""
    container = build_container()
    setup_logging(container.config.logging.level)
    logger.info("Starting console for deployment %s", container.deployment)

    app = QApplication(sys.argv)
    window = MainWindow(
        container.identity,
        container.records,
        container.gateway,
        container.config.display.currency,
    )
    window.show()
    exit_code = app.exec()
    container.records.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
