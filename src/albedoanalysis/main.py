"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Configures logging from the environment.
2. Instantiates the Data Model (an empty Investigation).
3. Instantiates the Main Window (View), which owns the workspace session.
4. Prevents circular import errors by being the orchestrator.
"""
import logging
import os
import sys

from PySide6.QtCore import QCoreApplication, QSettings
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication

from albedoanalysis import config
from albedoanalysis.logging_config import setup_logging
from albedoanalysis.model.state import Investigation
from albedoanalysis.view.main_window import MainWindow

logger = logging.getLogger(__name__)


def create_app() -> QApplication:
    """Create and configure the QApplication instance."""
    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")

    QCoreApplication.setOrganizationName(config.ORG_ID)
    QCoreApplication.setApplicationName(config.APP_ID)
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationDisplayName(config.VISIBLE_APP_NAME)
    if os.path.exists(config.APP_ICON_PATH):
        app.setWindowIcon(QIcon(config.APP_ICON_PATH))
    return app


def main() -> None:
    # 1. Setup Logging (ALBEDO_LOG_LEVEL=debug shows the sampling breakdown)
    setup_logging()

    # 2. Create the Qt Application
    app = create_app()

    # 3. Initialize the Data Model
    investigation = Investigation.new()

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(investigation)
    window.show()

    # Optional image path on the command line
    if len(sys.argv) > 1 and os.path.isfile(sys.argv[1]):
        window.load_image(sys.argv[1])

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
