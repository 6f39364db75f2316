# ffq/app.py
import sys

from PySide6.QtWidgets import QApplication

from .main_window import MainWindow
from .utils.log import configure_logging
from .utils.settings import load_settings


def main() -> int:
    settings = load_settings()
    configure_logging(settings.get("log_level", "INFO"))
    app = QApplication(sys.argv)
    app.setApplicationName("FFmpeg Queue")
    win = MainWindow(settings)
    win.show()
    return app.exec()
