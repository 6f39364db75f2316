# ffq/utils/log.py
import logging

from PySide6.QtCore import QObject, Signal

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    logger = logging.getLogger("ffq")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    if not any(getattr(h, "_ffq_stream", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._ffq_stream = True
        logger.addHandler(handler)
    return logger


class _LineEmitter(QObject):
    line = Signal(str)


class QtLogBridge(logging.Handler):
    """Forwards log records to the GUI console; safe to log from worker threads."""

    def __init__(self, level=logging.INFO):
        super().__init__(level)
        self.emitter = _LineEmitter()
        self.setFormatter(logging.Formatter("%(asctime)s %(message)s", "%H:%M:%S"))

    @property
    def line(self):
        return self.emitter.line

    def emit(self, record):
        try:
            self.emitter.line.emit(self.format(record))
        except RuntimeError:
            # emitter deleted with the window while a worker was still logging
            pass
