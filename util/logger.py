# util/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from config.settings import settings

logging.captureWarnings(True)

_TEXT_FMT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_DATE_FMT = "%Y-%m-%dT%H:%M:%S%z"


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Colour a copy so file handlers sharing the record keep the plain levelname
        if not getattr(record, "_colorize", False):
            return super().format(record)
        colored = logging.makeLogRecord(record.__dict__)
        lvl = record.levelname
        colored.levelname = f"{self.COLORS.get(lvl, self.RESET)}{lvl}{self.RESET}"
        return super().format(colored)


class _ConsoleHandler(logging.StreamHandler):
    def emit(self, record: logging.LogRecord) -> None:
        record._colorize = sys.stdout.isatty()  # type: ignore[attr-defined]
        super().emit(record)


def _file_handler(level: int) -> logging.Handler:
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    fh = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME),
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(_TEXT_FMT, datefmt=_DATE_FMT))
    return fh


def init_logger() -> logging.Logger:
    """
    Idempotent logger init:
    - Always logs to stdout, coloured when attached to a terminal.
    - Writes to LOG_DIR/LOG_FILE_NAME (rotating) only when settings.LOG_TO_FILE is True.
    - Respects settings.LOG_LEVEL.
    """
    root = logging.getLogger()
    if getattr(root, "_client_docs_inited", False):
        return logging.getLogger(settings.LOGGER_NAME)

    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    ch = _ConsoleHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(ColoredFormatter(_TEXT_FMT, datefmt=_DATE_FMT))
    root.addHandler(ch)

    if settings.LOG_TO_FILE:
        root.addHandler(_file_handler(level))

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)

    root._client_docs_inited = True  # type: ignore[attr-defined]
    logger = logging.getLogger(settings.LOGGER_NAME)
    logger.debug("logger.init level=%s file=%s", logging.getLevelName(level), settings.LOG_TO_FILE)
    return logger
