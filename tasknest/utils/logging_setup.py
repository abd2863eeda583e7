# Rev 0.2.0

# tasknest – logging setup (Rev 0.2.0)
# One root configuration shared by the API server, the migrate tool and the
# Qt client: rotating file under $XDG_STATE_HOME/tasknest/logs plus stdout.
from __future__ import annotations
import logging, os, sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from .paths import APP_NAME, LOGS_DIR

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_ENV = "TASKNEST_LOG_LEVEL"
MAX_BYTES = 5_000_000
BACKUPS = 7

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}

_HANDLER_TAG = "_tasknest_handler"


def _qt_handler(msg_type, context, message):
    logging.getLogger("qt").log(_QT_LEVELS.get(msg_type, logging.INFO), message)


def resolve_level(default: str = "INFO") -> int:
    name = os.environ.get(LOG_LEVEL_ENV, default).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(app_name: str = APP_NAME, *, log_dir: Path | None = None, qt_messages: bool = False) -> Path:
    """
    Configure the root logger and return the log file path.

    Calling it again replaces the handlers installed by a previous call.
    `qt_messages=True` routes Qt's own warnings into the "qt" logger.
    """
    level = resolve_level()
    log_dir = Path(log_dir) if log_dir is not None else LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    logfile = log_dir / f"{app_name}.log"

    root = logging.getLogger()
    root.setLevel(level)
    for h in [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]:
        root.removeHandler(h)
        h.close()

    formatter = logging.Formatter(FORMAT, DATEFMT)
    fh = RotatingFileHandler(logfile, maxBytes=MAX_BYTES, backupCount=BACKUPS, encoding="utf-8")
    ch = logging.StreamHandler(sys.stdout)
    for h in (fh, ch):
        h.setFormatter(formatter)
        h.setLevel(level)
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    # Uncaught exceptions → log as ERROR
    def _excepthook(exctype, value, tb):
        logging.getLogger("unhandled").exception("Uncaught exception", exc_info=(exctype, value, tb))
        sys.__excepthook__(exctype, value, tb)
    sys.excepthook = _excepthook

    if qt_messages:
        qInstallMessageHandler(_qt_handler)

    logging.getLogger(__name__).info(
        "Logging initialized at %s; file: %s", logging.getLevelName(level), logfile
    )
    return logfile
