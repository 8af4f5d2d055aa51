# logger_setup.py - Logging-Konfiguration (JSONL-Datei + Rich-Konsole)
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Optional

from pythonjsonlogger import jsonlogger
from rich.logging import RichHandler

import config

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FORMAT = '%(asctime)s %(levelname)s %(name)s %(run_id)s %(message)s %(event_type)s'


# =================================================================================
# Benutzerdefinierte Formatter-Klasse für UTC-Zeitstempel
# =================================================================================
class UTCJsonFormatter(jsonlogger.JsonFormatter):
    def formatTime(self, record, datefmt=None):
        ct = time.gmtime(record.created)
        if datefmt:
            if '%f' in datefmt:
                base_fmt = datefmt.replace('.%f', '').rstrip('Z')
                s = time.strftime(base_fmt, ct)
                s = f"{s}.{int(record.msecs):03d}"
                if datefmt.endswith('Z') and not s.endswith('Z'):
                    s += 'Z'
            else:
                s = time.strftime(datefmt, ct)
        else:
            t = time.strftime("%Y-%m-%d %H:%M:%S", ct)
            s = f"{t},{int(record.msecs):03d}"
        return s


def make_json_formatter() -> UTCJsonFormatter:
    return UTCJsonFormatter(
        JSON_FORMAT,
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'},
        datefmt='%Y-%m-%dT%H:%M:%S.%fZ',
    )


# =================================================================================
# Filter-Klassen
# =================================================================================
class EnsureEventTypeFilter(logging.Filter):
    def filter(self, record):
        if not hasattr(record, 'event_type'):
            record.event_type = 'GENERAL'
        return True


class AddRunIdFilter(logging.Filter):
    def __init__(self, run_id: Optional[str] = None):
        super().__init__()
        self.run_id = run_id

    def filter(self, record):
        record.run_id = self.run_id or config.run_id or "-"
        return True


def _level(name: str, default: int = logging.DEBUG) -> int:
    return LEVELS.get((name or "").upper(), default)


# =================================================================================
# Logger-Setup-Funktion
# =================================================================================
def setup_logging(log_file: Optional[str] = None, level: Optional[str] = None,
                  console_level: Optional[str] = None, console: bool = True,
                  root: Optional[logging.Logger] = None) -> logging.Logger:
    """
    Attach the JSONL file handler and the console handler to the root logger.

    Module loggers (``logging.getLogger(__name__)``) propagate to root, so
    every structured ``extra={'event_type': ...}`` lands in the JSONL file.
    Idempotent: calling twice does not duplicate handlers.

    Args:
        log_file: Path of the JSONL log (default: config.LOG_FILE, requires init_runtime_config())
        level: File log level (default: config.LOG_LEVEL)
        console_level: Console log level (default: config.CONSOLE_LOG_LEVEL)
        console: Attach the rich console handler
        root: Logger to configure (default: root logger)
    """
    logger = root or logging.getLogger()
    if getattr(logger, "_bot_logging_configured", False):
        return logger

    log_file = log_file or config.LOG_FILE
    if log_file is None:
        raise RuntimeError("LOG_FILE not set, call config.init_runtime_config() first")

    # Stelle sicher, dass Log-Verzeichnis existiert
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    file_level = _level(level or config.LOG_LEVEL)
    term_level = _level(console_level or config.CONSOLE_LOG_LEVEL, logging.INFO)
    logger.setLevel(min(file_level, term_level))

    rotating_handler = RotatingFileHandler(
        log_file, maxBytes=config.LOG_MAX_BYTES, backupCount=config.LOG_BACKUP_COUNT,
        encoding='utf-8', delay=True
    )
    rotating_handler.setLevel(file_level)
    rotating_handler.setFormatter(make_json_formatter())
    rotating_handler.addFilter(EnsureEventTypeFilter())
    rotating_handler.addFilter(AddRunIdFilter())
    logger.addHandler(rotating_handler)

    if console:
        console_handler = RichHandler(
            level=term_level,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

    # ccxt/urllib3 sind auf DEBUG sehr gesprächig
    for noisy in ("ccxt", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger._bot_logging_configured = True
    logger.info("Logging initialized", extra={
        'event_type': 'LOGGING_SETUP',
        'log_file': log_file,
        'file_level': logging.getLevelName(file_level),
        'console_level': logging.getLevelName(term_level),
    })
    return logger


def shutdown_logging():
    """Flush and close all handlers (end of session)."""
    logging.shutdown()
