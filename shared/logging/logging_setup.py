"""Process-wide logging for the API server and the ingestion runner.

Records go to stdout (optionally colored) and to $ROOT_DIR/logs/app.log.
Timestamps use the zone in $TIMEZONE, the level comes from $LOG_LEVEL.
"""

import logging
import logging.config
import os
from datetime import datetime

from pytz import timezone

LOGGER_NAME = "persona_bots"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_PREFIXES = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}

ANSI_RESET = "\033[0m"
ANSI_COLORS = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}

# chatty third-party loggers: (normal level, debug level)
QUIET_LOGGERS = {
    "httpx": (logging.WARNING, logging.DEBUG),
    "httpcore": (logging.WARNING, logging.DEBUG),
    # pdfminer warns once per odd glyph while pdfplumber extracts text
    "pdfminer": (logging.ERROR, logging.ERROR),
}


class TimezoneFormatter(logging.Formatter):
    """Formats timestamps in a fixed time zone and prefixes warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record: logging.LogRecord) -> str:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # malformed third-party log call, keep the raw template
            message = str(record.msg)

        # the record is shared by all handlers, so only a copy is changed
        prefixed = logging.makeLogRecord(record.__dict__)
        prefixed.msg = LEVEL_PREFIXES.get(record.levelno, "") + message
        prefixed.args = ()
        return super().format(prefixed)


class ColorFormatter(TimezoneFormatter):
    """Console formatter. Wraps the line in the ANSI color named by record.color, if any."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ansi = ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Logger wrapper whose log methods accept an optional color= name.

    Usage::

        logger.info("bot reply persisted", color="green")

    The color only shows on the console, the log file stays plain text.
    Everything else (setLevel, handlers, ...) is delegated to the wrapped logger.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self.log(logging.CRITICAL, msg, *args, **kwargs)

    def exception(self, msg, *args, exc_info=True, **kwargs):
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def build_logging_config(log_file: str, tz_name: str, level: int) -> dict:
    """dictConfig schema with a colored console handler and a plain file handler."""
    formatter_args = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": TimezoneFormatter, **formatter_args},
            "colored": {"()": ColorFormatter, **formatter_args},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "plain",
                "level": level,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            name: {"level": debug_level if level <= logging.DEBUG else normal_level}
            for name, (normal_level, debug_level) in QUIET_LOGGERS.items()
        },
        "root": {"handlers": ["console", "file"], "level": level},
    }


def setup_logging() -> ColorLogger:
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    level = logging.DEBUG if os.getenv("LOG_LEVEL", "info").lower() == "debug" else logging.INFO

    logging.config.dictConfig(
        build_logging_config(
            log_file=os.path.join(log_dir, "app.log"),
            tz_name=os.getenv("TIMEZONE", "Europe/Berlin"),
            level=level,
        )
    )
    return ColorLogger(logging.getLogger(LOGGER_NAME))
