import datetime
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import settings


LOGGER_NAME = "chat_runtime"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_BACKUP_DAYS = 7

_LOGGING_CONFIGURED = False


class LocalTimezoneFormatter(logging.Formatter):
    """
    Renders ``asctime`` as ISO-8601 in LOG_TIMEZONE, or in the system
    timezone when that is unset or unknown.
    """

    def __init__(self, fmt: str = LOG_FORMAT, *, timezone_name: str | None = None) -> None:
        super().__init__(fmt)
        self._tzinfo = _resolve_tzinfo(timezone_name)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.datetime.fromtimestamp(record.created, tz=self._tzinfo)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="milliseconds")


def _resolve_tzinfo(timezone_name: str | None) -> datetime.tzinfo | None:
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except ZoneInfoNotFoundError:
            pass
    return datetime.datetime.now().astimezone().tzinfo


def _resolve_level(level_name: object) -> int:
    if not isinstance(level_name, str):
        return logging.INFO
    return getattr(logging, level_name.upper(), logging.INFO)


def build_file_handler(log_dir: Path, formatter: logging.Formatter) -> logging.Handler:
    """
    Daily rotating ``<log_dir>/chat_runtime.log`` holding only records of
    the ``chat_runtime`` logger tree.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        log_dir / f"{LOGGER_NAME}.log",
        when="midnight",
        backupCount=LOG_BACKUP_DAYS,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    handler.addFilter(logging.Filter(LOGGER_NAME))
    return handler


def setup_logging() -> None:
    """
    Configure application logging once per process: ``chat_runtime``
    records go to the rotating file and, through the root logger, to the
    console shared with uvicorn.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = _resolve_level(settings.log_level)
    formatter = LocalTimezoneFormatter(timezone_name=settings.log_timezone)

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)
    app_logger.addHandler(build_file_handler(Path(settings.log_dir), formatter))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _LOGGING_CONFIGURED = True


logger = logging.getLogger(LOGGER_NAME)
