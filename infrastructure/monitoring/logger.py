import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from pathlib import Path


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'extra_data'):
            log_entry['data'] = record.extra_data

        return json.dumps(log_entry, ensure_ascii=False, cls=CustomJSONEncoder)


class AppLogger:
    """
    Centralized logging configuration for the application.

    Console output is always enabled. When a log directory is given, a rotating
    file receives every record and a second one keeps warnings and errors.
    """
    def __init__(self,
                 console_level: str = "INFO",
                 log_directory: str | None = None,
                 json_console: bool = False,
                 max_file_size: int = 10 * 1024 * 1024,
                 backup_count: int = 5):
        self.console_level = getattr(logging, console_level.upper())
        self.log_directory = Path(log_directory) if log_directory else None
        self.json_console = json_console
        self.max_file_size = max_file_size
        self.backup_count = backup_count

    def setup(self) -> None:
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(logging.DEBUG)

        logging.getLogger("httpx").setLevel(logging.WARNING)

        self._setup_console_handler(root_logger)
        if self.log_directory is not None:
            self.log_directory.mkdir(parents=True, exist_ok=True)
            self._setup_file_handler(root_logger, "app.log", logging.DEBUG)
            self._setup_file_handler(root_logger, "errors.log", logging.WARNING)

    def _setup_console_handler(self, logger: logging.Logger) -> None:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.console_level)
        if self.json_console:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_format = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'
            console_handler.setFormatter(logging.Formatter(console_format, datefmt='%H:%M:%S'))
        logger.addHandler(console_handler)

    def _setup_file_handler(self, logger: logging.Logger, filename: str, level: int) -> None:
        file_handler = RotatingFileHandler(
            self.log_directory / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)


def configure_logging(level: str = "INFO", log_directory: str | None = None, json_logs: bool = False) -> AppLogger:
    app_logger = AppLogger(console_level=level, log_directory=log_directory, json_console=json_logs)
    app_logger.setup()
    return app_logger
