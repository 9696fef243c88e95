import logging
import json
import os
from pathlib import Path
import threading


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


class SingletonLogger:
    """
    Singleton logger that ensures only one "quoteflow" logger is configured per process.

    Handlers are attached once; child loggers such as "quoteflow.orders" propagate to it.
    """
    _instance = None
    _lock = threading.Lock()
    _logger = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            with self._lock:
                if not self._initialized:
                    self._logger = None
                    self._initialized = True

    def get_logger(self, name: str = "quoteflow") -> logging.Logger:
        """
        Get a logger under the singleton "quoteflow" root.

        Args:
            name (str): Dotted logger name, e.g. "quoteflow.business.orders"

        Returns:
            logging.Logger: The named logger (handlers live on the root)
        """
        if self._logger is None:
            with self._lock:
                if self._logger is None:
                    self._logger = self._create_logger()
        if not name or name == "quoteflow":
            return self._logger
        if not name.startswith("quoteflow."):
            name = f"quoteflow.{name}"
        return logging.getLogger(name)

    def _create_logger(self) -> logging.Logger:
        """
        Create the root logger with file and console handlers.

        LOG_LEVEL sets the console level, LOG_DIR the directory for the
        file handlers and LOG_TO_FILE=False disables them entirely.
        """
        logger = logging.getLogger("quoteflow")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        logger.handlers.clear()

        formatter = JsonFormatter({
            "level": "levelname",
            "logger": "name",
            "module": "module",
            "function": "funcName",
            "line": "lineno",
            "message": "message"
        })

        if _env_flag('LOG_TO_FILE', 'True'):
            logs_dir = Path(os.environ.get('LOG_DIR', 'logs'))
            logs_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(logs_dir / "quoteflow.log", mode='a', encoding='utf-8')
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            error_file_handler = logging.FileHandler(logs_dir / "errors.log", mode='a', encoding='utf-8')
            error_file_handler.setLevel(logging.ERROR)
            error_file_handler.setFormatter(formatter)
            logger.addHandler(error_file_handler)

        console_handler = logging.StreamHandler()
        console_level = os.environ.get('LOG_LEVEL', 'DEBUG').upper()
        console_handler.setLevel(getattr(logging, console_level, logging.DEBUG))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        return logger


class JsonFormatter(logging.Formatter):
    """
    Formatter that outputs JSON strings after parsing the LogRecord.

    @param dict fmt_dict: Key: logging format attribute pairs. Defaults to {"message": "message"}.
    @param str time_format: time.strftime() format string. Default: "%Y-%m-%dT%H:%M:%S"
    @param str msec_format: Microsecond formatting. Appended at the end. Default: "%s.%03dZ"
    """
    def __init__(self, fmt_dict: dict = None, time_format: str = "%Y-%m-%dT%H:%M:%S", msec_format: str = "%s.%03dZ"):
        super().__init__()
        self.fmt_dict = fmt_dict if fmt_dict is not None else {"message": "message"}
        self.default_time_format = time_format
        self.default_msec_format = msec_format
        self.datefmt = None

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def formatMessage(self, record) -> dict:
        """
        Return a dict of the configured LogRecord attributes instead of a string.
        Unknown attributes raise KeyError.
        """
        return {fmt_key: record.__dict__[fmt_val] for fmt_key, fmt_val in self.fmt_dict.items()}

    def format(self, record) -> str:
        record.message = record.getMessage()

        if self.usesTime():
            record.asctime = self.formatTime(record, self.datefmt)

        message_dict = self.formatMessage(record)

        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)

        if record.exc_text:
            message_dict["exc_info"] = record.exc_text

        if record.stack_info:
            message_dict["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(message_dict, default=str)


def get_logger(name: str = "quoteflow") -> logging.Logger:
    """
    Get a logger attached to the singleton "quoteflow" root.

    Args:
        name (str): Dotted logger name

    Returns:
        logging.Logger
    """
    return SingletonLogger().get_logger(name)
