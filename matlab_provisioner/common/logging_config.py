# -*- coding: utf-8 -*-
"""
Logging configuration for the MATLAB image provisioner.

Console output goes to stderr, keeping stdout free for rendered
Dockerfiles, and is human-readable by default. Structured JSON records are
written to the optional log file, and to the console when the LOG_FORMAT
environment variable is set to "json" (useful inside CI build logs that are
shipped to a log collector).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RESERVED_RECORD_KEYS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Each record carries timestamp, level, service, logger, message and
    source location, plus any `extra` fields passed to the logging call.
    """

    def __init__(self, service_name: str = "matlab-provisioner"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.environ.get("HOSTNAME", "unknown")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "hostname": self.hostname,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(
    service_name: str = "matlab-provisioner",
    log_level: Optional[str] = None,
    enable_console: bool = True,
    log_file_path: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for the provisioner.

    Args:
        service_name: Name of the returned logger and of the JSON "service" field.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Falls back to the
            LOG_LEVEL environment variable, then INFO.
        enable_console: Attach a stderr handler.
        log_file_path: Also write JSON records to this file.

    Returns:
        The service logger.
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    json_formatter = JSONFormatter(service_name)
    console_formatter = logging.Formatter(CONSOLE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        if os.environ.get("LOG_FORMAT", "").lower() == "json":
            console_handler.setFormatter(json_formatter)
        else:
            console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.debug(
        "Logging initialized",
        extra={
            "log_level": logging.getLevelName(numeric_level),
            "console_enabled": enable_console,
            "file_enabled": bool(log_file_path),
        },
    )
    return logger
