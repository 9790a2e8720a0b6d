"""
Structured logging configuration for the Deepgram Callback Transcription API.

This module provides JSON-formatted logging with context information
(request ids, upload names, error details) so that a job can be followed
from dispatch to callback to reclamation in the logs.
"""

import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for job lifecycle logs.

    Every line carries timestamp, level, logger and source location. Context
    passed through `extra` (request_id, upload_filename, status transitions,
    provider error details) is emitted as top-level keys so one request can be
    traced from dispatch through callback to reclamation.
    """

    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        if record.stack_info:
            log_record['stack_trace'] = self.formatStack(record.stack_info)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    use_json: bool = True
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to (in addition to stdout)
        use_json: Whether to use JSON formatting (default: True)

    Example:
        >>> setup_logging(log_level="DEBUG", use_json=True)
        >>> get_logger("app.reclaimer").info("Reclaimed jobs", extra={"removed": 3})
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    if use_json:
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(logger)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.info(
        "Logging configured",
        extra={
            "log_level": log_level,
            "use_json": use_json,
            "log_file": log_file
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Return the named logger; modules pass `__name__`."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    request_id: Optional[str] = None,
    filename: Optional[str] = None,
    file_size: Optional[int] = None,
    error: Optional[Exception] = None,
    **kwargs
) -> None:
    """
    Log a message with structured context information.

    Args:
        logger: Logger instance to use
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        request_id: Optional provider request identifier
        filename: Optional upload file name
        file_size: Optional file size in bytes
        error: Optional exception instance; attaches the traceback
        **kwargs: Additional context fields

    Example:
        >>> logger = get_logger(__name__)
        >>> log_with_context(
        ...     logger,
        ...     "info",
        ...     "Job registered",
        ...     request_id="6b1a2e4c-3f0d-4c8e-9a51-0f2b7d9c1e11",
        ...     filename="meeting.wav"
        ... )
    """
    context = {}

    if request_id:
        context['request_id'] = request_id

    # "filename" is a reserved LogRecord attribute
    if filename:
        context['upload_filename'] = filename

    if file_size is not None:
        context['file_size'] = file_size

    if error:
        context['error_type'] = type(error).__name__
        context['error_message'] = str(error)

    context.update(kwargs)

    log_method = getattr(logger, level.lower())

    if error:
        log_method(message, extra=context, exc_info=True)
    else:
        log_method(message, extra=context)
