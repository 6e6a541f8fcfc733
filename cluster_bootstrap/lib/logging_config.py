"""JSON logging configuration for cluster bootstrap and teardown."""

import logging

from pythonjsonlogger import jsonlogger

CONTEXT_FIELDS = ("step", "role")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter restricted to a fixed field set.

    Besides timestamp, level, message, exc_info, funcName and lineno, the
    workflow and PKI context fields passed via ``extra`` are kept: ``step``
    (lifecycle step or workflow step function) and ``role`` (PKI artifact).
    """

    def add_fields(self, log_record, record, message_dict):
        """Override to include only specified fields.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        allowed_fields = {
            "timestamp",
            "level",
            "message",
            "exc_info",
            "funcName",
            "lineno",
            *CONTEXT_FIELDS,
        }

        for key in [key for key in log_record if key not in allowed_fields]:
            log_record.pop(key)


def _setup_logger() -> logging.Logger:
    """Initialize and configure singleton logger.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger("cluster_bootstrap")

    # Module reloads must not stack handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


# Singleton logger instance - import this in other modules
LOGGER = _setup_logger()
