import json
import logging
import sys

# Default Logger Name
LOGGER_NAME = "erc8004"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; messages and tracebacks are escaped by json.dumps."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: int | str = logging.INFO, json_format: bool = False) -> logging.Logger:
    """
    Configure the erc8004 logger.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG")
        json_format: Emit one JSON object per line instead of plain text

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-configuring must not stack handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a child logger of erc8004."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def mask_url(url: str) -> str:
    """
    Hide the path and query of an endpoint URL before it is logged.

    Hosted RPC and pinning endpoints carry API keys there
    (https://eth-mainnet.example.com/v2/<key>).
    """
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    host, slash, tail = rest.partition("/")
    host, query_sep, _ = host.partition("?")
    if (slash and tail) or query_sep:
        return f"{scheme}://{host}/****"
    return url
