"""Logging configuration module shared by the café client and API."""

import sys
from typing import Optional

from loguru import logger as loguru_logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[service]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[service]} | {name}:{function}:{line} - {message}"

# Sinks are process-wide in loguru; remember what we installed so repeated setup calls stay idempotent
_installed_sinks: dict[str, int] = {}


def setup_service_logger(
    service_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
) -> "loguru_logger":
    """Configure loguru sinks and return a logger bound to a service name.

    The first call replaces loguru's default handler with a formatted stderr sink.
    Later calls reuse the installed sinks and only add a file sink when a new
    path is given.

    Args:
        service_name: Name of the service (e.g., 'cafe-client')
        log_level: Logging level (default: INFO)
        log_file: Optional path to a rotating log file

    Returns:
        logger: Loguru logger with ``service`` bound
    """
    if "stderr" not in _installed_sinks:
        loguru_logger.remove()
        loguru_logger.configure(extra={"service": "-"})
        _installed_sinks["stderr"] = loguru_logger.add(
            sys.stderr,
            level=log_level,
            format=CONSOLE_FORMAT,
            colorize=True,
            catch=True,
            backtrace=True,
            diagnose=False,
        )

    if log_file and log_file not in _installed_sinks:
        _installed_sinks[log_file] = loguru_logger.add(
            log_file,
            level=log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="1 week",
            compression="gz",
        )

    return loguru_logger.bind(service=service_name)


def get_channel_logger(service_name: str, channel: str) -> "loguru_logger":
    """Get a logger for one push channel of a service.

    Args:
        service_name: Name of the service
        channel: Channel label added to the service name (e.g. 'live')

    Returns:
        logger: Logger bound to ``<service>.<channel>``
    """
    return setup_service_logger(service_name).bind(service=f"{service_name}.{channel}", channel=channel)
