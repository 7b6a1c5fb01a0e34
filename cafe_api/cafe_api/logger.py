"""Logger module for the café API."""

import os

from logging_utils.config import get_channel_logger, setup_service_logger

logger = setup_service_logger(
    "cafe-api",
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("CAFE_API_LOG_FILE"),
)

ws_logger = get_channel_logger("cafe-api", "ws")

__all__ = ["logger", "ws_logger"]
