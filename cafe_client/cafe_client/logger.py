"""Logger module for the café client."""

import os

from logging_utils.config import get_channel_logger, setup_service_logger

logger = setup_service_logger(
    "cafe-client",
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_file=os.getenv("CAFE_CLIENT_LOG_FILE"),
)

# Push-channel events are tagged separately so they can be filtered
live_logger = get_channel_logger("cafe-client", "live")

__all__ = ["logger", "live_logger"]
