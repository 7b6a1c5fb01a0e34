"""Logging utilities for the café services."""

from .config import get_channel_logger, setup_service_logger

__all__ = [
    "setup_service_logger",
    "get_channel_logger",
]
