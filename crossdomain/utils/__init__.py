"""Utility modules for logging and common helpers."""

from crossdomain.utils.logging import configure_logging

__all__ = ["configure_logging"]
