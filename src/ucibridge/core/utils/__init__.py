"""Shared utilities for ucibridge."""

from ucibridge.core.utils.logging import setup_logging

__all__ = ["setup_logging"]
