"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- The recommendation error hierarchy
- Common utilities
"""

from core.errors import (
    ConfigurationError,
    DependencyError,
    NotFoundError,
    RecommendationError,
    ValidationError,
)
from core.logging import configure_logging, get_logger, request_context
from core.utils import normalize_string_set, utc_now

__all__ = [
    "configure_logging",
    "get_logger",
    "request_context",
    "RecommendationError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "DependencyError",
    "normalize_string_set",
    "utc_now",
]
