"""
stagecache - Observability Module

Structured logging setup for the cache runtime.

Usage:
    from stagecache.observability import configure_logging

    configure_logging(level="DEBUG", fmt="json")
"""

from .monitoring import JSONFormatter, configure_logging

__all__ = [
    "JSONFormatter",
    "configure_logging",
]
