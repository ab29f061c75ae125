"""
stagecache - Cache Backends
"""

from .filesystem import FileCacheBackend

__all__ = ["FileCacheBackend"]
