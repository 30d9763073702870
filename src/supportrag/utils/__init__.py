"""
Utilities: configuration, logging and lazy resources.
"""

from supportrag.utils.config import RAGConfig, load_config
from supportrag.utils.lazy import LazyResource
from supportrag.utils.logging import get_logger, set_log_level

__all__ = [
    "RAGConfig",
    "load_config",
    "LazyResource",
    "get_logger",
    "set_log_level",
]
