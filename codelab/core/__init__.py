"""
Core infrastructure for CodeLab: configuration, logging and exceptions.
"""

from .config import CodeLabConfig, ExecutionConfig, ServerConfig, load_config
from .exceptions import (
    CodeLabError,
    ConfigurationError,
    SourceWriteError,
    UnsupportedLanguageError,
    format_error_message,
)
from .logging import configure_logging, get_logger

__all__ = [
    "CodeLabConfig",
    "CodeLabError",
    "ConfigurationError",
    "ExecutionConfig",
    "ServerConfig",
    "SourceWriteError",
    "UnsupportedLanguageError",
    "configure_logging",
    "format_error_message",
    "get_logger",
    "load_config",
]
