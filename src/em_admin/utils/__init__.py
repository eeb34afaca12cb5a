"""
工具模块
========

包含日志记录、重试等工具功能。
"""

from .logger import get_logger, setup_logger, configure_logging, format_hex
from .retry import retry_call, exponential_backoff

__all__ = [
    "get_logger",
    "setup_logger",
    "configure_logging",
    "format_hex",
    "retry_call",
    "exponential_backoff"
]
