"""
Common utilities shared across tools
"""

from .base_output_formatter import BaseOutputFormatter, OutputFormat
from .logging_config import configure_logging, get_logger, get_logging_manager
from .rate_limit_manager import (
    RateLimitManager,
    RateLimitStatus,
    global_rate_limit_manager,
)
from .telemetry import get_telemetry_manager, trace_function, trace_operation

__all__ = [
    "configure_logging",
    "get_logger",
    "get_logging_manager",
    "get_telemetry_manager",
    "trace_function",
    "trace_operation",
    "RateLimitManager",
    "RateLimitStatus",
    "global_rate_limit_manager",
    "BaseOutputFormatter",
    "OutputFormat",
]
