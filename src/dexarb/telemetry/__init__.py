"""Telemetry module for logging and metrics."""

from dexarb.telemetry.logger import AsyncLogger, log_status, setup_logging
from dexarb.telemetry.metrics import MetricsCollector


__all__ = [
    "AsyncLogger",
    "MetricsCollector",
    "log_status",
    "setup_logging",
]
