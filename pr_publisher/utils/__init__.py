"""
Utility modules for the pull request publisher.
"""

from pr_publisher.utils.logging import (
    get_logger,
    setup_logging,
    log_workflow_step,
    log_api_call,
    log_error_with_context,
)
from pr_publisher.utils.metrics import (
    MetricsCollector,
    track_api_call,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_workflow_step",
    "log_api_call",
    "log_error_with_context",
    "MetricsCollector",
    "track_api_call",
]
