"""
Metrics collection for pull request workflow runs.

This module provides metrics tracking for:
- Workflow execution time and final status
- REST call counts and latency per operation
- Whether the run had to create the source branch
"""

import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager

from pr_publisher.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


class MetricsCollector:
    """
    Collects metrics during a single workflow run.

    Tracks:
    - Execution start/end time
    - API call counts and latency
    - Branch creation
    - Errors
    """

    def __init__(self, run_id: str, project: Optional[str] = None, repo: Optional[str] = None):
        """
        Initialize metrics collector.

        Args:
            run_id: Workflow run ID
            project: Bitbucket project key, once resolved
            repo: Repository slug, once resolved
        """
        self.run_id = run_id
        self.project = project
        self.repo = repo

        # Timing metrics
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.duration_ms: Optional[int] = None

        # Workflow metrics
        self.branch_created: bool = False
        self.pull_request_url: Optional[str] = None

        # API metrics
        self.api_calls: Dict[str, int] = {}
        self.api_latencies: Dict[str, list[float]] = {}

        # Status
        self.status: str = "running"
        self.error_message: Optional[str] = None

    def start(self) -> None:
        """Mark workflow run start."""
        self.start_time = datetime.now(timezone.utc)
        self.status = "running"

    def complete(self, status: str = "completed", error_message: Optional[str] = None) -> None:
        """
        Mark workflow run completion and log the summary.

        Args:
            status: Final status ('completed' or 'failed')
            error_message: Error message if failed
        """
        self.end_time = datetime.now(timezone.utc)
        self.status = status
        self.error_message = error_message

        if self.start_time:
            duration = (self.end_time - self.start_time).total_seconds()
            self.duration_ms = int(duration * 1000)

        logger.info(
            f"Workflow run {self.run_id} finished with status {self.status}",
            extra=self.get_metrics_summary()
        )

    def record_branch_created(self, created: bool = True) -> None:
        self.branch_created = created

    def record_pull_request(self, url: str) -> None:
        self.pull_request_url = url

    def record_api_call(self, operation: str, duration_ms: float) -> None:
        """
        Record API call and latency.

        Args:
            operation: Operation name (e.g., 'find_branch')
            duration_ms: Call duration in milliseconds
        """
        self.api_calls[operation] = self.api_calls.get(operation, 0) + 1
        self.api_latencies.setdefault(operation, []).append(duration_ms)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """
        Get summary of collected metrics.

        Returns:
            Dictionary of metrics
        """
        summary: Dict[str, Any] = {
            "run_id": self.run_id,
            "project": self.project,
            "repo": self.repo,
            "status": self.status,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "branch_created": self.branch_created,
            "pull_request_url": self.pull_request_url,
            "api_calls": self.api_calls,
        }

        if self.api_latencies:
            latency_stats = {}
            for operation, latencies in self.api_latencies.items():
                if latencies:
                    latency_stats[operation] = {
                        "count": len(latencies),
                        "min_ms": round(min(latencies), 2),
                        "max_ms": round(max(latencies), 2),
                        "avg_ms": round(sum(latencies) / len(latencies), 2),
                    }
            summary["api_latencies"] = latency_stats

        if self.error_message:
            summary["error_message"] = self.error_message

        return summary


@asynccontextmanager
async def track_api_call(
    metrics_collector: Optional[MetricsCollector],
    operation: str,
    method: str,
    endpoint: str,
    logger_adapter
):
    """
    Context manager to track REST call timing.

    Usage:
        async with track_api_call(metrics, "find_branch", "GET", url, logger) as call:
            response = await transport.get(url, headers)
            call["status_code"] = response.status_code

    Args:
        metrics_collector: Metrics collector (optional)
        operation: Operation name
        method: HTTP method
        endpoint: Request URL
        logger_adapter: Logger for logging API calls

    Yields:
        Mutable dict; set ``status_code`` on it to have it logged
    """
    start_time = time.perf_counter()
    call: Dict[str, Any] = {"status_code": None}
    error = None

    try:
        yield call
    except Exception as e:
        error = e
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000

        if metrics_collector:
            metrics_collector.record_api_call(operation, duration_ms)

        log_api_call(
            logger_adapter,
            service="bitbucket_server",
            endpoint=endpoint,
            method=method,
            status_code=call["status_code"],
            duration_ms=duration_ms,
            error=str(error) if error else None
        )
