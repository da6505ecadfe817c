"""
Unit tests for metrics collection utilities.
"""

import pytest
from datetime import datetime
from unittest.mock import Mock

from pr_publisher.utils.metrics import MetricsCollector, track_api_call


def test_metrics_collector_initialization():
    """Test metrics collector initialization."""
    collector = MetricsCollector(run_id="run_123", project="PROJ", repo="service")

    assert collector.run_id == "run_123"
    assert collector.project == "PROJ"
    assert collector.repo == "service"
    assert collector.status == "running"
    assert collector.branch_created is False
    assert collector.api_calls == {}


def test_metrics_collector_start():
    """Test starting metrics collection."""
    collector = MetricsCollector("run_123")

    collector.start()

    assert isinstance(collector.start_time, datetime)
    assert collector.status == "running"


def test_metrics_collector_complete():
    """Test completing metrics collection."""
    collector = MetricsCollector("run_123")

    collector.start()
    collector.complete(status="completed")

    assert collector.end_time is not None
    assert collector.status == "completed"
    assert collector.duration_ms >= 0


def test_metrics_collector_complete_with_error():
    """Test completing metrics collection with error."""
    collector = MetricsCollector("run_123")

    collector.start()
    collector.complete(status="failed", error_message="Unable to create branch")

    assert collector.status == "failed"
    assert collector.get_metrics_summary()["error_message"] == "Unable to create branch"


def test_metrics_collector_record_api_call():
    """Test recording API call metrics."""
    collector = MetricsCollector("run_123")

    collector.record_api_call("find_branch", 150.5)
    collector.record_api_call("find_branch", 200.0)
    collector.record_api_call("create_pull_request", 500.0)

    assert collector.api_calls["find_branch"] == 2
    assert collector.api_calls["create_pull_request"] == 1
    assert len(collector.api_latencies["find_branch"]) == 2


def test_metrics_collector_get_summary():
    """Test getting metrics summary."""
    collector = MetricsCollector("run_123", "PROJ", "service")

    collector.start()
    collector.record_branch_created()
    collector.record_pull_request("https://bitbucket.example.com/pr/1")
    collector.record_api_call("find_branch", 150.0)
    collector.record_api_call("find_branch", 200.0)
    collector.complete(status="completed")

    summary = collector.get_metrics_summary()

    assert summary["run_id"] == "run_123"
    assert summary["project"] == "PROJ"
    assert summary["status"] == "completed"
    assert summary["branch_created"] is True
    assert summary["pull_request_url"] == "https://bitbucket.example.com/pr/1"
    assert summary["duration_ms"] is not None
    assert summary["api_latencies"]["find_branch"]["count"] == 2
    assert summary["api_latencies"]["find_branch"]["avg_ms"] == 175.0


@pytest.mark.asyncio
async def test_track_api_call_records_success():
    collector = MetricsCollector("run_123")
    logger = Mock()

    async with track_api_call(collector, "find_branch", "GET", "https://x/branches", logger) as call:
        call["status_code"] = 200

    assert collector.api_calls == {"find_branch": 1}
    logger.info.assert_called_once()
    assert logger.info.call_args.kwargs["extra"]["status_code"] == 200


@pytest.mark.asyncio
async def test_track_api_call_records_failure_and_reraises():
    collector = MetricsCollector("run_123")
    logger = Mock()

    with pytest.raises(RuntimeError):
        async with track_api_call(collector, "create_branch", "POST", "https://x/branches", logger):
            raise RuntimeError("refused")

    assert collector.api_calls == {"create_branch": 1}
    logger.error.assert_called_once()
    assert logger.error.call_args.kwargs["extra"]["error"] == "refused"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
