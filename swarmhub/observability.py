"""swarmhub Observability Module.

Provides structured logging and metrics collection for the coordination hub.

Usage:
    from swarmhub.observability import configure_logging, metrics

    configure_logging("DEBUG")

    with metrics.measure("report_issue"):
        hub.report_issue(agent_id, {...})

    print(metrics.get_summary())
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================================
# Structured Logging
# ============================================================================

class StructuredFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add structured data if present
        if hasattr(record, "structured_data"):
            log_data.update(record.structured_data)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(level: Optional[str] = None, json_output: bool = True) -> logging.Logger:
    """Attach a single stream handler to the ``swarmhub`` logger.

    Level defaults to the ``SWARMHUB_LOG_LEVEL`` env var, then INFO. Calling
    this twice replaces the handler instead of stacking a second one.
    """
    level = (level or os.getenv("SWARMHUB_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger("swarmhub")
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_swarmhub_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._swarmhub_handler = True
    root.addHandler(handler)
    return root


# ============================================================================
# Metrics Collector
# ============================================================================

@dataclass
class OperationMetrics:
    """Metrics for a single operation type."""
    count: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float = float("inf")
    max_latency_ms: float = 0.0
    errors: int = 0
    last_operation: Optional[str] = None

    def record(self, latency_ms: float, error: bool = False):
        self.count += 1
        self.total_latency_ms += latency_ms
        self.min_latency_ms = min(self.min_latency_ms, latency_ms)
        self.max_latency_ms = max(self.max_latency_ms, latency_ms)
        if error:
            self.errors += 1
        self.last_operation = datetime.now(timezone.utc).isoformat()

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.count if self.count > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "min_latency_ms": round(self.min_latency_ms, 2) if self.count > 0 else 0,
            "max_latency_ms": round(self.max_latency_ms, 2),
            "errors": self.errors,
            "error_rate": round(self.errors / self.count, 4) if self.count > 0 else 0,
            "last_operation": self.last_operation,
        }


@dataclass
class HubMetrics:
    """Coordination-specific counters."""
    findings_shared: int = 0
    issues_reported: int = 0
    fixes_reported: int = 0
    issues_resolved: int = 0
    recommendations_made: int = 0
    routing_abstentions: int = 0
    index_degradations: int = 0
    flush_failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "findings_shared": self.findings_shared,
            "issues_reported": self.issues_reported,
            "fixes_reported": self.fixes_reported,
            "issues_resolved": self.issues_resolved,
            "recommendations_made": self.recommendations_made,
            "routing_abstentions": self.routing_abstentions,
            "index_degradations": self.index_degradations,
            "flush_failures": self.flush_failures,
        }


class MetricsCollector:
    """Collects and exposes hub metrics."""

    def __init__(self):
        self._lock = threading.Lock()
        self._operations: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._hub = HubMetrics()
        self._start_time = datetime.now(timezone.utc)

    def record_operation(self, operation: str, latency_ms: float, error: bool = False):
        """Record an operation metric."""
        with self._lock:
            self._operations[operation].record(latency_ms, error)

    def increment(self, counter: str, amount: int = 1):
        """Bump one of the ``HubMetrics`` counters by name."""
        with self._lock:
            setattr(self._hub, counter, getattr(self._hub, counter) + amount)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
            return {
                "uptime_seconds": round(uptime, 2),
                "operations": {
                    op: m.to_dict()
                    for op, m in self._operations.items()
                },
                "hub": self._hub.to_dict(),
            }

    def reset(self):
        with self._lock:
            self._operations.clear()
            self._hub = HubMetrics()
            self._start_time = datetime.now(timezone.utc)

    @contextmanager
    def measure(self, operation: str):
        """Context manager to measure operation latency.

        Usage:
            with metrics.measure("recommend"):
                decision = router.recommend(task)
        """
        start = time.perf_counter()
        error = False
        try:
            yield
        except Exception:
            error = True
            raise
        finally:
            latency_ms = (time.perf_counter() - start) * 1000
            self.record_operation(operation, latency_ms, error=error)


# Global metrics collector
metrics = MetricsCollector()
