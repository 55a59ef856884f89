"""In-process metrics for export and import runs."""

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class MetricsBackend(ABC):
    """Abstract base class for metrics backends."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass


class LoggerBackend(MetricsBackend):
    """Aggregates counters and timings in memory so a run can log a summary."""

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.timings: dict[str, list[float]] = defaultdict(list)

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.counters[self._format_key(name, tags)] += value

    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.timings[self._format_key(name, tags)].append(value)

    def _format_key(self, name: str, tags: dict[str, str] | None) -> str:
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"

    def get_summary(self) -> dict[str, Any]:
        """Return counters plus count/avg/min/max per timing."""
        timings = {
            name: {
                "count": len(values),
                "avg": sum(values) / len(values),
                "min": min(values),
                "max": max(values),
            }
            for name, values in self.timings.items()
            if values
        }
        return {"counters": dict(self.counters), "timings": timings}


class MetricsCollector:
    """Central collector for migration metrics."""

    def __init__(self, backend: MetricsBackend | None = None) -> None:
        self.backend = backend or LoggerBackend()

    def count_accounts(self, direction: str, status: str, count: int = 1) -> None:
        """
        Record accounts moved in one direction.

        Args:
            direction: "export" or "import"
            status: "ok" or "failed"
            count: Number of accounts
        """
        if count:
            self.backend.increment(
                "accounts_total", count, tags={"direction": direction, "status": status}
            )

    def count_request(self, endpoint: str, outcome: str) -> None:
        self.backend.increment(
            "identity_api_requests_total", tags={"endpoint": endpoint, "outcome": outcome}
        )

    def count_retry(self, endpoint: str) -> None:
        self.backend.increment("identity_api_retries_total", tags={"endpoint": endpoint})

    def record_latency(self, endpoint: str, duration_ms: float) -> None:
        self.backend.timing("identity_api_latency_ms", duration_ms, tags={"endpoint": endpoint})

    def get_summary(self) -> dict[str, Any]:
        """Get summary from backend if supported."""
        if isinstance(self.backend, LoggerBackend):
            return self.backend.get_summary()
        return {}

    def log_summary(self) -> None:
        logger.info("Metrics summary", **self.get_summary())


_GLOBAL_COLLECTOR: MetricsCollector | None = None


def get_global_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _GLOBAL_COLLECTOR
    if _GLOBAL_COLLECTOR is None:
        _GLOBAL_COLLECTOR = MetricsCollector()
    return _GLOBAL_COLLECTOR


def reset_global_collector() -> None:
    """Drop the global collector so the next run starts from zero."""
    global _GLOBAL_COLLECTOR
    _GLOBAL_COLLECTOR = None
