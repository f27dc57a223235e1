"""Process-local counters served by ``GET /internal/metrics``."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


@dataclass
class RouteStats:
    count: int = 0
    errors: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    statuses: Counter = field(default_factory=Counter)

    def add(self, status_code: int, duration_ms: float) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)
        self.statuses[f"{status_code // 100}xx"] += 1
        if status_code >= 500:
            self.errors += 1

    def as_dict(self) -> dict:
        return {
            "count": self.count,
            "errors": self.errors,
            "avg_ms": round(self.total_ms / self.count, 2) if self.count else 0.0,
            "max_ms": round(self.max_ms, 2),
            "statuses": dict(self.statuses),
        }


class RequestMetrics:
    """Latency and status classes per route template."""

    def __init__(self) -> None:
        self._routes: dict[str, RouteStats] = {}
        self._lock = Lock()

    def record(self, method: str, route: str, status_code: int, duration_ms: float) -> None:
        with self._lock:
            self._routes.setdefault(f"{method} {route}", RouteStats()).add(status_code, duration_ms)

    def snapshot(self) -> dict[str, dict]:
        with self._lock:
            return {key: stats.as_dict() for key, stats in sorted(self._routes.items())}


class BotMetrics:
    """Inbound message outcomes per restaurant (processed, duplicate, conflict...)."""

    def __init__(self) -> None:
        self._outcomes: dict[str, Counter] = {}
        self._lock = Lock()

    def increment(self, outcome: str, restaurant_id: int | str | None = None) -> None:
        key = "unknown" if restaurant_id is None else str(restaurant_id)
        with self._lock:
            self._outcomes.setdefault(key, Counter())[outcome] += 1

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {key: dict(outcomes) for key, outcomes in self._outcomes.items()}


request_metrics = RequestMetrics()
bot_metrics = BotMetrics()
