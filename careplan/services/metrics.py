"""Thread-safe in-memory counters for the /metrics endpoint."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field

MAX_LATENCY_SAMPLES = 10_000

_PERCENTILES = {"p50": 0.50, "p90": 0.90, "p99": 0.99}


def _percentile(ordered: list[float], q: float) -> float:
    """Nearest-rank percentile of an already sorted, non-empty list."""
    return round(ordered[min(int(len(ordered) * q), len(ordered) - 1)], 2)


@dataclass
class MetricsCollector:
    """Request, estimator and loader counters plus latency samples.

    All mutation goes through ``_lock``. Only the most recent
    ``max_latency_samples`` latencies are kept.
    """

    max_latency_samples: int = field(default=MAX_LATENCY_SAMPLES, repr=False)

    total_requests: int = field(default=0, init=False)
    status_codes: dict[int, int] = field(default_factory=dict, init=False)
    estimates: dict[str, int] = field(default_factory=dict, init=False)
    estimate_failures: dict[str, int] = field(default_factory=dict, init=False)
    reference_loads: int = field(default=0, init=False)
    reference_load_failures: int = field(default=0, init=False)

    _latencies: deque[float] = field(init=False, repr=False)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _start_time: float = field(default_factory=time.monotonic, init=False, repr=False)

    def __post_init__(self) -> None:
        self._latencies = deque(maxlen=self.max_latency_samples)

    # -- Counters ------------------------------------------------------------

    def inc_request(self, status_code: int) -> None:
        with self._lock:
            self.total_requests += 1
            self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1

    def inc_estimate(self, risk_level: str) -> None:
        with self._lock:
            self.estimates[risk_level] = self.estimates.get(risk_level, 0) + 1

    def inc_estimate_failure(self, error_type: str) -> None:
        with self._lock:
            self.estimate_failures[error_type] = (
                self.estimate_failures.get(error_type, 0) + 1
            )

    def inc_reference_load(self, success: bool) -> None:
        with self._lock:
            if success:
                self.reference_loads += 1
            else:
                self.reference_load_failures += 1

    # -- Latency -------------------------------------------------------------

    def record_latency(self, ms: float) -> None:
        with self._lock:
            self._latencies.append(ms)

    def get_latency_percentiles(self) -> dict[str, float]:
        with self._lock:
            return self._percentiles_unlocked()

    def _percentiles_unlocked(self) -> dict[str, float]:
        """p50/p90/p99 over the retained samples; caller holds ``_lock``."""
        if not self._latencies:
            return dict.fromkeys(_PERCENTILES, 0.0)
        ordered = sorted(self._latencies)
        return {name: _percentile(ordered, q) for name, q in _PERCENTILES.items()}

    # -- Snapshot / reset ----------------------------------------------------

    def uptime_seconds(self) -> float:
        return round(time.monotonic() - self._start_time, 2)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                "total_requests": self.total_requests,
                "status_codes": dict(self.status_codes),
                "estimates": {
                    "by_risk_level": dict(self.estimates),
                    "failures": dict(self.estimate_failures),
                },
                "reference_data": {
                    "loads": self.reference_loads,
                    "load_failures": self.reference_load_failures,
                },
                "latency_ms": self._percentiles_unlocked(),
            }

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.status_codes.clear()
            self.estimates.clear()
            self.estimate_failures.clear()
            self.reference_loads = 0
            self.reference_load_failures = 0
            self._latencies.clear()
            self._start_time = time.monotonic()


metrics = MetricsCollector()
