import time
import threading
from typing import Dict, Optional
from collections import deque
import statistics


class RpcMetrics:
    """Track per-method round-trip times and failures of one RPC proxy."""

    def __init__(self, window_size: int = 50):
        self.window_size = window_size
        self.rtt_samples: Dict[str, deque] = {}
        self.failure_counts: Dict[str, int] = {}
        self.total_calls: Dict[str, int] = {}
        self.last_success: Optional[float] = None
        self._lock = threading.Lock()

    def record_success(self, method: str, rtt: float):
        """Record a call that received a well-formed response."""
        with self._lock:
            if method not in self.rtt_samples:
                self.rtt_samples[method] = deque(maxlen=self.window_size)
            self.rtt_samples[method].append(rtt)
            self.total_calls[method] = self.total_calls.get(method, 0) + 1
            self.last_success = time.monotonic()

    def record_failure(self, method: str):
        """Record a call that could not reach the server or got garbage back."""
        with self._lock:
            self.failure_counts[method] = self.failure_counts.get(method, 0) + 1
            self.total_calls[method] = self.total_calls.get(method, 0) + 1

    def get_avg_rtt(self, method: str) -> Optional[float]:
        samples = self.rtt_samples.get(method)
        if samples:
            return statistics.mean(samples)
        return None

    def get_failure_rate(self, method: Optional[str] = None) -> float:
        """Failure rate for one method, or across all methods when method is None."""
        if method is None:
            total = sum(self.total_calls.values())
            failures = sum(self.failure_counts.values())
        else:
            total = self.total_calls.get(method, 0)
            failures = self.failure_counts.get(method, 0)
        if total == 0:
            return 0.0
        return failures / total

    def merge(self, other: 'RpcMetrics') -> 'RpcMetrics':
        """Return a new RpcMetrics holding the samples of both."""
        merged = RpcMetrics(max(self.window_size, other.window_size))
        for source in (self, other):
            for method, samples in source.rtt_samples.items():
                merged.rtt_samples.setdefault(method, deque(maxlen=merged.window_size)).extend(samples)
            for method, count in source.total_calls.items():
                merged.total_calls[method] = merged.total_calls.get(method, 0) + count
            for method, count in source.failure_counts.items():
                merged.failure_counts[method] = merged.failure_counts.get(method, 0) + count
            if source.last_success is not None:
                merged.last_success = max(merged.last_success or 0.0, source.last_success)
        return merged

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        """Summarize every method seen so far, keyed by method name."""
        return {
            method: {
                'calls': total,
                'failures': self.failure_counts.get(method, 0),
                'avg_rtt': self.get_avg_rtt(method) or 0.0,
            }
            for method, total in self.total_calls.items()
        }
