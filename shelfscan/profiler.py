"""Opt-in stage profiler for scans."""

import json
import logging
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class Profiler:
    """Singleton collecting per-stage durations across scans when enabled."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super(Profiler, cls).__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.enabled = False
        self.output_file: Optional[str] = None
        self.metrics = defaultdict(list)
        self.start_time: Optional[float] = None
        self._thread_local = threading.local()
        self._initialized = True

    def enable(self, output_file: str) -> None:
        """Enable profiling and set output file."""
        self.enabled = True
        self.output_file = output_file
        self.start_time = time.time()
        logger.info(f"Profiling enabled. Output will be written to {output_file}")

    def disable(self) -> None:
        self.enabled = False
        self.output_file = None
        with self._lock:
            self.metrics.clear()

    def start_timer(self, key: str) -> None:
        if not self.enabled:
            return
        if not hasattr(self._thread_local, 'timers'):
            self._thread_local.timers = {}
        self._thread_local.timers[key] = time.perf_counter()

    def stop_timer(self, key: str) -> None:
        if not self.enabled:
            return
        timers = getattr(self._thread_local, 'timers', {})
        if key not in timers:
            return
        self.add_metric(key, time.perf_counter() - timers.pop(key))

    @contextmanager
    def timed(self, key: str) -> Iterator[None]:
        """Time the enclosed block under ``key``."""
        self.start_timer(key)
        try:
            yield
        finally:
            self.stop_timer(key)

    def add_metric(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self.metrics[key].append(value)

    def summary(self) -> Dict[str, Any]:
        """Aggregate recorded durations per stage."""
        total = time.time() - self.start_time if self.start_time else 0.0
        summary: Dict[str, Any] = {"total_duration": total, "metrics": {}}

        with self._lock:
            for key, values in self.metrics.items():
                if not values:
                    continue
                summary["metrics"][key] = {
                    "count": len(values),
                    "total": sum(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }
        return summary

    def save_results(self) -> None:
        """Write the summary as JSON to the configured output file."""
        if not self.enabled or not self.output_file:
            return

        try:
            with open(self.output_file, 'w') as f:
                json.dump(self.summary(), f, indent=2)
            logger.info(f"Profiling results saved to {self.output_file}")
        except OSError as e:
            logger.error(f"Failed to save profiling results: {e}")


# Global instance
profiler = Profiler()
