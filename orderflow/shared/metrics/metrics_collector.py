import threading
from typing import Dict, Optional

from orderflow.shared.logger import ServiceLogger


class MetricsCollector:
    """
    Counter store shared by a component and its collaborators.
    Increments are thread-safe; ``report`` emits a structured log line.
    """

    def __init__(self, logger: Optional[ServiceLogger] = None, namespace: str = ""):
        self.logger = logger or ServiceLogger("MetricsCollector")
        self.namespace = namespace
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, key: str, amount: int = 1):
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def get(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def report(self):
        """Emit structured log of current counters"""
        counters = self.snapshot()
        if counters:
            self.logger.info("Metrics update", namespace=self.namespace, **counters)
