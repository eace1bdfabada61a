from orderflow.shared.metrics.metrics_collector import MetricsCollector

__all__ = ["MetricsCollector"]
