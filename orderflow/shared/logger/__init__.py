from orderflow.shared.logger.service_logger import ServiceLogger

__all__ = ["ServiceLogger"]
