# orderflow/config/logger.py

import os
from typing import Optional

from orderflow.config.settings import Settings
from orderflow.shared.logger import ServiceLogger

settings = Settings()

# Ensure the log directory exists
log_dir = os.path.dirname(settings.app.log_file)
if log_dir and not os.path.exists(log_dir):
    os.makedirs(log_dir, exist_ok=True)


def get_logger(name: Optional[str] = None) -> ServiceLogger:
    """
    Return a ServiceLogger wired to the configured log file and level.
    Loggers sharing a name share handlers, so this is cheap to call per component.
    """
    return ServiceLogger(
        name=name or settings.app.app_name,
        log_file=settings.app.log_file or None,
        level=settings.app.log_level,
    )


# Application-wide logger for module level use
logger: ServiceLogger = get_logger()
