import inspect
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog


class ServiceLogger:
    """
    Key/value logger used by every orderflow component.

    Writes a colored single line to the console and, when a log file is
    configured, a JSON document per event to that file. Instances sharing a
    name share their handlers; bound context is per instance.
    """

    _handler_cache: Dict[str, tuple] = {}

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET_COLOR = "\033[0m"

    def __init__(
        self,
        name: str = "orderflow",
        log_file: Optional[str] = None,
        level: str = "INFO",
        context: Optional[dict] = None,
    ):
        self.name = name
        self.context = context or {}

        if name not in self._handler_cache:
            self._handler_cache[name] = self._build(name, log_file, level)
        console_logger, file_logger = self._handler_cache[name]

        self.console_logger = console_logger.bind(logger=name, **self.context)
        self.file_logger = file_logger.bind(logger=name, **self.context) if file_logger else None

    @classmethod
    def _build(cls, name: str, log_file: Optional[str], level: str):
        numeric_level = getattr(logging, level.upper(), logging.INFO)

        def add_caller(logger, method_name, event_dict):
            frame = inspect.currentframe()
            while frame:
                module_name = frame.f_globals.get("__name__", "")
                if not module_name.startswith(("structlog", "logging")) and not module_name.endswith("service_logger"):
                    event_dict["module"] = module_name
                    event_dict["function"] = frame.f_code.co_name
                    event_dict["lineno"] = frame.f_lineno
                    break
                frame = frame.f_back
            return event_dict

        def render_console(logger, method_name, event_dict):
            ts = event_dict.pop("timestamp", None) or datetime.now(timezone.utc).isoformat()
            level_name = event_dict.pop("level", method_name).upper()
            logger_name = event_dict.pop("logger", name)
            msg = event_dict.pop("event", "")
            module = event_dict.pop("module", "")
            func = event_dict.pop("function", "")
            lineno = event_dict.pop("lineno", "")

            fields = " ".join(f"{k}={v}" for k, v in event_dict.items())
            caller = ""
            if level_name in ("WARNING", "ERROR", "CRITICAL") and module:
                caller = f" ({module}.{func}:{lineno})"

            color = cls.LEVEL_COLORS.get(level_name, "")
            return f"{color}{ts} [{logger_name}] {level_name}: {msg} {fields}{caller}{cls.RESET_COLOR}"

        console = logging.getLogger(f"{name}.console")
        console.setLevel(numeric_level)
        console.propagate = False
        if not console.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            console.addHandler(handler)

        console_logger = structlog.wrap_logger(
            console,
            processors=[
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.stdlib.add_log_level,
                add_caller,
                structlog.processors.format_exc_info,
                render_console,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
        )

        file_logger = None
        if log_file:
            file_ = logging.getLogger(f"{name}.file")
            file_.setLevel(numeric_level)
            file_.propagate = False
            if not any(isinstance(h, logging.FileHandler) for h in file_.handlers):
                fh = logging.FileHandler(log_file, encoding="utf-8")
                fh.setFormatter(logging.Formatter("%(message)s"))
                file_.addHandler(fh)

            file_logger = structlog.wrap_logger(
                file_,
                processors=[
                    structlog.processors.TimeStamper(fmt="ISO"),
                    structlog.stdlib.add_log_level,
                    add_caller,
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.format_exc_info,
                    structlog.processors.UnicodeDecoder(),
                    structlog.processors.JSONRenderer(default=str),
                ],
                wrapper_class=structlog.stdlib.BoundLogger,
            )

        return console_logger, file_logger

    def bind(self, **context) -> "ServiceLogger":
        """Return a logger for the same sink with extra context on every line."""
        return ServiceLogger(self.name, context={**self.context, **context})

    # ----------------------------
    # Logging methods
    # ----------------------------
    def _emit(self, method: str, msg: str, **fields):
        getattr(self.console_logger, method)(msg, **fields)
        if self.file_logger is not None:
            getattr(self.file_logger, method)(msg, **fields)

    def debug(self, msg: str, **fields):
        self._emit("debug", msg, **fields)

    def info(self, msg: str, **fields):
        self._emit("info", msg, **fields)

    def warning(self, msg: str, **fields):
        self._emit("warning", msg, **fields)

    def error(self, msg: str, **fields):
        self._emit("error", msg, **fields)

    def critical(self, msg: str, **fields):
        self._emit("critical", msg, **fields)

    def exception(self, msg: str, **fields):
        self._emit("exception", msg, **fields)
