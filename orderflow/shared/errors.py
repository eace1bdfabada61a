"""
Closed set of failure kinds raised across orderflow services.

Errors that happen before a response is sent (validation, persistence, lookups)
are mapped to ``{"error", "message"}`` JSON bodies by ``register_error_handlers``.
Publish and consume failures happen after the response and are only ever logged.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    VALIDATION_FAILURE = "validation_failure"
    PERSISTENCE_FAILURE = "persistence_failure"
    NOT_FOUND = "not_found"
    PUBLISH_FAILURE = "publish_failure"
    CONSUME_FAILURE = "consume_failure"


class OrderFlowError(Exception):
    kind: ErrorKind
    status_code: int = 500
    error: str = "Internal error"
    default_message: str = "Unexpected failure"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        order_id: Optional[int] = None,
        user_id: Optional[int] = None,
        error: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.order_id = order_id
        self.user_id = user_id
        if error is not None:
            self.error = error
        super().__init__(self.message)

    @property
    def context(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {"kind": self.kind.value}
        if self.order_id is not None:
            ctx["order_id"] = self.order_id
        if self.user_id is not None:
            ctx["user_id"] = self.user_id
        return ctx

    def to_payload(self) -> Dict[str, str]:
        return {"error": self.error, "message": self.message}


class ValidationFailure(OrderFlowError):
    """The referenced user does not exist or could not be confirmed in time."""
    kind = ErrorKind.VALIDATION_FAILURE
    status_code = 400
    error = "User not found"
    default_message = "Cannot create order for non-existent user"


class PersistenceFailure(OrderFlowError):
    kind = ErrorKind.PERSISTENCE_FAILURE
    status_code = 500
    error = "Persistence error"
    default_message = "Could not store the record"


class NotFound(OrderFlowError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    error = "Not found"
    default_message = "Record does not exist"

    @classmethod
    def for_entity(cls, entity: str, key: Any, **context) -> "NotFound":
        return cls(f"{entity} {key} does not exist", error=f"{entity} not found", **context)


class PublishFailure(OrderFlowError):
    kind = ErrorKind.PUBLISH_FAILURE
    error = "Publish failed"
    default_message = "Broker did not accept the order event"


class ConsumeFailure(OrderFlowError):
    kind = ErrorKind.CONSUME_FAILURE
    error = "Consume failed"
    default_message = "Order event could not be handled"


async def orderflow_error_handler(request: Request, exc: OrderFlowError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderFlowError, orderflow_error_handler)
