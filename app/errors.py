"""Typed failures raised by the lifecycle services.

Each error is an ``HTTPException`` so routers can let it propagate unchanged.
``detail`` is always a dict with a machine-readable ``reason`` and a
human-readable ``message``; extra keys name the offending records.
"""
from fastapi import HTTPException


class LifecycleError(HTTPException):
    status_code = 400

    def __init__(self, reason: str, message: str, **context):
        self.reason = reason
        self.context = context
        super().__init__(
            status_code=self.status_code,
            detail={"reason": reason, "message": message, **context},
        )

    @property
    def message(self) -> str:
        return self.detail["message"]


class NotFoundError(LifecycleError):
    status_code = 404


class InvalidStateError(LifecycleError):
    status_code = 409


class ConflictError(LifecycleError):
    status_code = 409


class ValidationError(LifecycleError):
    status_code = 422
