"""Typed pipeline errors and their JSON rendering."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class PipelineError(Exception):
    """Recoverable error surfaced to the caller of a pipeline operation."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "pipeline_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def payload(self) -> Dict[str, Any]:
        return build_error_payload(self.code, self.message, self.details)


class ValidationError(PipelineError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFoundError(PipelineError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(PipelineError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ConcurrencyError(PipelineError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "concurrency_error"


async def pipeline_error_handler(_: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)
