"""Rendering of service results as HTTP responses."""

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import ValidationError
from ..services.base_service import describe_validation_error
from ..services.result import Result


def render(result: Result) -> JSONResponse:
    """Turn a ``Result`` into ``{"message", "data"}`` or ``{"message", "error"}``."""
    content = {"message": result.message}
    if result.ok:
        content["data"] = jsonable_encoder(result.data)
    else:
        content["error"] = result.error.value
    headers = {"Retry-After": "1"} if result.retryable else None
    return JSONResponse(status_code=result.status, content=content, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as ``validation`` failures.

    The rejected input is not echoed back: values such as ``Infinity``
    have no JSON representation.
    """
    return render(Result.failure(ValidationError(describe_validation_error(exc))))
