"""HTTP error translation shared by every router.

Domain errors raised inside a handler become JSON responses: validation
failures are a 400 with the per-field messages, unknown ids a 404.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError


async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"errors": exc.messages})


async def not_found_handler(request: Request, exc: ObjectNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
