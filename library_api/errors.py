import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AuthError(HTTPException):
    def __init__(self, detail="Invalid email or password", status_code=401):
        super().__init__(status_code=status_code, detail=detail)


class MissingCredentialsError(AuthError):
    def __init__(self, detail="Access denied, token missing"):
        super().__init__(detail=detail, status_code=401)


class InvalidTokenError(AuthError):
    def __init__(self, detail="Invalid or expired token"):
        super().__init__(detail=detail, status_code=403)


class ForbiddenError(HTTPException):
    def __init__(self, detail="Access denied, admin rights required"):
        super().__init__(status_code=403, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail="Not found"):
        super().__init__(status_code=404, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail):
        super().__init__(status_code=400, detail=detail)


class ServerError(HTTPException):
    def __init__(self, detail="Internal server error"):
        super().__init__(status_code=500, detail=detail)


def _field_errors(exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        errors.append({
            "msg": err.get("msg"),
            "path": ".".join(str(part) for part in loc[1:]),
            "location": loc[0] if loc else None,
        })
    return errors


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # a bare starlette 404 means no route matched
    if type(exc) is StarletteHTTPException and exc.status_code == 404:
        logger.warning(f"Route not found: {request.method} {request.url}")
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": _field_errors(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unexpected error on {request.method} {request.url}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
