import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import EditoHubError

logger = logging.getLogger("editohub.errors")


def _app_error_handler(request: Request, exc: EditoHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body/field errors are reported as 400 with the offending fields."""
    fields = [".".join(str(p) for p in err.get("loc", [])[1:]) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "Missing or invalid fields", "code": "VALIDATION_ERROR", "details": {"fields": fields}},
    )


def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "code": "INTERNAL_ERROR"})


def register_exception_handlers(app: FastAPI) -> None:
    """Every handler-level error ends up as a structured JSON error response."""
    app.add_exception_handler(EditoHubError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
