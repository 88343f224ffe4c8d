import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("repo_recon.api")


class ApiError(Exception):
    """Business error rendered as the standard ``{"error": {...}}`` envelope."""

    def __init__(self, status_code: int, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details or []


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def error_payload(message: str, details: list[str] | None = None, *, request_id: str | None = None) -> dict:
    payload: dict = {"error": {"message": message, "details": details or []}}
    if request_id:
        payload["request_id"] = request_id
    return payload


def _respond(request: Request, status_code: int, payload: dict) -> JSONResponse:
    request_id = _get_request_id(request)
    response = JSONResponse(status_code=status_code, content=payload)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        payload = error_payload(exc.message, exc.details, request_id=_get_request_id(request))
        return _respond(request, exc.status_code, payload)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        payload = error_payload(str(exc.detail), request_id=_get_request_id(request))
        return _respond(request, exc.status_code, payload)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            details.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        payload = error_payload("Validation failed", details, request_id=_get_request_id(request))
        return _respond(request, 422, payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = _get_request_id(request)
        logger.exception("unhandled_error request_id=%s", request_id, exc_info=exc)
        return _respond(request, 500, error_payload("Internal Server Error", request_id=request_id))
