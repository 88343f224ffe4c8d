import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repo_recon.api.errors import error_payload, register_exception_handlers
from repo_recon.api.v1.router import router as v1_router
from repo_recon.config import settings
from repo_recon.progress.bus import close_progress_bus

logger = logging.getLogger("repo_recon.api")

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), camera=(), microphone=()",
    "Content-Security-Policy": "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'",
}
HSTS_HEADER = "max-age=31536000; includeSubDomains"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_progress_bus()


def _content_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw)


def create_app() -> FastAPI:
    app = FastAPI(title="RepoRecon API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-User-Token", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        """Reject oversized API payloads before authentication or body parsing."""

        length = _content_length(request)
        if request.url.path.startswith("/api/") and length is not None and length > settings.max_request_bytes:
            logger.info("request_too_large path=%s content_length=%s", request.url.path, length)
            payload = error_payload(
                "Request payload too large",
                ["Maximum request size is 1MB"],
                request_id=getattr(request.state, "request_id", None),
            )
            payload["error"]["max_size_bytes"] = settings.max_request_bytes
            return JSONResponse(status_code=413, content=payload)
        return await call_next(request)

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER
        return response

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        If the caller provides X-Request-ID we reuse it, otherwise a UUID4 is minted.
        """

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "access request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()
