"""
FastAPI + Uvicorn ASGI application — the HTTP surface of the CSR toolkit.

Endpoints:
  POST /api/generate   descriptor body → {success, csr, privateKey, publicKey}
  POST /api/analyze    {csr} → {success, subject, publicKey, extensions, ...}
  GET  /api/templates  available usage templates
  GET  /api/health     {status: "ok", version}

Error mapping:
  validation failure   → 400 {error: <specific reason>, code}
  generation failure   → 500 {error: "Failed to generate CSR"}
  parse failure        → 500 {error: "Failed to analyze CSR"}
Internal detail is added as `details` only when CSR_ENVIRONMENT=development.

Key generation is CPU-bound, so pipelines run in a worker thread to keep
the event loop responsive.

Entry point for production: uvicorn csr_toolkit.asgi:app --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from csr_toolkit import __version__
from csr_toolkit.analyzer import RequestAnalyzer
from csr_toolkit.assembler import RequestAssembler
from csr_toolkit.config import AppSettings
from csr_toolkit.descriptor import AnalyzeRequestBody, GenerateRequestBody, to_descriptor
from csr_toolkit.domain.models import AnalysisResult, GeneratedRequest
from csr_toolkit.execution import LoggingExecutionContext
from csr_toolkit.failure import ErrorCode, FailureDescription
from csr_toolkit.main import configure_structlog, create_services
from csr_toolkit.templates import TEMPLATES

log = structlog.get_logger()

GENERATE_FAILED_MESSAGE = "Failed to generate CSR"
ANALYZE_FAILED_MESSAGE = "Failed to analyze CSR"

_generate_ctx = LoggingExecutionContext(operation="GenerateCSR", error_code=ErrorCode.GENERATION_FAILED)
_analyze_ctx = LoggingExecutionContext(operation="AnalyzeCSR", error_code=ErrorCode.PARSE_FAILED)


# ─────────────────────── Response Builders ───────────────────────


def _failure_response(
    error: FailureDescription,
    generic_message: str,
    settings: AppSettings,
) -> JSONResponse:
    """
    Validation failures carry their own message (400); anything else is
    reported with a generic message (500), plus detail in development.
    """
    if error.code.is_validation:
        return JSONResponse(
            status_code=400,
            content={"error": error.message, "code": error.code.value},
        )
    content: dict[str, Any] = {"error": generic_message}
    if settings.is_development:
        content["details"] = error.detail() or error.message
    return JSONResponse(status_code=500, content=content)


def _generated_body(generated: GeneratedRequest) -> dict[str, Any]:
    return {
        "success": True,
        "csr": generated.csr_pem,
        "privateKey": generated.private_key_pem,
        "publicKey": generated.public_key_pem,
    }


def _analysis_body(analysis: AnalysisResult) -> dict[str, Any]:
    return {
        "success": True,
        "subject": analysis.subject,
        "publicKey": analysis.public_key.to_dict(),
        "extensions": analysis.extensions_dict(),
        "signatureAlgorithm": analysis.signature_algorithm,
        "verified": analysis.verified,
        "pem": analysis.pem,
    }


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"Invalid request body: {location}: {message}" if location else f"Invalid request body: {message}"


# ─────────────────────── Body Size Guard ───────────────────────


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than `max_body_bytes` with 413.

    A declared Content-Length is checked up front. Otherwise (chunked
    uploads) the body is read and counted before the app sees it, and the
    buffered messages are replayed once the total is known to fit.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > self.max_body_bytes:
                await self._reject(scope, receive, send, int(declared))
                return
            await self.app(scope, receive, send)
            return

        buffered: deque[Message] = deque()
        received = 0
        while True:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if buffered:
                return buffered.popleft()
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        log.warning(
            "asgi.body_too_large",
            received=size,
            limit=self.max_body_bytes,
            path=scope.get("path", ""),
        )
        response = JSONResponse(status_code=413, content={"error": "Request body too large"})
        await response(scope, receive, send)


# ─────────────────────── Application Factory ───────────────────────


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    The assembler and analyzer live on `app.state` so tests can swap them
    for mocks after construction.
    """
    settings = settings or AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_structlog(settings.log_level, json_logs=not settings.is_development)
        log.info(
            "asgi.startup",
            version=__version__,
            environment=settings.environment,
            cors_origins=len(settings.allowed_origins),
        )
        yield
        log.info("asgi.shutdown")

    app = FastAPI(
        title="csr-toolkit",
        description="PKCS#10 Certificate Signing Request generator and analyzer",
        version=__version__,
        lifespan=lifespan,
    )
    assembler, analyzer = create_services()
    app.state.settings = settings
    app.state.assembler = assembler
    app.state.analyzer = analyzer

    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Content-Type"],
        )

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    @app.exception_handler(RequestValidationError)
    async def body_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _first_validation_message(exc)
        log.info("asgi.invalid_body", path=request.url.path, reason=message)
        return JSONResponse(status_code=400, content={"error": message})

    # ─────────────────────── Routes ───────────────────────

    @app.post("/api/generate")
    async def generate(body: GenerateRequestBody, request: Request) -> JSONResponse:
        """Validate the descriptor, generate a key pair and return the signed CSR."""
        service: RequestAssembler = request.app.state.assembler
        result = await asyncio.to_thread(
            _generate_ctx.execute,
            lambda: service.generate(to_descriptor(body)),
        )
        return result.either(
            on_success=lambda generated: JSONResponse(content=_generated_body(generated)),
            on_failure=lambda error: _failure_response(error, GENERATE_FAILED_MESSAGE, settings),
        )

    @app.post("/api/analyze")
    async def analyze(body: AnalyzeRequestBody, request: Request) -> JSONResponse:
        """Decode a PEM CSR and report its subject, key, extensions and signature state."""
        if not body.csr or not body.csr.strip():
            return JSONResponse(status_code=400, content={"error": "CSR is required"})
        service: RequestAnalyzer = request.app.state.analyzer
        pem = body.csr
        result = await asyncio.to_thread(_analyze_ctx.execute, lambda: service.analyze(pem))
        return result.either(
            on_success=lambda analysis: JSONResponse(content=_analysis_body(analysis)),
            on_failure=lambda error: _failure_response(error, ANALYZE_FAILED_MESSAGE, settings),
        )

    @app.get("/api/templates")
    async def templates() -> dict[str, Any]:
        return {"templates": {name: t.to_dict() for name, t in TEMPLATES.items()}}

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    # For local testing: python -m uvicorn csr_toolkit.asgi:app --reload
    import uvicorn

    uvicorn.run("csr_toolkit.asgi:app", host="0.0.0.0", port=3000, reload=False, log_level="info")
