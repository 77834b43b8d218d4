"""
Application entry point — wires dependencies and starts the HTTP server.

Composition root: creates the concrete cryptography adapters and injects
them into the assembler and the analyzer. This is the ONLY place where
concrete adapter classes are instantiated; everything else depends on the
Protocol ports.

Responsibilities:
  1. Configure structlog
  2. Load and validate configuration from environment
  3. Create adapters and the two CSR services
  4. Serve the ASGI app with uvicorn
"""

from __future__ import annotations

import logging
import sys

import structlog

from csr_toolkit import __version__
from csr_toolkit.adapters.crypto import (
    CryptographyKeyProvider,
    CryptographyRequestParser,
    CryptographyRequestSigner,
)
from csr_toolkit.analyzer import RequestAnalyzer
from csr_toolkit.assembler import RequestAssembler
from csr_toolkit.config import AppSettings


def configure_structlog(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structlog for structured logging.

    In production: JSON lines to stdout (machine-readable).
    In development: colored, human-readable console output.
    """
    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


type _Services = tuple[RequestAssembler, RequestAnalyzer]


def create_services() -> _Services:
    """Instantiate the adapters and the two services built on them."""
    assembler = RequestAssembler(
        key_provider=CryptographyKeyProvider(),
        signer=CryptographyRequestSigner(),
    )
    analyzer = RequestAnalyzer(parser=CryptographyRequestParser())
    return assembler, analyzer


def main() -> None:
    """Load settings and serve the API."""
    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level, json_logs=not settings.is_development)
    log = structlog.get_logger()
    log.info(
        "app.starting",
        version=__version__,
        environment=settings.environment,
        host=settings.host,
        port=settings.port,
    )

    import uvicorn

    uvicorn.run(
        "csr_toolkit.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
