# servicehub/main.py
"""
FastAPI application exposing the booking lifecycle and settlement core
as a narrow internal RPC surface.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import settings
from .core.exceptions import DomainException
from .database import init_db
from .routes import bookings, internal, reviews, wallets


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "Starting servicehub core %s (environment=%s, currency=%s)",
        __version__,
        settings.environment,
        settings.currency,
    )
    init_db()
    yield
    logger.info("Shutting down servicehub core")


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Backstop for domain errors raised outside a route's own handling."""
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title="servicehub core",
        version=__version__,
        lifespan=app_lifespan,
    )
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.include_router(bookings.router)
    app.include_router(reviews.router)
    app.include_router(wallets.router)
    app.include_router(internal.router)
    return app


app = create_app()
