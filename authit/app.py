"""FastAPI application for Authit."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_models
from .errors import AuthitError
from .logs import configure_logging

logger = logging.getLogger(__name__)


def check_production_settings() -> None:
    if not settings.is_production:
        return
    missing = [
        name
        for name, value in (
            ("AUTHIT_SESSION_SECRET", settings.session_secret),
            ("AUTHIT_KANIDM_TOKEN", settings.kanidm_token),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing required settings in production: {', '.join(missing)}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    check_production_settings()
    await init_models()
    logger.info("Authit started (kanidm=%s, admin_group=%s)", settings.idm_url, settings.admin_group)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(AuthitError)
async def authit_error_handler(request: Request, exc: AuthitError):
    public = bool(getattr(request.state, "public_surface", False))
    return JSONResponse(exc.payload(public=public), status_code=exc.http_status(public=public))


# Import and register routers
from .routers import api, auth, health, home, provision  # noqa: E402

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(home.router)
app.include_router(api.router)
app.include_router(provision.router)
