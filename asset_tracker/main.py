"""Application wiring: logging, middleware, error handlers, routers, startup."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import settings
from .core.errors import (
    AssetTrackerError,
    domain_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.logging import configure_logging
from .db.migrate import run_migrations
from .db.seed import seed_database
from .db.session import Base, SessionLocal, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the models registers every table on ``Base.metadata``.
from . import models as _models  # noqa: F401
from .routers import (
    api_assets,
    api_auth,
    api_config,
    api_holding,
    api_reports,
    api_search,
    api_settings,
    api_users,
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version=__version__)

# Starlette runs middleware in reverse order of registration, so the request id
# is assigned before anything else sees the request.
app.add_middleware(SecurityHeadersMiddleware)
if settings.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AssetTrackerError, domain_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

for module in (api_auth, api_assets, api_holding, api_search, api_reports, api_settings, api_config, api_users):
    app.include_router(module.router)

Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


@app.on_event("startup")
def _init_database() -> None:
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    if settings.SEED_ON_STARTUP:
        with SessionLocal() as db:
            seed_database(db, settings)
    logger.info("app.started", extra={"extra_data": {"version": __version__, "seeded": settings.SEED_ON_STARTUP}})


def run() -> None:
    import uvicorn

    uvicorn.run("asset_tracker.main:app", host=settings.HOST, port=settings.PORT)
