"""
Vangarments upgrade API.

Serves feature entitlement checks, usage limits and upgrade flows. The
gateway authenticates callers and forwards the user id in X-User-Id.
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from vangarments.api.routes import upgrade
from vangarments.config.upgrade_settings import get_upgrade_settings_loader
from vangarments.database.session import database_url_from_env, reset_engine

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A broken upgrade_settings.yml should fail the deploy, not the first request
    settings = get_upgrade_settings_loader()
    logger.info("Upgrade API starting", extra={"currency": settings.get_currency()})

    url = database_url_from_env()
    if url is None:
        logger.error("DATABASE_URL is not set; subscription lookups will return 503")
    else:
        logger.info("Database configured", extra={"db_host": url.rsplit("@", 1)[-1]})

    yield

    reset_engine()
    logger.info("Upgrade API stopped")


app = FastAPI(
    title="Vangarments Upgrade API",
    description="Feature entitlements, usage limits and upgrade flows",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(upgrade.router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Lookup and storage failures surface here as 500s."""
    logger.error(
        "Unhandled exception",
        extra={
            "user_id": request.headers.get("X-User-Id"),
            "path": request.url.path,
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "An unexpected error occurred"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8000)),
        reload=os.getenv("ENV") == "development",
    )
