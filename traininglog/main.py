"""
Training Log API entry point.

create_app() builds a fully wired application; tests call it directly and
swap dependencies through app.dependency_overrides. The module-level `app`
is what the ASGI server loads:

    uvicorn traininglog.main:app --reload
    gunicorn traininglog.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import health, schedule, skipped_days, stats
from .config.settings import get_settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)

# (router, prefix, tag) in the order they appear in the docs
ROUTERS = [
    (health.router, "/health", "Health"),
    (stats.router, "/api/v1/stats", "Stats"),
    (skipped_days.router, "/api/v1/skipped-days", "Skipped Days"),
    (schedule.router, "/api/v1/schedule", "Schedule"),
]

DESCRIPTION = """
Streaks and schedule compliance for coach/athlete training logs.

## Authentication

Send an API key in `X-API-Key`. The auth service in front of this API
forwards the signed-in athlete in `X-User-Id`.

## Streaks

A streak counts consecutive scheduled training days with at least one log.
Today's training day doesn't count either way until its window closes.
Skipping a day with a reason keeps the streak alive without extending it.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report the effective configuration on startup."""
    settings = get_settings()

    logger.info(
        "Training Log API starting",
        extra={
            "version": settings.api_version,
            "snowflake_mock_mode": settings.snowflake_mock_mode,
            "schedule_timezone": settings.schedule_timezone,
            "log_grace_hours": settings.log_grace_hours,
        }
    )

    missing = settings.validate_required_fields()
    if missing:
        logger.error(
            "Snowflake credentials incomplete, database calls will fail",
            extra={"missing_fields": missing}
        )

    yield

    logger.info("Training Log API stopped")


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure with its traceback; clients get a generic 500."""
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        },
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Something went wrong"})


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description=DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    app.add_exception_handler(Exception, unhandled_error)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": settings.api_title,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    logger.debug(
        "Application created",
        extra={"routes": [prefix for _, prefix, _ in ROUTERS]}
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "traininglog.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=get_settings().log_level.lower(),
    )
