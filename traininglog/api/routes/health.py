"""
Liveness and readiness probes.

/health answers as long as the process is up. /health/ready also checks
that Snowflake credentials are configured and the warehouse answers, and
returns 503 until both hold.
"""

import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...config.settings import Settings
from ...infrastructure.snowflake.client import create_snowflake_connection
from ...infrastructure.snowflake.repositories import LogRepository
from ..dependencies import SettingsDep, snowflake_config

logger = logging.getLogger(__name__)

router = APIRouter()

READINESS_PROBE_USER = "__readiness__"


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ProbeResult(BaseModel):
    """Outcome of one readiness probe."""
    name: str
    ok: bool
    error: str | None = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ProbeResult]


def _probe_configuration(settings: Settings) -> ProbeResult:
    missing = settings.validate_required_fields()
    if missing:
        return ProbeResult(
            name="configuration",
            ok=False,
            error=f"Missing: {', '.join(missing)}",
        )
    return ProbeResult(name="configuration", ok=True)


def _probe_database(settings: Settings) -> ProbeResult:
    # A failed connect is reported as a probe result, never raised
    try:
        with create_snowflake_connection(
            config=snowflake_config(settings),
            mock_mode=settings.snowflake_mock_mode,
        ) as conn:
            LogRepository(conn).count_logs(READINESS_PROBE_USER)
    except Exception as e:
        logger.error("Snowflake readiness probe failed", extra={"error": str(e)})
        return ProbeResult(name="database", ok=False, error=str(e))
    return ProbeResult(name="database", ok=True)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness probe",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "snowflake_mock_mode": settings.snowflake_mock_mode,
            "schedule_timezone": settings.schedule_timezone,
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    responses={503: {"description": "A probe failed", "model": ReadinessResponse}},
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
) -> ReadinessResponse:
    checks = [_probe_configuration(settings), _probe_database(settings)]
    ready = all(check.ok for check in checks)

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Not ready",
            extra={"failed": [c.name for c in checks if not c.ok]}
        )

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )
