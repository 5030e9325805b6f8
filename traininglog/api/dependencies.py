"""
Request-scoped dependencies for the route handlers.

Each request gets one Snowflake connection (FastAPI caches a dependency
per request, so every repository below shares it), repositories over that
connection, the clock and a StreakService wired to all of them. Tests
replace get_settings, get_connection or get_clock through
app.dependency_overrides.
"""

import logging
from typing import Annotated, Generator, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.streaks.periods import PeriodCalculator
from ..core.streaks.service import Clock, StreakService, utc_now
from ..infrastructure.snowflake.client import (
    SnowflakeConfig,
    SnowflakeConnection,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories import (
    LogRepository,
    SkipRepository,
    TrainingSlotRepository,
)

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: Optional[str] = Security(api_key_header),
) -> str:
    """The caller's API key, or 403."""
    if not api_key or api_key not in settings.api_keys_list:
        logger.warning(
            "Rejected API key",
            extra={"provided": bool(api_key), "key_prefix": (api_key or "")[:4]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing API key",
        )
    return api_key

async def get_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    The athlete the request is about.

    Session handling lives in the auth service in front of this API; it
    forwards the resolved user in X-User-Id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return x_user_id.strip()


# ---------------------------------------------------------------------------
# Snowflake
# ---------------------------------------------------------------------------

def snowflake_config(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


def get_connection(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[SnowflakeConnection, None, None]:
    """One connection per request, closed when the response is sent."""
    with create_snowflake_connection(
        config=snowflake_config(settings),
        mock_mode=settings.snowflake_mock_mode,
    ) as conn:
        yield conn


def get_log_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_connection)],
) -> LogRepository:
    return LogRepository(conn)


def get_slot_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_connection)],
) -> TrainingSlotRepository:
    return TrainingSlotRepository(conn)


def get_skip_repository(
    conn: Annotated[SnowflakeConnection, Depends(get_connection)],
) -> SkipRepository:
    return SkipRepository(conn)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_clock() -> Clock:
    """The wall clock. Tests override this with a fixed instant."""
    return utc_now


def get_streak_service(
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
    slots: Annotated[TrainingSlotRepository, Depends(get_slot_repository)],
    logs: Annotated[LogRepository, Depends(get_log_repository)],
    skips: Annotated[SkipRepository, Depends(get_skip_repository)],
) -> StreakService:
    """
    Provide a StreakService wired to the request's repositories.

    The service is stateless, so we create a new instance per request.
    """
    calculator = PeriodCalculator(
        tz=settings.schedule_tz,
        grace=settings.log_grace,
        max_periods=settings.streak_max_periods,
    )

    return StreakService(
        slot_source=slots,
        log_store=logs,
        skip_store=skips,
        clock=clock,
        calculator=calculator,
    )


# ---------------------------------------------------------------------------
# Annotated aliases for route signatures
# ---------------------------------------------------------------------------

AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
UserId = Annotated[str, Depends(get_user_id)]
ClockDep = Annotated[Clock, Depends(get_clock)]
LogRepositoryDep = Annotated[LogRepository, Depends(get_log_repository)]
SlotRepositoryDep = Annotated[TrainingSlotRepository, Depends(get_slot_repository)]
StreakServiceDep = Annotated[StreakService, Depends(get_streak_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
