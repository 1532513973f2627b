"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payroll_adjustments import __version__
from payroll_adjustments.api.dependencies import DbSession
from payroll_adjustments.models import Base

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    version: str
    database: str
    missing_tables: list[str] = Field(default_factory=list)


def _missing_tables(session: Session) -> list[str]:
    present = set(inspect(session.connection()).get_table_names())
    return sorted(set(Base.metadata.tables) - present)


async def _check_schema(db: DbSession) -> tuple[str, list[str]]:
    """Return the database status and the tables still to be created."""
    try:
        missing = await db.run_sync(_missing_tables)
    except (SQLAlchemyError, OSError):
        return "unhealthy", []
    return "healthy", missing


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Check database reachability and that the schema has been created."""
    db_status, missing = await _check_schema(db)
    healthy = db_status == "healthy" and not missing

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        database=db_status,
        missing_tables=missing,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the database answers and every table exists."""
    db_status, missing = await _check_schema(db)
    if db_status != "healthy" or missing:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready", "reason": "schema missing" if missing else "database"}
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
