"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_adjustments.database import init_db
from payroll_adjustments.models import Company


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; routes commit, failures roll back."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_company_id(
    db: DbSession,
    x_company_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Resolve the X-Company-ID header to an active company."""
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-ID header is required",
        )
    try:
        company_id = UUID(x_company_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Company-ID format",
        )

    is_active = await db.scalar(
        select(Company.is_active).where(Company.company_id == company_id)
    )
    if is_active is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {company_id} not found",
        )
    if not is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Company {company_id} is inactive",
        )
    return company_id


CompanyId = Annotated[UUID, Depends(get_company_id)]
