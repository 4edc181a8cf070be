"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.config import Settings
from studio_payroll.database import Database
from studio_payroll.models import Staff
from studio_payroll.services.permissions import PermissionChecker


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_permission_checker(request: Request) -> PermissionChecker:
    return PermissionChecker.from_settings(request.app.state.settings)


async def get_db_session(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back on close.
    """
    async with database.session_factory() as session:
        yield session


async def get_actor(
    database: Annotated[Database, Depends(get_database)],
    x_staff_id: Annotated[str | None, Header()] = None,
) -> Staff:
    """Resolve the acting staff member from the X-Staff-Id header.

    The lookup uses its own short-lived session so it holds no transaction
    open while the route runs.
    """
    if not x_staff_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Staff-Id header is required",
        )
    try:
        staff_id = UUID(x_staff_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Staff-Id format",
        )

    async with database.session_factory() as session:
        actor = await session.get(Staff, staff_id)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unknown staff member",
        )
    return actor


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
DatabaseDep = Annotated[Database, Depends(get_database)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
Actor = Annotated[Staff, Depends(get_actor)]
Permissions = Annotated[PermissionChecker, Depends(get_permission_checker)]
