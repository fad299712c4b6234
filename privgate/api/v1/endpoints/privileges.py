"""API endpoints for the privilege catalog."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from privgate import schemas
from privgate.api.context import ApiContext
from privgate.api.deps import Inject, get_context, get_db
from privgate.api.router import TrailingSlashRouter
from privgate.domains.privileges.protocols import PrivilegeCatalogServiceProtocol

router = TrailingSlashRouter()


@router.get("", response_model=schemas.PrivilegeList)
async def list_privileges(
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(20, ge=1, le=100, description="Records per page"),
    search: Optional[str] = Query(None, description="Matches name or description"),
    status: Optional[str] = Query(None, description="active | inactive (also true | false)"),
    category: Optional[str] = Query(None, description="Privilege type, case-insensitive"),
    db: AsyncSession = Depends(get_db),
    catalog: PrivilegeCatalogServiceProtocol = Inject(PrivilegeCatalogServiceProtocol),
) -> schemas.PrivilegeList:
    """List privileges ordered by name."""
    return await catalog.list(
        db, page=page, page_size=page_size, search=search, status=status, category=category
    )


@router.get("/types", response_model=list[str])
async def list_privilege_types(
    db: AsyncSession = Depends(get_db),
    catalog: PrivilegeCatalogServiceProtocol = Inject(PrivilegeCatalogServiceProtocol),
) -> list[str]:
    """Distinct privilege types in the catalog."""
    return await catalog.list_types(db)


@router.get("/{privilege_id}", response_model=schemas.Privilege)
async def get_privilege(
    privilege_id: UUID,
    db: AsyncSession = Depends(get_db),
    catalog: PrivilegeCatalogServiceProtocol = Inject(PrivilegeCatalogServiceProtocol),
) -> schemas.Privilege:
    """Get a privilege."""
    return await catalog.get(db, privilege_id)


@router.post("", response_model=schemas.Privilege, status_code=201)
async def create_privilege(
    privilege_in: schemas.PrivilegeCreate,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    catalog: PrivilegeCatalogServiceProtocol = Inject(PrivilegeCatalogServiceProtocol),
) -> schemas.Privilege:
    """Create a privilege. Names must be unique."""
    return await catalog.create(db, privilege_in, ctx)


@router.put("/{privilege_id}", response_model=schemas.Privilege)
async def update_privilege(
    privilege_id: UUID,
    privilege_in: schemas.PrivilegeUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    catalog: PrivilegeCatalogServiceProtocol = Inject(PrivilegeCatalogServiceProtocol),
) -> schemas.Privilege:
    """Update a privilege."""
    return await catalog.update(db, privilege_id, privilege_in, ctx)


@router.delete("/{privilege_id}", response_model=schemas.Privilege)
async def delete_privilege(
    privilege_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    catalog: PrivilegeCatalogServiceProtocol = Inject(PrivilegeCatalogServiceProtocol),
) -> schemas.Privilege:
    """Soft-delete a privilege. Grants of a deleted privilege stop resolving."""
    return await catalog.delete(db, privilege_id, ctx)
