"""Privilege catalog service: administrative CRUD over privilege definitions."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.context import BaseContext
from privgate.domains.privileges.exceptions import (
    PrivilegeAlreadyExistsError,
    PrivilegeNotFoundError,
)
from privgate.domains.privileges.protocols import PrivilegeCatalogServiceProtocol
from privgate.domains.privileges.repository import PrivilegeRepositoryProtocol
from privgate.models.privilege import Privilege
from privgate.schemas.pagination import PaginationMeta
from privgate.schemas.privilege import Privilege as PrivilegeSchema
from privgate.schemas.privilege import PrivilegeCreate, PrivilegeList, PrivilegeUpdate

_STATUS_FILTERS = {
    "active": True,
    "true": True,
    "inactive": False,
    "false": False,
}


def parse_status_filter(status: Optional[str]) -> Optional[bool]:
    """Map a status query value to an ``is_active`` filter.

    Accepts active/inactive and true/false, case-insensitively. Empty or
    unrecognized values do not filter.
    """
    if not status:
        return None
    return _STATUS_FILTERS.get(status.strip().lower())


class PrivilegeCatalogService(PrivilegeCatalogServiceProtocol):
    """Lists, creates, updates and soft-deletes privileges."""

    def __init__(self, privilege_repo: PrivilegeRepositoryProtocol) -> None:
        """Initialize with injected dependencies."""
        self._privilege_repo = privilege_repo

    async def list(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> PrivilegeList:
        """A filtered page of privileges ordered by name."""
        search = search.strip() if search else None
        is_active = parse_status_filter(status)
        category = category.strip() if category else None

        total = await self._privilege_repo.count(
            db, search=search, is_active=is_active, category=category
        )
        rows = await self._privilege_repo.get_multi(
            db,
            skip=(page - 1) * page_size,
            limit=page_size,
            search=search,
            is_active=is_active,
            category=category,
        )
        return PrivilegeList(
            data=[PrivilegeSchema.model_validate(row) for row in rows],
            meta=PaginationMeta.build(total, page=page, page_size=page_size),
        )

    async def list_types(self, db: AsyncSession) -> list[str]:
        """Distinct privilege types of non-deleted privileges, sorted."""
        return await self._privilege_repo.get_types(db)

    async def get(self, db: AsyncSession, privilege_id: UUID) -> Privilege:
        """Get a privilege or raise PrivilegeNotFoundError."""
        privilege = await self._privilege_repo.get(db, privilege_id)
        if privilege is None:
            raise PrivilegeNotFoundError(privilege_id)
        return privilege

    async def create(
        self, db: AsyncSession, privilege_in: PrivilegeCreate, ctx: BaseContext
    ) -> Privilege:
        """Create a privilege. Names are unique among non-deleted privileges."""
        if await self._privilege_repo.get_by_name(db, privilege_in.name) is not None:
            raise PrivilegeAlreadyExistsError(privilege_in.name)

        try:
            privilege = await self._privilege_repo.create(db, obj_in=privilege_in, ctx=ctx)
        except IntegrityError:
            # A concurrent create won the unique name index
            await db.rollback()
            raise PrivilegeAlreadyExistsError(privilege_in.name)
        ctx.logger.info(f"Created privilege '{privilege.name}' ({privilege.id})")
        return privilege

    async def update(
        self,
        db: AsyncSession,
        privilege_id: UUID,
        privilege_in: PrivilegeUpdate,
        ctx: BaseContext,
    ) -> Privilege:
        """Update a privilege. Renaming onto another privilege's name is a conflict."""
        privilege = await self.get(db, privilege_id)

        if privilege_in.name is not None and privilege_in.name != privilege.name:
            clash = await self._privilege_repo.get_by_name(db, privilege_in.name)
            if clash is not None and clash.id != privilege.id:
                raise PrivilegeAlreadyExistsError(privilege_in.name)

        # Non-nullable columns ignore an explicit null
        changes = privilege_in.model_dump(exclude_unset=True)
        for field in ("name", "is_active"):
            if changes.get(field) is None:
                changes.pop(field, None)

        name = changes.get("name", privilege.name)
        try:
            updated = await self._privilege_repo.update(
                db, db_obj=privilege, obj_in=changes, ctx=ctx
            )
        except IntegrityError:
            await db.rollback()
            raise PrivilegeAlreadyExistsError(name)
        ctx.logger.info(f"Updated privilege {privilege_id}")
        return updated

    async def delete(self, db: AsyncSession, privilege_id: UUID, ctx: BaseContext) -> Privilege:
        """Soft-delete a privilege. Its grants stop resolving."""
        privilege = await self.get(db, privilege_id)
        deleted = await self._privilege_repo.soft_delete(db, db_obj=privilege, ctx=ctx)
        ctx.logger.info(f"Deleted privilege '{privilege.name}' ({privilege_id})")
        return deleted
