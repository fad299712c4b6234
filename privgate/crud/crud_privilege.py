"""CRUD operations for the Privilege model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from privgate.crud._base import CRUDBase
from privgate.models.privilege import Privilege
from privgate.schemas.privilege import PrivilegeCreate, PrivilegeUpdate


class CRUDPrivilege(CRUDBase[Privilege, PrivilegeCreate, PrivilegeUpdate]):
    """CRUD operations for the Privilege model.

    Soft-deleted rows are invisible to every read.
    """

    async def get(self, db: AsyncSession, id: UUID) -> Optional[Privilege]:
        """Get a non-deleted privilege by ID."""
        query = select(Privilege).where(Privilege.id == id, Privilege.is_deleted.is_(False))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Privilege]:
        """Get a non-deleted privilege by exact name."""
        query = select(Privilege).where(Privilege.name == name, Privilege.is_deleted.is_(False))
        result = await db.execute(query)
        return result.scalars().first()

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[Privilege]:
        """List privileges ordered by name."""
        query = self._filtered(select(Privilege), search, is_active, category)
        query = query.order_by(Privilege.name, Privilege.id).offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> int:
        """Count privileges matching the same filters as ``get_multi``."""
        query = self._filtered(select(func.count(Privilege.id)), search, is_active, category)
        result = await db.execute(query)
        return result.scalar_one()

    async def get_types(self, db: AsyncSession) -> list[str]:
        """Distinct privilege types in use by non-deleted privileges."""
        query = (
            select(Privilege.privilege_type)
            .where(Privilege.is_deleted.is_(False), Privilege.privilege_type.is_not(None))
            .distinct()
            .order_by(Privilege.privilege_type)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def soft_delete(self, db: AsyncSession, *, db_obj: Privilege, actor: Optional[str]) -> Privilege:
        """Mark a privilege deleted. Rows are never physically removed."""
        db_obj.is_deleted = True
        db_obj.modified_by = actor
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _filtered(
        query: Select,
        search: Optional[str],
        is_active: Optional[bool],
        category: Optional[str],
    ) -> Select:
        query = query.where(Privilege.is_deleted.is_(False))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Privilege.name).like(pattern),
                    func.lower(Privilege.description).like(pattern),
                )
            )
        if is_active is not None:
            query = query.where(Privilege.is_active.is_(is_active))
        if category:
            query = query.where(func.lower(Privilege.privilege_type) == category.lower())
        return query


privilege = CRUDPrivilege(Privilege)
