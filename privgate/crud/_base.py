"""Generic CRUD operations shared by the model-specific CRUD classes."""

from typing import Any, Generic, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.context import BaseContext
from privgate.db.unit_of_work import UnitOfWork
from privgate.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """CRUD object with default methods to Create, Read, Update.

    Writes commit immediately unless a ``UnitOfWork`` is passed, in which case
    they only flush and the caller decides when to commit.
    """

    def __init__(self, model: Type[ModelType]):
        """Initialize the CRUD object.

        Args:
        ----
            model (Type[ModelType]): The SQLAlchemy model.

        """
        self.model = model

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single object by ID, or None."""
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.unique().scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        ctx: Optional[BaseContext] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> ModelType:
        """Create a new object, stamping audit fields from the context."""
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        if ctx is not None and hasattr(self.model, "created_by"):
            data.setdefault("created_by", ctx.tracking_id)
            data.setdefault("modified_by", ctx.tracking_id)

        db_obj = self.model(**data)
        db.add(db_obj)
        await self._persist(db, db_obj, uow)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, dict[str, Any]],
        ctx: Optional[BaseContext] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> ModelType:
        """Update an object with the fields set on ``obj_in``."""
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for field, value in data.items():
            setattr(db_obj, field, value)
        if ctx is not None and hasattr(db_obj, "modified_by"):
            db_obj.modified_by = ctx.tracking_id

        db.add(db_obj)
        await self._persist(db, db_obj, uow)
        return db_obj

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _persist(
        self, db: AsyncSession, db_obj: ModelType, uow: Optional[UnitOfWork]
    ) -> None:
        if uow is None:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()
