"""Read-only access to the Subscription model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from privgate.models.subscription import Subscription


class CRUDSubscription:
    """Reads subscriptions owned by the subscription lifecycle subsystem."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[Subscription]:
        """Get a subscription by ID, deleted or not."""
        result = await db.execute(select(Subscription).where(Subscription.id == id))
        return result.scalar_one_or_none()


subscription = CRUDSubscription()
