from datetime import datetime
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hera.core.exceptions import DatabaseError
from hera.database.models import LegalUpdateNotification, PushSubscription
from hera.repositories.base_repository import BaseRepository


class PushSubscriptionRepository(BaseRepository[PushSubscription]):
    """Repository for browser push subscriptions, keyed by endpoint."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, PushSubscription)

    async def list_active_for_state(self, state: str) -> List[PushSubscription]:
        """Active subscriptions whose ``states`` list contains ``state``."""
        try:
            query = (
                select(PushSubscription)
                .where(PushSubscription.active.is_(True))
                .where(PushSubscription.states.contains([state]))
                .order_by(PushSubscription.id)
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Error listing subscriptions for {state}: {str(e)}", exc_info=True)
            raise DatabaseError("Listing failed for PushSubscription", original_error=e) from e

    async def subscribe(self, endpoint: str, p256dh: str, auth: str, states: Sequence[str]) -> PushSubscription:
        """Insert the subscription, or re-activate it with new states if the endpoint is known."""
        existing = await self.find_first({"endpoint": endpoint})
        if existing is None:
            return await self.create(endpoint=endpoint, p256dh=p256dh, auth=auth, states=list(states), active=True)

        await self.update_where({"endpoint": endpoint}, states=list(states), active=True)
        existing.states = list(states)
        existing.active = True
        return existing

    async def deactivate(self, endpoint: str) -> int:
        return await self.update_where({"endpoint": endpoint}, active=False)

    async def delete_by_endpoint(self, endpoint: str) -> None:
        """Remove a subscription the push service reported as expired."""
        existing = await self.find_first({"endpoint": endpoint})
        if existing is None:
            return
        try:
            await self.session.delete(existing)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(f"Error deleting subscription {endpoint}: {str(e)}", exc_info=True)
            raise DatabaseError("Delete failed for PushSubscription", original_error=e) from e


class LegalUpdateNotificationRepository(BaseRepository[LegalUpdateNotification]):
    """Repository for broadcast legal-update notifications."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, LegalUpdateNotification)

    async def mark_notified(self, notification: LegalUpdateNotification, notified_at: datetime) -> None:
        await self.update_where({"id": notification.id}, notified_at=notified_at)
        notification.notified_at = notified_at

