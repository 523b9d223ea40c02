"""Shared FastAPI dependencies."""

from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hera.core.database import get_async_session
from hera.notifications.broadcast import BroadcastCoordinator, NotificationSink
from hera.pipeline.context import PipelineContext
from hera.repositories.clinic_repository import ClinicRepository
from hera.repositories.legal_info_repository import LegalInfoRepository
from hera.repositories.notification_repository import (
    LegalUpdateNotificationRepository,
    PushSubscriptionRepository,
)


def get_pipeline_context(request: Request) -> PipelineContext:
    """The pipeline context built by the application lifespan."""
    return request.app.state.pipeline_context


async def get_legal_info_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> LegalInfoRepository:
    return LegalInfoRepository(db_session)


async def get_clinic_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> ClinicRepository:
    return ClinicRepository(db_session)


def get_notification_sink(request: Request) -> Optional[NotificationSink]:
    """The push sink built by the application lifespan, None when delivery is not configured."""
    return getattr(request.app.state, "notification_sink", None)


async def get_push_subscription_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> PushSubscriptionRepository:
    return PushSubscriptionRepository(db_session)


async def get_broadcast_coordinator(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    sink: Annotated[Optional[NotificationSink], Depends(get_notification_sink)],
) -> BroadcastCoordinator:
    return BroadcastCoordinator(
        LegalUpdateNotificationRepository(db_session),
        PushSubscriptionRepository(db_session),
        sink,
    )
