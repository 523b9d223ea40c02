"""Push-notification subscription endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from hera.api.deps import get_push_subscription_repository
from hera.core.config import settings
from hera.core.exceptions import AppError
from hera.pipeline.states import resolve_state
from hera.repositories.notification_repository import PushSubscriptionRepository
from hera.schemas.requests import SubscribeRequest, UnsubscribeRequest
from hera.schemas.responses import MessageResponse, VapidKeyResponse
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/vapid-public-key",
    response_model=VapidKeyResponse,
    summary="Public VAPID key browsers subscribe with",
    operation_id="get_vapid_public_key",
)
async def get_vapid_public_key() -> VapidKeyResponse:
    if not settings.notifications.vapid_public_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="VAPID keys not configured",
        )
    return VapidKeyResponse(public_key=settings.notifications.vapid_public_key)


@router.post(
    "/subscribe",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe a browser to legal updates for some states",
    operation_id="subscribe_to_notifications",
)
async def subscribe(
    body: SubscribeRequest,
    repository: Annotated[PushSubscriptionRepository, Depends(get_push_subscription_repository)],
) -> MessageResponse:
    # Names and USPS codes become canonical names; anything else is stored verbatim
    states = [resolve_state(state) or state for state in body.states]
    try:
        await repository.subscribe(
            endpoint=body.subscription.endpoint,
            p256dh=body.subscription.keys.p256dh,
            auth=body.subscription.keys.auth,
            states=states,
        )
    except AppError as e:
        LOGGER.error(f"Error subscribing to notifications: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to subscribe to notifications",
        ) from e

    return MessageResponse(message="Subscription successful")


@router.post(
    "/unsubscribe",
    response_model=MessageResponse,
    summary="Stop pushing legal updates to a browser",
    operation_id="unsubscribe_from_notifications",
)
async def unsubscribe(
    body: UnsubscribeRequest,
    repository: Annotated[PushSubscriptionRepository, Depends(get_push_subscription_repository)],
) -> MessageResponse:
    try:
        await repository.deactivate(body.endpoint)
    except AppError as e:
        LOGGER.error(f"Error unsubscribing: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to unsubscribe",
        ) from e

    return MessageResponse(message="Unsubscribed successfully")
