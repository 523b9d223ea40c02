"""Legal-update broadcasts to push subscribers.

A broadcast is stored before anything is sent, so the record exists even when
every delivery fails. Deliveries to all subscribers of the state run
concurrently; a subscription the push service reports as expired is deleted,
and ``notified_at`` is stamped once every delivery has settled.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from hera.core.exceptions import DatabaseError
from hera.database.models import LegalUpdateNotification, PushSubscription
from hera.repositories.notification_repository import (
    LegalUpdateNotificationRepository,
    PushSubscriptionRepository,
)
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Urgency(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True)
class PushTarget:
    """Where one push goes: the subscription endpoint and its encryption keys."""

    endpoint: str
    p256dh: str
    auth: str

    @classmethod
    def from_subscription(cls, subscription: PushSubscription) -> "PushTarget":
        return cls(endpoint=subscription.endpoint, p256dh=subscription.p256dh, auth=subscription.auth)

    def to_payload(self) -> Dict[str, Any]:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    tag: str
    url: str
    timestamp: str
    urgency: Urgency = Urgency.NORMAL

    def to_payload(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "tag": self.tag,
            "data": {"url": self.url, "timestamp": self.timestamp},
        }


class NotificationSink(Protocol):
    async def send(self, target: PushTarget, message: PushMessage) -> DeliveryStatus:
        ...


@dataclass
class BroadcastResult:
    notification: LegalUpdateNotification
    delivered: int = 0
    expired: int = 0
    failed: int = 0
    expired_endpoints: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.delivered + self.expired + self.failed


def legal_update_message(state: str, title: str, description: str, urgency: Urgency, sent_at: datetime) -> PushMessage:
    return PushMessage(
        title=title,
        body=description,
        tag=f"legal-update-{state}",
        url=f"/legal-info?state={state}",
        timestamp=sent_at.isoformat(),
        urgency=urgency,
    )


class BroadcastCoordinator:
    """Persist a legal update, then push it to every active subscriber of its state."""

    def __init__(
        self,
        notifications: LegalUpdateNotificationRepository,
        subscriptions: PushSubscriptionRepository,
        sink: Optional[NotificationSink],
    ):
        self.notifications = notifications
        self.subscriptions = subscriptions
        self.sink = sink

    async def broadcast(
        self,
        state: str,
        title: str,
        description: str,
        urgency: Urgency = Urgency.NORMAL,
    ) -> BroadcastResult:
        """Store and dispatch one legal update.

        Args:
            state: State the update concerns; only its subscribers are notified
            title: Notification title
            description: Notification body
            urgency: ``normal`` or ``urgent``

        Returns:
            The stored notification and per-outcome delivery counts

        Raises:
            DatabaseError: If the notification cannot be stored
        """
        notification = await self.notifications.create(
            state=state,
            title=title,
            description=description,
            urgency=Urgency(urgency).value,
        )
        result = BroadcastResult(notification=notification)

        if self.sink is None:
            LOGGER.warning(
                f"Legal update for {state} stored but not pushed, no notification sink configured",
                extra={"state": state, "notification_id": notification.id},
            )
            return result

        subscriptions = await self.subscriptions.list_active_for_state(state)
        sent_at = datetime.now(timezone.utc)
        message = legal_update_message(state, title, description, Urgency(urgency), sent_at)
        targets = [PushTarget.from_subscription(subscription) for subscription in subscriptions]

        outcomes = await asyncio.gather(
            *(self.sink.send(target, message) for target in targets),
            return_exceptions=True,
        )
        for target, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                LOGGER.error(f"Push to {target.endpoint} crashed: {outcome}", extra={"state": state})
                result.failed += 1
            elif outcome is DeliveryStatus.DELIVERED:
                result.delivered += 1
            elif outcome is DeliveryStatus.EXPIRED:
                result.expired += 1
                result.expired_endpoints.append(target.endpoint)
            else:
                result.failed += 1

        for endpoint in result.expired_endpoints:
            try:
                await self.subscriptions.delete_by_endpoint(endpoint)
            except DatabaseError as e:
                LOGGER.error(f"Could not remove expired subscription {endpoint}: {e}", extra={"state": state})

        await self.notifications.mark_notified(notification, sent_at)
        LOGGER.info(
            f"Broadcast legal update for {state}",
            extra={
                "state": state,
                "notification_id": notification.id,
                "delivered": result.delivered,
                "expired": result.expired,
                "failed": result.failed,
            },
        )
        return result
