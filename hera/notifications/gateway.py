from typing import Optional

import httpx

from hera.notifications.broadcast import DeliveryStatus, PushMessage, PushTarget
from hera.pipeline.retry import RetryPolicy, retry_async
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Statuses a push service uses for a subscription that no longer exists
EXPIRED_STATUSES = frozenset({404, 410})


class PushGatewaySink:
    """Deliver pushes through an HTTP push gateway that holds the VAPID keys.

    The gateway receives the subscription and the message and answers with the
    push service's status, so 404/410 mean the subscription is gone.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        gateway_url: str,
        token: str = "",
        timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.http_client = http_client
        self.gateway_url = gateway_url
        self.token = token
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=3)

    async def send(self, target: PushTarget, message: PushMessage) -> DeliveryStatus:
        headers = {"Urgency": message.urgency.value}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        body = {"subscription": target.to_payload(), "payload": message.to_payload()}

        async def _post() -> httpx.Response:
            response = await self.http_client.post(
                self.gateway_url, json=body, headers=headers, timeout=self.timeout
            )
            if response.status_code not in EXPIRED_STATUSES:
                response.raise_for_status()
            return response

        try:
            response = await retry_async(_post, self.retry_policy, description="push delivery")
        except httpx.HTTPError as e:
            LOGGER.error(f"Error sending push notification to {target.endpoint}: {e}")
            return DeliveryStatus.FAILED

        if response.status_code in EXPIRED_STATUSES:
            LOGGER.info(f"Push subscription expired: {target.endpoint}")
            return DeliveryStatus.EXPIRED
        return DeliveryStatus.DELIVERED
