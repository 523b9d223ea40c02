from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from hera.api.deps import get_broadcast_coordinator, get_push_subscription_repository
from hera.core.config import settings
from hera.core.exceptions import DatabaseError
from hera.main import app
from hera.notifications.broadcast import BroadcastResult, Urgency

STAMP = datetime(2024, 6, 1, tzinfo=timezone.utc)


def notification_row(**overrides):
    row = dict(
        id=7,
        state="Texas",
        title="New ban",
        description="Details",
        urgency="urgent",
        effective_date=None,
        created_at=STAMP,
        notified_at=STAMP,
    )
    row.update(overrides)
    return SimpleNamespace(**row)


@pytest.fixture
def coordinator():
    coordinator = MagicMock()
    coordinator.broadcast = AsyncMock(
        return_value=BroadcastResult(notification=notification_row(), delivered=2, expired=1, failed=0)
    )
    app.dependency_overrides[get_broadcast_coordinator] = lambda: coordinator
    return coordinator


@pytest.fixture
def subscription_repository():
    repository = MagicMock()
    repository.subscribe = AsyncMock()
    repository.deactivate = AsyncMock(return_value=1)
    app.dependency_overrides[get_push_subscription_repository] = lambda: repository
    return repository


class TestBroadcastLegalUpdate:
    def test_broadcasts_and_reports_counts(self, test_client, coordinator):
        response = test_client.post(
            "/api/admin/broadcast-legal-update",
            json={"state": "tx", "title": "New ban", "description": "Details", "urgency": "urgent"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Update broadcasted successfully"
        assert body["notification"]["id"] == 7
        assert body["notification"]["notifiedAt"] == "2024-06-01T00:00:00Z"
        assert (body["delivered"], body["expired"], body["failed"]) == (2, 1, 0)
        coordinator.broadcast.assert_awaited_once_with("Texas", "New ban", "Details", Urgency.URGENT)

    @pytest.mark.parametrize(
        "payload",
        [
            {"state": "Texas", "title": "", "description": "Details"},
            {"state": "Texas", "title": "New ban", "description": "Details", "urgency": "critical"},
            {"state": "Atlantis", "title": "New ban", "description": "Details"},
            {"title": "New ban", "description": "Details"},
        ],
    )
    def test_invalid_body_is_rejected(self, test_client, coordinator, payload):
        response = test_client.post("/api/admin/broadcast-legal-update", json=payload)

        assert response.status_code == 422
        coordinator.broadcast.assert_not_awaited()

    def test_storage_failure_is_500(self, test_client, coordinator):
        coordinator.broadcast.side_effect = DatabaseError("down")

        response = test_client.post(
            "/api/admin/broadcast-legal-update",
            json={"state": "Texas", "title": "New ban", "description": "Details"},
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to broadcast update"}


class TestSubscriptions:
    def test_subscribe_stores_canonical_states(self, test_client, subscription_repository):
        response = test_client.post(
            "/api/notifications/subscribe",
            json={
                "subscription": {"endpoint": "https://push/a", "keys": {"p256dh": "p-key", "auth": "a-key"}},
                "states": ["CA", "new york"],
            },
        )

        assert response.status_code == 201
        assert response.json() == {"message": "Subscription successful"}
        subscription_repository.subscribe.assert_awaited_once_with(
            endpoint="https://push/a", p256dh="p-key", auth="a-key", states=["California", "New York"]
        )

    def test_subscribe_requires_keys(self, test_client, subscription_repository):
        response = test_client.post(
            "/api/notifications/subscribe",
            json={"subscription": {"endpoint": "https://push/a"}, "states": []},
        )

        assert response.status_code == 422

    def test_unsubscribe_deactivates(self, test_client, subscription_repository):
        response = test_client.post("/api/notifications/unsubscribe", json={"endpoint": "https://push/a"})

        assert response.status_code == 200
        assert response.json() == {"message": "Unsubscribed successfully"}
        subscription_repository.deactivate.assert_awaited_once_with("https://push/a")

    def test_unsubscribe_storage_failure_is_500(self, test_client, subscription_repository):
        subscription_repository.deactivate.side_effect = DatabaseError("down")

        response = test_client.post("/api/notifications/unsubscribe", json={"endpoint": "https://push/a"})

        assert response.status_code == 500


class TestVapidPublicKey:
    def test_returns_configured_key(self, test_client, monkeypatch):
        monkeypatch.setattr(settings.notifications, "vapid_public_key", "BPublicKey")

        response = test_client.get("/api/notifications/vapid-public-key")

        assert response.status_code == 200
        assert response.json() == {"publicKey": "BPublicKey"}

    def test_missing_key_is_500(self, test_client, monkeypatch):
        monkeypatch.setattr(settings.notifications, "vapid_public_key", "")

        response = test_client.get("/api/notifications/vapid-public-key")

        assert response.status_code == 500
        assert response.json() == {"detail": "VAPID keys not configured"}
