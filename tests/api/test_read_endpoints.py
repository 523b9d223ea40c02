from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from hera.api.deps import get_clinic_repository, get_legal_info_repository
from hera.main import app

STAMP = datetime(2024, 6, 1, tzinfo=timezone.utc)


def legal_row(**overrides):
    row = dict(
        id=1,
        state="California",
        restrictions=["No restrictions before viability"],
        requirements=[],
        recent_updates=[{"date": "2024-01-01", "description": "Shield law", "impact": "More access"}],
        effective_date=STAMP,
        source_urls=["https://www.plannedparenthood.org/learn/abortion/abortion-laws"],
        last_verified=STAMP,
        additional_notes=None,
        emergency_contacts=[{"name": "NAF", "phone": "1-800-772-9100", "available24x7": True}],
        last_updated=STAMP,
        official_documents=[],
        legal_resources=[],
        state_website="https://www.usa.gov/states-and-territories/ca",
        health_dept_info={"name": "CDPH"},
        news_articles=[],
    )
    row.update(overrides)
    return SimpleNamespace(**row)


def clinic_row(clinic_id, state="California"):
    return SimpleNamespace(
        id=clinic_id,
        name=f"Clinic {clinic_id}",
        address=f"{clinic_id} Main St",
        state=state,
        phone="(555) 555-0100",
        services=["Birth Control"],
        accepted_insurance=["Medicaid"],
        latitude=38.5,
        longitude=-121.4,
        created_at=STAMP,
        updated_at=STAMP,
    )


@pytest.fixture
def legal_repository():
    repository = MagicMock()
    repository.get_by_state = AsyncMock(return_value=None)
    app.dependency_overrides[get_legal_info_repository] = lambda: repository
    return repository


@pytest.fixture
def clinic_repository():
    repository = MagicMock()
    repository.find_many = AsyncMock(return_value=[])
    repository.list_by_state = AsyncMock(return_value=[])
    app.dependency_overrides[get_clinic_repository] = lambda: repository
    return repository


class TestLegalInfoEndpoint:
    def test_returns_camel_case_record(self, test_client, legal_repository):
        legal_repository.get_by_state.return_value = legal_row()

        response = test_client.get("/api/legal-info/California")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "California"
        assert body["recentUpdates"][0]["description"] == "Shield law"
        assert body["emergencyContacts"][0]["available24x7"] is True
        assert body["healthDeptInfo"] == {"name": "CDPH"}
        assert body["stateWebsite"].endswith("/ca")
        assert "lastVerified" in body and "last_verified" not in body
        legal_repository.get_by_state.assert_awaited_once_with("California")

    def test_path_state_name_is_decoded(self, test_client, legal_repository):
        legal_repository.get_by_state.return_value = legal_row(state="New York")

        test_client.get("/api/legal-info/New%20York")

        legal_repository.get_by_state.assert_awaited_once_with("New York")

    def test_unknown_state_is_404(self, test_client, legal_repository):
        response = test_client.get("/api/legal-info/Atlantis")

        assert response.status_code == 404
        assert response.json() == {"detail": "Legal information not found for this state"}


class TestClinicEndpoints:
    def test_all_clinics(self, test_client, clinic_repository):
        clinic_repository.find_many.return_value = [clinic_row(1), clinic_row(2, state="Texas")]

        response = test_client.get("/api/clinics/all")

        assert response.status_code == 200
        body = response.json()
        assert [c["name"] for c in body] == ["Clinic 1", "Clinic 2"]
        assert body[0]["acceptedInsurance"] == ["Medicaid"]

    def test_clinics_by_state(self, test_client, clinic_repository):
        clinic_repository.list_by_state.return_value = [clinic_row(3)]

        response = test_client.get("/api/clinics/California")

        assert [c["id"] for c in response.json()] == [3]
        clinic_repository.list_by_state.assert_awaited_once_with("California")

    def test_state_without_clinics_is_empty_list(self, test_client, clinic_repository):
        assert test_client.get("/api/clinics/Wyoming").json() == []


class TestHealthAndRoot:
    @pytest.fixture
    def db_client(self):
        client = MagicMock()
        client.health_check = AsyncMock(return_value={"status": "healthy", "connected": True})
        app.state.db_client = client
        yield client
        del app.state.db_client

    def test_healthy(self, test_client, db_client):
        response = test_client.get("/health/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"]["connected"] is True

    def test_degraded_when_database_unreachable(self, test_client, db_client):
        db_client.health_check.return_value = {"status": "unhealthy", "connected": False, "error": "refused"}

        assert test_client.get("/health/").json()["status"] == "degraded"

    def test_root(self, test_client):
        body = test_client.get("/").json()

        assert body["message"] == "Server is running"
        assert body["health"] == "/health"
