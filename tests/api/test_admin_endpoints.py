from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hera.api.deps import get_clinic_repository, get_legal_info_repository, get_pipeline_context
from hera.core.exceptions import ConfigurationError, DatabaseError
from hera.main import app

ADMIN = "/api/admin"


def fake_pipeline_class(run_side_effect=None):
    """Stand-in for a pipeline class; instances expose an awaitable ``run``."""
    pipeline = MagicMock()
    pipeline.name = "fake_pipeline"
    pipeline.run = AsyncMock(return_value=MagicMock(succeeded=50, failed=0), side_effect=run_side_effect)
    return MagicMock(return_value=pipeline), pipeline


@pytest.fixture
def context():
    context = MagicMock()
    app.dependency_overrides[get_pipeline_context] = lambda: context
    return context


@pytest.fixture
def legal_repository():
    repository = MagicMock()
    repository.count = AsyncMock(return_value=50)
    app.dependency_overrides[get_legal_info_repository] = lambda: repository
    return repository


@pytest.fixture
def clinic_repository():
    repository = MagicMock()
    repository.count = AsyncMock(return_value=123)
    app.dependency_overrides[get_clinic_repository] = lambda: repository
    return repository


class TestFireAndForget:
    @pytest.mark.parametrize(
        "path, pipeline_name, message",
        [
            ("/start-legal-crawler", "LegalInfoPipeline", "Legal info crawler started"),
            ("/start-clinic-crawler", "ClinicPipeline", "Clinic crawler started"),
            ("/start-clinic-generation", "ClinicGenerationPipeline", "Clinic generation started"),
        ],
    )
    def test_starts_pipeline_in_background(self, test_client, context, path, pipeline_name, message):
        pipeline_class, pipeline = fake_pipeline_class()

        with patch(f"hera.api.v1.endpoints.admin.{pipeline_name}", pipeline_class):
            response = test_client.post(f"{ADMIN}{path}")

        assert response.status_code == 200
        assert response.json() == {"message": message}
        pipeline_class.assert_called_once_with(context)
        pipeline.run.assert_awaited_once()

    def test_background_failure_still_answers(self, test_client, context):
        pipeline_class, _ = fake_pipeline_class(run_side_effect=RuntimeError("crashed"))

        with patch("hera.api.v1.endpoints.admin.LegalInfoPipeline", pipeline_class):
            response = test_client.post(f"{ADMIN}/start-legal-crawler")

        assert response.status_code == 200

    def test_generation_without_completion_client_is_500(self, test_client, context):
        pipeline_class = MagicMock(side_effect=ConfigurationError("set LLM_API_KEY"))

        with patch("hera.api.v1.endpoints.admin.ClinicGenerationPipeline", pipeline_class):
            response = test_client.post(f"{ADMIN}/start-clinic-generation")

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to start clinic generation"}


class TestAwaited:
    def test_populate_legal_info_reports_count(self, test_client, context, legal_repository):
        pipeline_class, pipeline = fake_pipeline_class()

        with patch("hera.api.v1.endpoints.admin.LegalInfoPipeline", pipeline_class):
            response = test_client.post(f"{ADMIN}/populate-legal-info")

        assert response.status_code == 200
        assert response.json() == {"message": "Legal information populated successfully", "count": 50}
        pipeline.run.assert_awaited_once()

    def test_populate_clinics_reports_count(self, test_client, context, clinic_repository):
        pipeline_class, _ = fake_pipeline_class()

        with patch("hera.api.v1.endpoints.admin.ClinicPipeline", pipeline_class):
            response = test_client.post(f"{ADMIN}/populate-clinics")

        assert response.json() == {"message": "Clinics populated successfully", "count": 123}

    def test_generate_clinics_reports_count(self, test_client, context, clinic_repository):
        pipeline_class, _ = fake_pipeline_class()

        with patch("hera.api.v1.endpoints.admin.ClinicGenerationPipeline", pipeline_class):
            response = test_client.post(f"{ADMIN}/generate-clinics")

        assert response.json() == {"message": "Clinics generated successfully", "count": 123}

    def test_storage_failure_is_500(self, test_client, context, legal_repository):
        pipeline_class, _ = fake_pipeline_class()
        legal_repository.count.side_effect = DatabaseError("connection refused")

        with patch("hera.api.v1.endpoints.admin.LegalInfoPipeline", pipeline_class):
            response = test_client.post(f"{ADMIN}/populate-legal-info")

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to populate legal information"}

    def test_get_is_not_allowed(self, test_client):
        assert test_client.get(f"{ADMIN}/populate-clinics").status_code == 405
