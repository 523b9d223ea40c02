import pytest
from pydantic import ValidationError

from hera.schemas.records import (
    ClinicRecord,
    EmergencyContact,
    HealthDeptInfo,
    LegalInfoPartial,
    LegalInfoRecord,
    LegalUpdate,
)


def clinic_fields(**overrides):
    fields = {
        "name": "A",
        "address": "1 Main St",
        "state": "Ohio",
        "phone": "(555) 555-0100",
        "latitude": 39.96,
        "longitude": -83.0,
    }
    fields.update(overrides)
    return fields


class TestClinicRecord:
    def test_strips_required_text(self):
        clinic = ClinicRecord(**clinic_fields(name="  A  "))

        assert clinic.name == "A"

    @pytest.mark.parametrize("field", ["name", "address", "state", "phone"])
    def test_rejects_blank_required_fields(self, field):
        with pytest.raises(ValidationError):
            ClinicRecord(**clinic_fields(**{field: "   "}))

    @pytest.mark.parametrize("field", ["phone", "latitude", "longitude"])
    def test_rejects_missing_phone_or_coordinates(self, field):
        fields = clinic_fields()
        del fields[field]

        with pytest.raises(ValidationError):
            ClinicRecord(**fields)

    def test_rejects_non_finite_coordinates(self):
        with pytest.raises(ValidationError):
            ClinicRecord(**clinic_fields(latitude=float("inf")))

    def test_accepts_camel_case_input(self):
        clinic = ClinicRecord.model_validate(
            {
                "name": "A",
                "address": "B",
                "state": "Ohio",
                "phone": "1",
                "acceptedInsurance": ["Medicaid"],
                "latitude": 39.96,
                "longitude": -83.0,
            }
        )

        assert clinic.accepted_insurance == ["Medicaid"]
        assert clinic.to_columns()["accepted_insurance"] == ["Medicaid"]


class TestLegalInfoPartial:
    def test_empty_partial(self):
        assert LegalInfoPartial(source="kff").is_empty()
        assert LegalInfoPartial(source="kff", restrictions=[], health_dept_info=HealthDeptInfo()).is_empty()

    def test_any_fact_makes_it_non_empty(self):
        assert not LegalInfoPartial(source="kff", source_urls=["https://kff.org"]).is_empty()
        assert not LegalInfoPartial(source="state_gov", health_dept_info=HealthDeptInfo(phone="1")).is_empty()
        assert not LegalInfoPartial(source="ai", additional_notes="note").is_empty()


def test_legal_record_columns_use_camel_case_payloads():
    record = LegalInfoRecord(
        state="Ohio",
        recent_updates=[LegalUpdate(date="2024-01-01", description="Ballot measure")],
        emergency_contacts=[EmergencyContact(name="NAF", phone="1", available_24x7=True)],
        health_dept_info=HealthDeptInfo(name="ODH"),
    )

    columns = record.to_columns()

    assert columns["emergency_contacts"] == [{"name": "NAF", "phone": "1", "available24x7": True}]
    assert columns["recent_updates"][0]["impact"] == "Impact under assessment"
    assert columns["health_dept_info"] == {"name": "ODH"}
    assert columns["state_website"] is None
