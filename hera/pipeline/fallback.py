"""Hand-curated records used when every live source comes back empty."""

from typing import Dict, List, Optional

from hera.schemas.records import (
    ClinicRecord,
    EmergencyContact,
    HealthDeptInfo,
    LegalInfoRecord,
    LegalResource,
    LegalUpdate,
    OfficialDocument,
)

_PP_LAWS_URL = "https://www.plannedparenthood.org/learn/abortion/abortion-laws"

FALLBACK_LEGAL_INFO: Dict[str, LegalInfoRecord] = {
    "California": LegalInfoRecord(
        state="California",
        restrictions=[
            "No restrictions on abortion before viability",
            "Post-viability abortions allowed for life/health of the mother",
        ],
        requirements=[
            "Parental notification not required for minors",
            "No mandatory waiting period",
        ],
        recent_updates=[
            LegalUpdate(
                date="2024-01-01",
                description="California strengthened abortion access protections",
                impact="Increased accessibility and funding for abortion services",
            ),
        ],
        source_urls=[_PP_LAWS_URL],
        additional_notes=(
            "California has some of the strongest abortion protections in the United States. "
            "The state constitution explicitly protects the right to privacy, which courts have "
            "interpreted to include abortion rights."
        ),
        emergency_contacts=[
            EmergencyContact(name="ACCESS Reproductive Justice", phone="1-800-376-4636", available_24x7=True),
        ],
        official_documents=[
            OfficialDocument(
                title="California Health and Safety Code Section 123460-123468",
                url="https://leginfo.legislature.ca.gov/faces/codes_displaySection.xhtml?lawCode=HSC&sectionNum=123460",
                type="legislation",
            ),
            OfficialDocument(
                title="California Reproductive Privacy Act",
                url=(
                    "https://leginfo.legislature.ca.gov/faces/codes_displayText.xhtml?lawCode=HSC"
                    "&division=106.&title=&part=2.&chapter=2.&article=2.5"
                ),
                type="legislation",
            ),
            OfficialDocument(
                title="Abortion Access and Safe Haven Laws",
                url="https://www.cdph.ca.gov/Programs/CFH/DMCAH/Pages/Abortion-Access.aspx",
                type="guidance",
            ),
        ],
        legal_resources=[
            LegalResource(
                name="California Future of Abortion Council",
                url="https://www.ca-fac.org/",
                description="Coalition working to protect and expand abortion access in California",
            ),
            LegalResource(
                name="National Abortion Federation - California Provider List",
                url="https://prochoice.org/patients/find-a-provider/",
                description="Directory of verified abortion providers in California",
            ),
            LegalResource(
                name="ACCESS WHRC Legal Helpline",
                url="https://www.reprolegalhelpline.org",
                description="Free legal advice about abortion rights and access in California",
            ),
        ],
        health_dept_info=HealthDeptInfo(
            name="California Department of Public Health",
            website="https://www.cdph.ca.gov",
            phone="1-916-558-1784",
            email="reproductive.health@cdph.ca.gov",
        ),
    ),
}


def _clinics(state: str, services: List[str], insurance: List[str], rows) -> List[ClinicRecord]:
    return [
        ClinicRecord(
            name=name,
            address=address,
            state=state,
            phone=phone,
            services=list(services),
            accepted_insurance=list(insurance),
            latitude=latitude,
            longitude=longitude,
        )
        for name, address, phone, latitude, longitude in rows
    ]


_ABORTION_SERVICES = ["Abortion Services", "Birth Control", "HIV Testing", "STI Testing", "Emergency Contraception"]
_TESTING_SERVICES = ["Abortion Services", "Birth Control", "STD Testing", "Pregnancy Testing", "Emergency Contraception"]
_PREVENTIVE_SERVICES = ["Birth Control", "STD Testing", "Pregnancy Testing", "Emergency Contraception", "Cancer Screenings"]

FALLBACK_CLINICS: Dict[str, List[ClinicRecord]] = {
    "California": _clinics(
        "California",
        _ABORTION_SERVICES,
        ["Medi-Cal", "Family PACT", "Most Private Insurance"],
        [
            (
                "Planned Parenthood - San Francisco Health Center",
                "1522 Bush Street, San Francisco, CA 94109",
                "(415) 922-6789",
                37.7879, -122.4222,
            ),
            (
                "Planned Parenthood - Oakland Health Center",
                "1682 7th Street, Oakland, CA 94607",
                "(510) 300-3800",
                37.8050, -122.2943,
            ),
        ],
    ) + _clinics(
        "California",
        _TESTING_SERVICES,
        ["Medi-Cal", "Family PACT", "Most Private Insurance"],
        [
            (
                "Planned Parenthood - Sacramento Health Center",
                "201 29th Street, Sacramento, CA 95816",
                "(916) 446-6921",
                38.5722, -121.4679,
            )
        ],
    ),
    "New York": _clinics(
        "New York",
        _ABORTION_SERVICES,
        ["Medicaid", "Most Private Insurance"],
        [
            (
                "Planned Parenthood - Manhattan Health Center",
                "26 Bleecker Street, New York, NY 10012",
                "(212) 965-7000",
                40.7256, -73.9941,
            ),
            (
                "Planned Parenthood - Brooklyn Health Center",
                "44 Court Street, Brooklyn, NY 11201",
                "(718) 923-4000",
                40.6925, -73.9910,
            ),
        ],
    ) + _clinics(
        "New York",
        _TESTING_SERVICES,
        ["Medicaid", "Most Private Insurance"],
        [
            (
                "Planned Parenthood - Bronx Center",
                "349 East 149th Street, Bronx, NY 10451",
                "(718) 585-1220",
                40.8163, -73.9190,
            )
        ],
    ),
    "Texas": _clinics(
        "Texas",
        _PREVENTIVE_SERVICES,
        ["Private Insurance", "Medicaid"],
        [
            (
                "Planned Parenthood - North Austin Health Center",
                "8916 Research Blvd., Austin, TX 78758",
                "(512) 331-1288",
                30.3719, -97.7258,
            ),
            (
                "Planned Parenthood - Southwest Houston",
                "5800 Bellaire Blvd., Houston, TX 77081",
                "(713) 522-3976",
                29.7058, -95.4872,
            ),
            (
                "Planned Parenthood - Dallas South Health Center",
                "7989 West Virginia Drive, Dallas, TX 75237",
                "(214) 941-1233",
                32.6887, -96.8780,
            ),
        ],
    ),
    "Florida": _clinics(
        "Florida",
        _PREVENTIVE_SERVICES,
        ["Private Insurance", "Medicaid", "Florida Medicaid"],
        [
            (
                "Planned Parenthood - Orlando Health Center",
                "726 S Tampa Ave, Orlando, FL 32805",
                "(407) 246-1788",
                28.5346, -81.3970,
            ),
            (
                "Planned Parenthood - Miami Health Center",
                "3119 N Miami Ave, Miami, FL 33127",
                "(305) 441-2022",
                25.8067, -80.1953,
            ),
            (
                "Planned Parenthood - Tampa Health Center",
                "8068 N 56th St, Tampa, FL 33617",
                "(813) 980-3555",
                28.0348, -82.3937,
            ),
        ],
    ),
    "Illinois": _clinics(
        "Illinois",
        _TESTING_SERVICES,
        ["Private Insurance", "Medicaid", "Illinois Medicaid"],
        [
            (
                "Planned Parenthood - Near North Health Center",
                "1200 N LaSalle Dr, Chicago, IL 60610",
                "(312) 266-1033",
                41.9038, -87.6325,
            ),
            (
                "Planned Parenthood - Aurora Health Center",
                "3051 E New York St, Aurora, IL 60504",
                "(630) 585-0500",
                41.7607, -88.2313,
            ),
            (
                "Planned Parenthood - Springfield Health Center",
                "601 Bruns Lane, Springfield, IL 62702",
                "(217) 544-2744",
                39.7975, -89.7015,
            ),
        ],
    ),
}


class FallbackProvider:
    """Canned per-state records; lookups return copies so callers may mutate them."""

    def __init__(
        self,
        legal_info: Optional[Dict[str, LegalInfoRecord]] = None,
        clinics: Optional[Dict[str, List[ClinicRecord]]] = None,
    ):
        self._legal_info = FALLBACK_LEGAL_INFO if legal_info is None else legal_info
        self._clinics = FALLBACK_CLINICS if clinics is None else clinics

    def legal_info(self, state: str) -> Optional[LegalInfoRecord]:
        record = self._legal_info.get(state)
        return record.model_copy(deep=True) if record is not None else None

    def clinics(self, state: str) -> List[ClinicRecord]:
        return [clinic.model_copy(deep=True) for clinic in self._clinics.get(state, [])]
