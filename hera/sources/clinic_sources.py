"""Sources that discover clinics for a state."""

from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup
from pydantic import ValidationError

from hera.pipeline.states import resolve_state
from hera.schemas.records import ClinicRecord
from hera.sources.base import BaseSource, text_of
from hera.sources.geocoder import GeocodioGeocoder
from hera.sources.legal_sources import state_path
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

PLANNED_PARENTHOOD_BASE_URL = "https://www.plannedparenthood.org"
PLANNED_PARENTHOOD_SEARCH_PATH = "/api/v1/health-center/search"
PLANNED_PARENTHOOD_DETAIL_PATH = "/api/v1/health-center"

SERVICES_PLACEHOLDER = ["Contact clinic for services"]
INSURANCE_PLACEHOLDER = ["Contact clinic for insurance information"]

CLINIC_CARD_SELECTOR = ".clinic-location, .health-center, .provider-listing, .location-item"
NAME_SELECTOR = ".name, .title, h3, .location-name"
ADDRESS_SELECTOR = ".address, .location, .clinic-address"
PHONE_SELECTOR = ".phone, .telephone, .clinic-phone"
SERVICES_SELECTOR = ".services li, .procedures li, .service-list li"
INSURANCE_SELECTOR = ".insurance li, .payment li, .insurance-list li"


class ClinicSource(BaseSource[List[ClinicRecord]]):
    def __init__(self, *args, geocoder: Optional[GeocodioGeocoder] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.geocoder = geocoder

    def empty_result(self, state: str) -> List[ClinicRecord]:
        return []

    async def build_clinic(self, **fields) -> Optional[ClinicRecord]:
        """Geocode the address and validate; None if the clinic is unusable.

        A clinic without a phone number or resolvable coordinates is dropped
        whole, never stored with those fields blank.
        """
        phone = fields.get("phone")
        if not isinstance(phone, str) or not phone.strip():
            return self._reject(fields, "no phone number")

        coordinates = None
        if self.geocoder is not None and fields.get("address"):
            coordinates = await self.geocoder.geocode(fields["address"])
        if coordinates is None:
            return self._reject(fields, "address could not be geocoded")
        fields["latitude"], fields["longitude"] = coordinates.lat, coordinates.lon

        try:
            return ClinicRecord(**fields)
        except ValidationError as e:
            return self._reject(fields, e.errors()[0].get("msg"))

    def _reject(self, fields: Dict[str, Any], reason: str) -> None:
        LOGGER.warning(
            f"Rejected clinic from {self.name}: {reason}",
            extra={"source": self.name, "clinic_name": fields.get("name")},
        )
        return None


def _names(items: Any) -> List[str]:
    if not isinstance(items, list):
        return []
    names = []
    for item in items:
        value = item.get("name") if isinstance(item, dict) else item
        if isinstance(value, str) and value.strip():
            names.append(value.strip())
    return names


class PlannedParenthoodClinicSource(ClinicSource):
    """Planned Parenthood health-center directory (paged JSON search plus per-center detail).

    Detail requests run one at a time with ``detail_delay`` seconds between
    them, a stricter pace than the outer crawl queue provides.
    """

    name = "planned_parenthood_clinics"

    def __init__(
        self,
        *args,
        base_url: str = PLANNED_PARENTHOOD_BASE_URL,
        page_size: int = 100,
        detail_delay: float = 1.0,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.base_url = base_url
        self.page_size = page_size
        self.detail_delay = detail_delay

    async def fetch(self, state: str) -> List[ClinicRecord]:
        clinics: List[ClinicRecord] = []
        page = 1

        while True:
            LOGGER.info(f"Fetching PP clinics for {state}, page {page}...")
            try:
                data = await self.fetch_json(
                    f"{self.base_url}{PLANNED_PARENTHOOD_SEARCH_PATH}",
                    params={"state": state, "page": page, "per_page": self.page_size},
                )
            except (httpx.HTTPError, ValueError):
                if not clinics:
                    raise
                LOGGER.warning(f"PP search failed on page {page} for {state}, keeping {len(clinics)} clinics")
                break

            results = data.get("results") if isinstance(data, dict) else None
            if not isinstance(results, list) or not results:
                break

            for result in results:
                clinic = await self._clinic_from_result(result, state)
                if clinic is not None:
                    clinics.append(clinic)
                await self._sleep(self.detail_delay)

            if len(results) < self.page_size:
                break
            page += 1

        LOGGER.info(f"Found {len(clinics)} PP clinics for {state}")
        return clinics

    async def _clinic_from_result(self, result: Any, state: str) -> Optional[ClinicRecord]:
        if not isinstance(result, dict) or "id" not in result:
            LOGGER.warning(f"Skipping malformed PP search result for {state}", extra={"result": str(result)[:200]})
            return None
        try:
            detail = await self.fetch_json(f"{self.base_url}{PLANNED_PARENTHOOD_DETAIL_PATH}/{result['id']}")
        except (httpx.HTTPError, ValueError) as e:
            LOGGER.error(f"Error fetching PP clinic details: {e}", extra={"state": state})
            return None
        if not isinstance(detail, dict):
            detail = {}

        def pick(key: str) -> Any:
            return detail.get(key) or result.get(key)

        address = (
            f"{pick('street_address') or ''}, {pick('city') or ''}, {pick('state') or ''} {pick('zip') or ''}"
        ).strip()

        return await self.build_clinic(
            name=pick("name") or "Planned Parenthood Health Center",
            address=address,
            state=resolve_state(pick("state")) or pick("state") or "",
            phone=pick("phone"),
            services=_names(detail.get("services")) or _names(result.get("services")) or list(SERVICES_PLACEHOLDER),
            accepted_insurance=_names(detail.get("insurance_plans")) or list(INSURANCE_PLACEHOLDER),
        )


class DirectoryScraperSource(ClinicSource):
    """An HTML clinic directory read with the shared clinic-card selectors."""

    def __init__(self, *args, name: str, url_template: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = name
        self.url_template = url_template

    def page_url(self, state: str) -> str:
        return self.url_template.format(state=state, slug=state_path(state))

    async def fetch(self, state: str) -> List[ClinicRecord]:
        soup = await self.fetch_html(self.page_url(state))
        clinics = []
        for card in soup.select(CLINIC_CARD_SELECTOR):
            clinic = await self._clinic_from_card(card, state)
            if clinic is not None:
                clinics.append(clinic)
        LOGGER.info(f"Scraped {len(clinics)} clinics from {self.name} for {state}")
        return clinics

    async def _clinic_from_card(self, card: BeautifulSoup, state: str) -> Optional[ClinicRecord]:
        name = text_of(card.select_one(NAME_SELECTOR))
        address = " ".join(text_of(node) for node in card.select(ADDRESS_SELECTOR)).strip()
        if not name or not address:
            return None

        phone = text_of(card.select_one(PHONE_SELECTOR))
        services = [text for text in (text_of(li) for li in card.select(SERVICES_SELECTOR)) if text]
        insurance = [text for text in (text_of(li) for li in card.select(INSURANCE_SELECTOR)) if text]

        return await self.build_clinic(
            name=name,
            address=address,
            state=state,
            phone=phone,
            services=services or list(SERVICES_PLACEHOLDER),
            accepted_insurance=insurance or list(INSURANCE_PLACEHOLDER),
        )


# name -> URL template; {state} is the display name, {slug} the lowercase path form
CLINIC_DIRECTORIES = {
    "abortionfinder": "https://www.abortionfinder.org/results?state={state}",
    "abortionclinics": "https://www.abortionclinics.com/states/{slug}",
    "napawf": "https://www.napawf.org/abortion-access/states/{slug}",
    "prochoice": "https://prochoice.org/patients/find-a-provider/states/{slug}",
}
