from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from hera.sources.clinic_sources import (
    CLINIC_DIRECTORIES,
    INSURANCE_PLACEHOLDER,
    SERVICES_PLACEHOLDER,
    DirectoryScraperSource,
    PlannedParenthoodClinicSource,
)
from hera.sources.geocoder import Coordinates

BASE_URL = "https://pp.example"


def stub_geocoder(coordinates=Coordinates(lat=38.58, lon=-121.49)):
    geocoder = MagicMock()
    geocoder.geocode = AsyncMock(return_value=coordinates)
    return geocoder


def detail(clinic_id, **overrides):
    data = {
        "name": f"PP Center {clinic_id}",
        "street_address": f"{clinic_id} Main St",
        "city": "Sacramento",
        "state": "CA",
        "zip": "95814",
        "phone": "(916) 555-0100",
        "services": [{"name": "Birth Control"}, {"name": "Abortion Pill"}],
        "insurance_plans": [{"name": "Medi-Cal"}],
    }
    data.update(overrides)
    return data


class PPDirectory:
    """Mock handler for the search and detail endpoints."""

    def __init__(self, pages, details, failing_pages=(), failing_details=()):
        self.pages = pages
        self.details = details
        self.failing_pages = set(failing_pages)
        self.failing_details = set(failing_details)
        self.search_params = []
        self.detail_requests = []

    def __call__(self, request):
        path = request.url.path
        if path == "/api/v1/health-center/search":
            page = int(request.url.params["page"])
            self.search_params.append(dict(request.url.params))
            if page in self.failing_pages:
                return httpx.Response(503)
            return httpx.Response(200, json={"results": self.pages.get(page, [])})

        clinic_id = int(path.rsplit("/", 1)[-1])
        self.detail_requests.append(clinic_id)
        if clinic_id in self.failing_details:
            return httpx.Response(500)
        return httpx.Response(200, json=self.details.get(clinic_id, {}))



@pytest.fixture
def make_pp_source(fast_policy, sleep_recorder):
    def _make(handler, geocoder=None, page_size=2):
        return PlannedParenthoodClinicSource(
            httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            fast_policy,
            sleep=sleep_recorder,
            geocoder=geocoder if geocoder is not None else stub_geocoder(),
            base_url=BASE_URL,
            page_size=page_size,
            detail_delay=1.0,
        )

    return _make


class TestPlannedParenthoodClinicSource:
    @pytest.mark.asyncio
    async def test_pages_until_short_page(self, make_pp_source, sleep_recorder):
        directory = PPDirectory(
            pages={1: [{"id": 1}, {"id": 2}], 2: [{"id": 3}]},
            details={i: detail(i) for i in (1, 2, 3)},
        )

        clinics = await make_pp_source(directory).collect("California")

        assert [p["page"] for p in directory.search_params] == ["1", "2"]
        assert directory.search_params[0] == {"state": "California", "page": "1", "per_page": "2"}
        assert [c.name for c in clinics] == ["PP Center 1", "PP Center 2", "PP Center 3"]
        assert clinics[0].address == "1 Main St, Sacramento, CA 95814"
        assert clinics[0].state == "California"
        assert clinics[0].services == ["Birth Control", "Abortion Pill"]
        assert clinics[0].accepted_insurance == ["Medi-Cal"]
        assert sleep_recorder.delays.count(1.0) == 3

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self, make_pp_source):
        directory = PPDirectory(pages={1: [{"id": 1}, {"id": 2}]}, details={1: detail(1), 2: detail(2)})

        clinics = await make_pp_source(directory).collect("California")

        assert len(clinics) == 2
        assert [p["page"] for p in directory.search_params] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_failed_detail_skips_only_that_clinic(self, make_pp_source):
        directory = PPDirectory(
            pages={1: [{"id": 1}, {"id": 2}, {"id": 3}]},
            details={1: detail(1), 3: detail(3)},
            failing_details={2},
        )

        clinics = await make_pp_source(directory, page_size=10).collect("California")

        assert [c.name for c in clinics] == ["PP Center 1", "PP Center 3"]
        assert directory.detail_requests.count(2) == 2

    @pytest.mark.asyncio
    async def test_missing_detail_fields_fall_back_to_search_result(self, make_pp_source):
        directory = PPDirectory(
            pages={
                1: [
                    {
                        "id": 7,
                        "name": "Search Name",
                        "street_address": "7 Elm",
                        "city": "Austin",
                        "state": "TX",
                        "zip": "78701",
                        "phone": "(512) 555-0107",
                    }
                ]
            },
            details={7: {}},
        )

        clinics = await make_pp_source(directory, page_size=10).collect("Texas")

        assert clinics[0].name == "Search Name"
        assert clinics[0].state == "Texas"
        assert clinics[0].phone == "(512) 555-0107"
        assert clinics[0].services == SERVICES_PLACEHOLDER
        assert clinics[0].accepted_insurance == INSURANCE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_clinic_without_phone_is_rejected(self, make_pp_source):
        geocoder = stub_geocoder()
        directory = PPDirectory(
            pages={1: [{"id": 1}, {"id": 2}]},
            details={1: detail(1, phone=None), 2: detail(2)},
        )

        clinics = await make_pp_source(directory, geocoder=geocoder, page_size=10).collect("California")

        assert [c.name for c in clinics] == ["PP Center 2"]
        geocoder.geocode.assert_awaited_once_with("2 Main St, Sacramento, CA 95814")

    @pytest.mark.asyncio
    async def test_clinic_without_coordinates_is_rejected(self, make_pp_source):
        directory = PPDirectory(pages={1: [{"id": 1}]}, details={1: detail(1)})

        clinics = await make_pp_source(directory, geocoder=stub_geocoder(None)).collect("California")

        assert clinics == []

    @pytest.mark.asyncio
    async def test_malformed_search_results_are_skipped(self, make_pp_source):
        directory = PPDirectory(
            pages={1: ["not-a-result", {"name": "No id"}, {"id": 3}]},
            details={3: detail(3)},
        )

        clinics = await make_pp_source(directory, page_size=10).collect("California")

        assert [c.name for c in clinics] == ["PP Center 3"]
        assert directory.detail_requests == [3]

    @pytest.mark.asyncio
    async def test_first_page_failure_degrades_to_empty(self, make_pp_source):
        directory = PPDirectory(pages={}, details={}, failing_pages={1})

        assert await make_pp_source(directory).collect("California") == []

    @pytest.mark.asyncio
    async def test_later_page_failure_keeps_collected_clinics(self, make_pp_source):
        directory = PPDirectory(
            pages={1: [{"id": 1}, {"id": 2}]},
            details={1: detail(1), 2: detail(2)},
            failing_pages={2},
        )

        clinics = await make_pp_source(directory).collect("California")

        assert len(clinics) == 2

    @pytest.mark.asyncio
    async def test_geocoder_fills_coordinates(self, make_pp_source):
        geocoder = stub_geocoder()
        directory = PPDirectory(pages={1: [{"id": 1}]}, details={1: detail(1)})

        clinics = await make_pp_source(directory, geocoder=geocoder).collect("California")

        geocoder.geocode.assert_awaited_once_with("1 Main St, Sacramento, CA 95814")
        assert (clinics[0].latitude, clinics[0].longitude) == (38.58, -121.49)


DIRECTORY_PAGE = """
<html><body>
  <div class="clinic-location">
    <h3>Choices Women's Medical Center</h3>
    <div class="address">147-32 Jamaica Ave</div>
    <div class="address">Queens, NY 11435</div>
    <div class="phone">(718) 555-0134</div>
    <ul class="services"><li>Medical Abortion</li><li>Counseling</li></ul>
    <ul class="insurance"><li>Medicaid</li></ul>
  </div>
  <div class="health-center">
    <span class="name">Brooklyn Clinic</span>
    <span class="address">1 Court St, Brooklyn, NY</span>
    <span class="phone">(718) 555-0199</span>
  </div>
  <div class="provider-listing">
    <span class="name">No Phone Clinic</span>
    <span class="address">9 Main St, Albany, NY</span>
  </div>
  <div class="location-item"><span class="name">No Address Clinic</span></div>
</body></html>
"""


def directory_source(handler, fast_policy, sleep_recorder, geocoder=None, name="abortionclinics"):
    return DirectoryScraperSource(
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        fast_policy,
        sleep=sleep_recorder,
        geocoder=geocoder if geocoder is not None else stub_geocoder(Coordinates(lat=40.7, lon=-73.8)),
        name=name,
        url_template=CLINIC_DIRECTORIES[name],
    )


class TestDirectoryScraperSource:
    @pytest.mark.asyncio
    async def test_scrapes_clinic_cards(self, fast_policy, sleep_recorder):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, text=DIRECTORY_PAGE)

        clinics = await directory_source(handler, fast_policy, sleep_recorder).collect("New York")

        assert requested == ["https://www.abortionclinics.com/states/new-york"]
        assert [c.name for c in clinics] == ["Choices Women's Medical Center", "Brooklyn Clinic"]
        assert clinics[0].address == "147-32 Jamaica Ave Queens, NY 11435"
        assert clinics[0].services == ["Medical Abortion", "Counseling"]
        assert clinics[0].accepted_insurance == ["Medicaid"]
        assert (clinics[0].latitude, clinics[0].longitude) == (40.7, -73.8)
        assert clinics[1].phone == "(718) 555-0199"
        assert clinics[1].services == SERVICES_PLACEHOLDER
        assert all(c.state == "New York" for c in clinics)

    @pytest.mark.asyncio
    async def test_card_without_phone_or_coordinates_is_dropped(self, fast_policy, sleep_recorder):
        page = """
        <div class="clinic-location">
          <h3>Reno Clinic</h3>
          <div class="address">1 Virginia St, Reno, NV</div>
        </div>
        """
        def handler(request):
            return httpx.Response(200, text=page)

        missing_phone = directory_source(handler, fast_policy, sleep_recorder, name="prochoice")
        assert await missing_phone.collect("Nevada") == []

        ungeocodable = directory_source(
            lambda request: httpx.Response(200, text=DIRECTORY_PAGE),
            fast_policy,
            sleep_recorder,
            geocoder=stub_geocoder(None),
        )
        assert await ungeocodable.collect("New York") == []

    def test_url_template_uses_display_name(self, fast_policy):
        source = DirectoryScraperSource(
            MagicMock(),
            fast_policy,
            name="abortionfinder",
            url_template=CLINIC_DIRECTORIES["abortionfinder"],
        )

        assert source.page_url("New York") == "https://www.abortionfinder.org/results?state=New York"

    @pytest.mark.asyncio
    async def test_blocked_directory_returns_empty(self, fast_policy, sleep_recorder):
        source = directory_source(lambda request: httpx.Response(403), fast_policy, sleep_recorder, name="napawf")

        assert await source.collect("Ohio") == []
