from typing import NamedTuple, Optional

import httpx

from hera.pipeline.retry import RetryPolicy, retry_async
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Coordinates(NamedTuple):
    lat: float
    lon: float


class GeocodioGeocoder:
    """Address to coordinates through the Geocodio API.

    Every failure mode (no API key, HTTP error, no match) yields None, and
    the calling source then drops the clinic.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        api_url: str = "https://api.geocod.io/v1.7/geocode",
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.api_url = api_url
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=1)

    async def geocode(self, address: str) -> Optional[Coordinates]:
        """Look up ``address``; None when it cannot be resolved."""
        if not self.api_key:
            LOGGER.debug("Geocoding skipped, GEOCODIO_API_KEY is not set")
            return None

        async def _lookup() -> httpx.Response:
            response = await self.http_client.get(self.api_url, params={"q": address, "api_key": self.api_key})
            response.raise_for_status()
            return response

        try:
            response = await retry_async(_lookup, self.retry_policy, description="geocode")
            results = response.json().get("results") or []
            if not results:
                LOGGER.info(f"No geocoding match for {address}")
                return None
            location = results[0]["location"]
            return Coordinates(lat=float(location["lat"]), lon=float(location["lng"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            LOGGER.error(f"Error geocoding address {address}: {e}")
            return None
