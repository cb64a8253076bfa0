"""Google Places Text Search (new API) client."""

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from prospectflow.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
FIELD_MASK = (
    "places.displayName,places.formattedAddress,places.nationalPhoneNumber,"
    "places.websiteUri,places.googleMapsUri,nextPageToken"
)
PAGE_SIZE = 20


@dataclass(frozen=True)
class PlaceResult:
    display_name: Optional[str]
    formatted_address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    maps_url: Optional[str] = None


@dataclass(frozen=True)
class SearchPage:
    results: list[PlaceResult] = field(default_factory=list)
    next_page_token: Optional[str] = None


def _parse_place(place: dict) -> PlaceResult:
    return PlaceResult(
        display_name=(place.get("displayName") or {}).get("text"),
        formatted_address=place.get("formattedAddress"),
        phone=place.get("nationalPhoneNumber"),
        website=place.get("websiteUri"),
        maps_url=place.get("googleMapsUri"),
    )


class PlacesSearchClient:
    def __init__(self, api_key: str = "", timeout: float = 20.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def text_search(self, query: str, page_token: Optional[str] = None) -> SearchPage:
        """One page of results. Raises ProviderError on a non-2xx answer."""
        if not self.enabled:
            raise ProviderError("GOOGLE_PLACES_API_KEY is not configured")

        body = {"textQuery": query, "pageSize": PAGE_SIZE}
        if page_token:
            body["pageToken"] = page_token

        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(SEARCH_URL, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise ProviderError(f"Google API request failed: {e}") from e

        if response.status_code >= 300:
            raise ProviderError(f"Google API Error: {response.status_code} - {response.text[:300]}")

        data = response.json()
        places = [_parse_place(p) for p in data.get("places") or []]
        logger.info("Places search %r returned %d results", query, len(places))
        return SearchPage(results=places, next_page_token=data.get("nextPageToken"))
