"""Batch geocoding tool backed by a Nominatim-compatible search API."""

import asyncio
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from ..errors import GeocodingError
from .base import BaseTool

DEFAULT_GEOCODE_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "kaiyo-ai/1.0"


class LocationQuery(BaseModel):
    """One place to geocode."""

    amenity: str | None = Field(default=None, description="Specific venue or building")
    street: str | None = Field(default=None, description="Street address")
    city: str
    state: str | None = Field(default=None, description="State or province")
    country: str

    def _fields(self) -> list[tuple[str, str]]:
        pairs = [
            ("amenity", self.amenity),
            ("street", self.street),
            ("city", self.city),
            ("state", self.state),
            ("country", self.country),
        ]
        return [(key, value.strip()) for key, value in pairs if value and value.strip()]

    def label(self) -> str:
        """Space-joined non-empty fields, used to identify failures."""
        return " ".join(value for _, value in self._fields())

    def to_params(self) -> dict[str, str]:
        """Query parameters for the search endpoint."""
        return {"format": "json", **dict(self._fields())}


class GeocodeArguments(BaseModel):
    locations: list[LocationQuery] = Field(description="Locations to geocode")


class GeocodeHit(BaseModel):
    location: str
    results: list[dict[str, Any]]


class GeocodeMiss(BaseModel):
    error: str
    location: str


class Geocoder:
    """HTTP client for a Nominatim-style ``/search`` endpoint.

    Hidden design decisions:
    - Query parameter encoding
    - Upstream status and body handling
    - Ownership of the HTTP connection pool
    """

    def __init__(
        self,
        base_url: str = DEFAULT_GEOCODE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None
    ):
        """Initialize the geocoder.

        Args:
            base_url: Search endpoint URL
            user_agent: User-Agent header (Nominatim rejects anonymous clients)
            timeout: Per-request timeout in seconds
            client: Optional shared client; when given, it is not closed here
        """
        self._base_url = base_url
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def lookup(self, query: LocationQuery) -> list[dict[str, Any]]:
        """Geocode one location.

        Without an amenity only the best hit is returned; with an amenity
        every hit is returned, since several venues can share a name.

        Raises:
            GeocodingError: On transport errors, non-2xx status, an
                undecodable body or an empty result list
        """
        location = query.label()
        try:
            response = await self._client.get(
                self._base_url,
                params=query.to_params(),
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise GeocodingError(f"request failed: {e}", location) from e

        logger.debug(f"Geocode {response.request.url} -> {response.status_code}")

        if not response.is_success:
            raise GeocodingError(
                f"unexpected status {response.status_code}: {response.text[:200]}",
                location,
            )

        try:
            results = response.json()
        except ValueError as e:
            raise GeocodingError(f"invalid response body: {e}", location) from e

        if not isinstance(results, list) or not results:
            raise GeocodingError("no results", location)

        return results if query.amenity else results[:1]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class GeocodeTool(BaseTool):
    """Tool converting a batch of place descriptors to coordinates.

    Issues one lookup per descriptor. A failed descriptor is reported in
    place inside the result array; it never fails the whole batch.
    """

    def __init__(self, geocoder: Geocoder, max_concurrency: int = 2):
        """Initialize the geocoding tool.

        Args:
            geocoder: Client used for the lookups
            max_concurrency: Upper bound on simultaneous lookups
        """
        self._geocoder = geocoder
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))

    @property
    def name(self) -> str:
        return "get_geocode_data"

    @property
    def description(self) -> str:
        return (
            "Convert multiple place names to latitude/longitude in a single batch call. "
            "Pass an array of location objects."
        )

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "required": ["locations"],
            "properties": {
                "locations": {
                    "type": "array",
                    "description": "Array of location objects to geocode",
                    "items": {
                        "type": "object",
                        "required": ["city", "country"],
                        "properties": {
                            "amenity": {"type": "string", "description": "Optional: specific venue or building"},
                            "street": {"type": "string", "description": "Optional: street address"},
                            "city": {"type": "string"},
                            "state": {"type": "string", "description": "Optional: state/province"},
                            "country": {"type": "string"},
                        },
                    },
                },
            },
        }

    @property
    def arguments_model(self) -> type[BaseModel]:
        return GeocodeArguments

    async def _resolve(self, query: LocationQuery) -> dict[str, Any]:
        async with self._semaphore:
            try:
                results = await self._geocoder.lookup(query)
            except GeocodingError as e:
                logger.warning(f"Geocoding failed for {e.location!r}: {e}")
                return GeocodeMiss(error=str(e), location=e.location).model_dump()
        return GeocodeHit(location=query.label(), results=results).model_dump()

    async def run(self, arguments: GeocodeArguments) -> list[dict[str, Any]]:
        """Geocode every descriptor; one entry per descriptor, in order."""
        return list(await asyncio.gather(*(
            self._resolve(query) for query in arguments.locations
        )))
