"""Factory for the planning tool registry."""

import httpx

from .geocode import Geocoder, GeocodeTool
from .registry import ToolRegistry


def create_default_registry(
    geocode_base_url: str,
    geocode_user_agent: str,
    geocode_timeout: float = 10.0,
    geocode_max_concurrency: int = 2,
    http_client: httpx.AsyncClient | None = None
) -> tuple[ToolRegistry, Geocoder]:
    """Build the registry of tools offered while planning.

    Args:
        geocode_base_url: Geocoding search endpoint
        geocode_user_agent: User-Agent sent to the geocoding service
        geocode_timeout: Per-request timeout in seconds
        geocode_max_concurrency: Simultaneous lookups per batch
        http_client: Optional shared HTTP client (e.g. for tests)

    Returns:
        Tuple of (registry, geocoder); the caller closes the geocoder
    """
    geocoder = Geocoder(
        base_url=geocode_base_url,
        user_agent=geocode_user_agent,
        timeout=geocode_timeout,
        client=http_client,
    )
    registry = ToolRegistry([GeocodeTool(geocoder, max_concurrency=geocode_max_concurrency)])
    return registry, geocoder
