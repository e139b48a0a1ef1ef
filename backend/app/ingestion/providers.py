"""
providers.py — Async HTTP clients for the upstream environmental providers.

Three upstreams feed the risk pipeline:

    WeatherProvider        weatherapi.com current conditions by region name
    PollutionProvider      weatherapi.com air quality by coordinates or name
    WaterQualityProvider   data.gov.in bulk water-quality dataset (paginated)

Error Handling Strategy
========================
Providers do not retry and do not swallow failures. Every failure is raised
as a typed error so the regional fetcher can log it and substitute the
documented default:

    Missing credentials     → ProviderNotConfiguredError
                              (except pollution, which degrades to a
                               placeholder reading, and water, which serves
                               the simulation sample)
    Network / HTTP errors   → ExternalServiceError
    Upstream error payload  → ExternalServiceError

Each provider owns one lazily-created ``httpx.AsyncClient`` that is reused
across all regions of a pass and closed on application shutdown.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import ExternalServiceError, ProviderNotConfiguredError
from backend.app.ingestion.models import (
    PollutionReading,
    WaterQualityRecord,
    WeatherReading,
)
from backend.app.ingestion.normalizer import parse_aqi_index, to_number

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

WEATHERAPI_SERVICE = "weatherapi"
WATER_SERVICE = "data.gov.in"
SIMULATION_SOURCE = "simulation"

# Served when no water API key is configured so the dashboard still shows
# a representative spread of labels.
SIMULATED_WATER_RECORDS: List[WaterQualityRecord] = [
    WaterQualityRecord("M001", "Ganga (Varanasi)", "Uttar Pradesh", "Varanasi", "Dissolved Oxygen", "3.8"),
    WaterQualityRecord("D002", "Yamuna (Okhla)", "Delhi", "New Delhi", "BOD", "45"),
    WaterQualityRecord("K003", "Vrishabhavathi", "Karnataka", "Bengaluru", "pH", "8.5"),
    WaterQualityRecord("M004", "Mithi River", "Maharashtra", "Mumbai", "BOD", "30"),
]


class _HttpProvider:
    """Shared client lifecycle for the HTTP providers."""

    service_name = "upstream"

    def __init__(
        self,
        *,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                self.service_name,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                self.service_name, str(e) or type(e).__name__,
            ) from e
        except ValueError as e:
            raise ExternalServiceError(
                self.service_name, f"Invalid JSON: {e}",
            ) from e


# ═══════════════════════════════════════════════════════════════════════════
# weatherapi.com
# ═══════════════════════════════════════════════════════════════════════════

class _WeatherApiProvider(_HttpProvider):
    """
    Base for weatherapi.com lookups.

    ``current.json?aqi=yes`` returns both current conditions and the
    ``air_quality`` block, so weather and pollution share one endpoint.
    """

    service_name = WEATHERAPI_SERVICE

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = settings.WEATHER_API_BASE_URL,
        country: str = settings.WEATHER_DEFAULT_COUNTRY,
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.country = country

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def query_for_name(self, name: str) -> str:
        """Bare region names are pinned to the default country."""
        return name if "," in name else f"{name}, {self.country}"

    async def _current(self, query: str) -> Dict[str, Any]:
        data = await self._get_json(
            f"{self.base_url}/current.json",
            {"key": self.api_key, "q": query, "aqi": "yes"},
        )
        if not isinstance(data, dict):
            raise ExternalServiceError(self.service_name, "Unexpected payload", query=query)
        if data.get("error"):
            message = (data["error"] or {}).get("message", "unknown error")
            raise ExternalServiceError(self.service_name, message, query=query)
        return data


class WeatherProvider(_WeatherApiProvider):
    """Current weather by region name."""

    async def fetch_weather(self, region_name: str) -> WeatherReading:
        if not self.is_configured:
            raise ProviderNotConfiguredError(self.service_name, "WEATHER_API_KEY")

        data = await self._current(self.query_for_name(region_name))
        current = data.get("current") or {}
        location = data.get("location") or {}
        condition = current.get("condition") or {}

        return WeatherReading(
            city=location.get("name") or region_name,
            temp=to_number(current.get("temp_c")),
            humidity=to_number(current.get("humidity")),
            wind_speed=to_number(current.get("wind_kph", current.get("wind_mph"))),
            description=condition.get("text") or "",
            rain_last_3h=to_number(current.get("precip_mm")),
        )


class PollutionProvider(_WeatherApiProvider):
    """
    Air quality by coordinates (preferred) or by region name.

    Without an API key, or when the upstream has no ``air_quality`` block,
    the provider returns the degraded placeholder (pm25=0, no index).
    """

    async def fetch_by_coordinates(
        self, latitude: float, longitude: float, *, label: str,
    ) -> PollutionReading:
        if not self.is_configured:
            return PollutionReading.placeholder(label)
        data = await self._current(f"{latitude:.4f},{longitude:.4f}")
        return self._parse(data, label)

    async def fetch_by_name(self, region_name: str) -> PollutionReading:
        if not self.is_configured:
            return PollutionReading.placeholder(region_name)
        data = await self._current(self.query_for_name(region_name))
        return self._parse(data, region_name)

    @staticmethod
    def _parse(data: Mapping[str, Any], label: str) -> PollutionReading:
        current = data.get("current") or {}
        air = current.get("air_quality") or {}
        if not air:
            return PollutionReading.placeholder(label)

        return PollutionReading(
            city=label,
            pm25=to_number(air.get("pm2_5")),
            pm10=to_number(air.get("pm10")),
            us_epa_index=parse_aqi_index(air.get("us-epa-index")),
            last_updated=str(current.get("last_updated") or ""),
        )


# ═══════════════════════════════════════════════════════════════════════════
# data.gov.in water quality
# ═══════════════════════════════════════════════════════════════════════════

class WaterQualityProvider(_HttpProvider):
    """
    Bulk water-quality dataset with offset pagination.

    Pagination stops at the first of:
        • an empty or short page (fewer rows than ``page_limit``)
        • ``offset >= total`` when the upstream reports a total
        • ``max_pages`` pages fetched

    A failure on the first page raises; a failure on a later page keeps the
    rows already fetched and logs a warning.
    """

    service_name = WATER_SERVICE

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = settings.WATER_API_BASE_URL,
        resource_id: str = settings.WATER_RESOURCE_ID,
        page_limit: int = settings.WATER_PAGE_LIMIT,
        max_pages: int = settings.WATER_MAX_PAGES,
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.resource_id = resource_id
        self.page_limit = max(1, page_limit)
        self.max_pages = max(1, max_pages)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def source(self) -> str:
        return self.service_name if self.is_configured else SIMULATION_SOURCE

    async def fetch_dataset(self) -> List[WaterQualityRecord]:
        if not self.is_configured:
            logger.info("No water API key, serving simulation dataset")
            return list(SIMULATED_WATER_RECORDS)

        records: List[WaterQualityRecord] = []
        offset = 0
        for page in range(self.max_pages):
            try:
                data = await self._fetch_page(offset)
            except ExternalServiceError:
                if page == 0:
                    raise
                logger.warning(
                    "Water dataset page %d failed; keeping %d records",
                    page, len(records),
                    extra={"provider": self.service_name, "water_records": len(records)},
                )
                break

            rows = data.get("records") or []
            records.extend(
                WaterQualityRecord.from_raw(row) for row in rows if isinstance(row, Mapping)
            )
            offset += len(rows)

            total = to_number(data.get("total"), default=-1.0)
            if len(rows) < self.page_limit or (total >= 0 and offset >= total):
                break

        logger.info(
            "Fetched %d water-quality records", len(records),
            extra={"provider": self.service_name, "water_records": len(records)},
        )
        return records

    async def _fetch_page(self, offset: int) -> Dict[str, Any]:
        data = await self._get_json(
            f"{self.base_url}/{self.resource_id}",
            {
                "api-key": self.api_key,
                "format": "json",
                "offset": offset,
                "limit": self.page_limit,
            },
        )
        if not isinstance(data, dict):
            raise ExternalServiceError(self.service_name, "Unexpected payload", offset=offset)
        return data
