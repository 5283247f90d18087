"""Async client for the Santander open-data REST API.

Documentation: http://datos.santander.es
"""

import asyncio
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx

from tus_mcp.data.config import TusConfig
from tus_mcp.data.parsers import (
    parse_estimate,
    parse_line,
    parse_sequence_entry,
    parse_stop,
    sort_sequence,
)
from tus_mcp.models.feed import Estimate, Line, SequenceEntry, Stop

logger = logging.getLogger(__name__)

LINES_ENDPOINT = "lineas_bus.json"
SEQUENCE_ENDPOINT = "lineas_bus_secuencia.json"
STOPS_ENDPOINT = "paradas_bus.json"
ESTIMATES_ENDPOINT = "control_flotas_estimaciones.json"

# Lucene special characters, except the * and ? wildcards
_LUCENE_SPECIAL = re.compile(r'([+\-&|!(){}\[\]^"~:\\/])')


class TusAPIError(Exception):
    """Raised when the open-data API cannot be reached or returns an error status."""


def lucene_escape(value: str) -> str:
    """Escape Lucene special characters (wildcards * and ? are kept).

    Example: "24C2/N" -> "24C2\\/N"
    """
    return _LUCENE_SPECIAL.sub(r"\\\1", value)


def escape_field(field_name: str) -> str:
    """Escape the namespace colon of an RDF field name."""
    return field_name.replace(":", "\\:")


def field_query(field_name: str, value: str) -> str:
    """Build a ``field:value`` clause.

    The namespace colon of RDF field names is escaped, e.g.
    ``field_query("ayto:NParada", "539")`` -> ``ayto\\:NParada:539``.
    """
    return f"{escape_field(field_name)}:{lucene_escape(value)}"


def normalize_label(label: str) -> str:
    """Normalize a line label for querying ("n3 " -> "N3")."""
    return str(label).upper().strip()


def line_query(label: str) -> str:
    """Query matching every sequence record of a line, by label or line field."""
    normalized = normalize_label(label)
    return (
        f"{field_query('dc:EtiquetaLinea', normalized)} OR "
        f"{field_query('ayto:Linea', normalized)}"
    )


def lines_query(labels: Iterable[str]) -> str:
    """Query matching sequence records of any of the given lines."""
    return " OR ".join(field_query("dc:EtiquetaLinea", label) for label in labels)


@dataclass
class Page:
    """All resources of a paginated endpoint, merged."""

    total: int
    resources: list[dict[str, Any]] = field(default_factory=list)


class OpenDataClient:
    """Async HTTP client for the TUS datasets of the Santander open-data portal.

    Usage:
        async with OpenDataClient(config) as client:
            stops = await client.search_stops("Valdecilla")
    """

    def __init__(
        self,
        config: TusConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Configuration with base URL, page size and timeout.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def open(self) -> None:
        """Create the HTTP client. No-op if already open."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.http_timeout_seconds,
                transport=self._transport,
            )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OpenDataClient":
        """Enter async context - create HTTP client."""
        self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        await self.aclose()

    async def _get_json(self, endpoint: str, params: dict[str, str]) -> dict[str, Any]:
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        url = f"{self._config.base_url.rstrip('/')}/{endpoint}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP {e.response.status_code} querying {endpoint}")
            raise TusAPIError(
                f"HTTP {e.response.status_code} error querying {endpoint}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise TusAPIError(f"Error querying {endpoint}: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid JSON from {endpoint}: {e}")
            raise TusAPIError(f"Invalid JSON response from {endpoint}") from e

        if not isinstance(data, dict):
            logger.error(f"Unexpected {type(data).__name__} body from {endpoint}")
            raise TusAPIError(f"Invalid JSON response from {endpoint}")
        return data

    async def fetch_all_pages(self, endpoint: str, query: str | None = None) -> Page:
        """Download every page of a paginated endpoint.

        The first page tells how many pages exist; the rest are fetched
        concurrently and appended in page order.

        Args:
            endpoint: Dataset file name, e.g. "paradas_bus.json".
            query: Optional Lucene filter.

        Returns:
            Page with the total item count and all resources.

        Raises:
            TusAPIError: If any page request fails.
        """
        params = {"items_per_page": str(self._config.items_per_page)}
        if query:
            params["query"] = query

        first = await self._get_json(endpoint, params)
        summary = first.get("summary") or {}
        try:
            pages = int(summary.get("pages") or 1)
            total = int(summary.get("items") or 0)
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Malformed page summary from {endpoint}: {summary!r}")
            raise TusAPIError(f"Invalid page summary from {endpoint}: {summary!r}") from e
        resources = list(first.get("resources") or [])

        if pages > 1:
            rest = await asyncio.gather(
                *(
                    self._get_json(endpoint, {**params, "page": str(page)})
                    for page in range(2, pages + 1)
                )
            )
            for data in rest:
                resources.extend(data.get("resources") or [])

        total = total or len(resources)
        logger.debug(f"Fetched {len(resources)} resources from {endpoint} ({pages} pages)")
        return Page(total=total, resources=resources)

    def _parse_estimates(self, resources: list[dict[str, Any]]) -> list[Estimate]:
        return [parse_estimate(r, timezone=self._config.timezone) for r in resources]

    # Lines

    async def list_lines(self) -> list[Line]:
        """List all bus lines."""
        page = await self.fetch_all_pages(LINES_ENDPOINT)
        return [parse_line(r) for r in page.resources]

    async def get_line(self, number: str) -> Line | None:
        """Get a line by its number ("1", "15", "N3")."""
        page = await self.fetch_all_pages(
            LINES_ENDPOINT, field_query("ayto:numero", normalize_label(number))
        )
        if not page.resources:
            return None
        return parse_line(page.resources[0])

    async def get_line_sequence(
        self, number: str, direction_code: int | None = None
    ) -> list[SequenceEntry]:
        """Get the ordered stop sequence of a line.

        Args:
            number: Line label.
            direction_code: 1 (outbound) or 2 (inbound); None for both.
        """
        query = line_query(number)
        if direction_code is not None:
            query = f"({query}) AND {field_query('ayto:SentidoRuta', str(direction_code))}"

        page = await self.fetch_all_pages(SEQUENCE_ENDPOINT, query)
        return sort_sequence([parse_sequence_entry(r) for r in page.resources])

    async def fetch_sequence_by_stop(self, stop_id: str) -> list[SequenceEntry]:
        """All sequence records mentioning a stop."""
        page = await self.fetch_all_pages(
            SEQUENCE_ENDPOINT, field_query("ayto:NParada", str(stop_id))
        )
        return sort_sequence([parse_sequence_entry(r) for r in page.resources])

    async def fetch_sequence_by_lines(self, labels: Iterable[str]) -> list[SequenceEntry]:
        """All sequence records of any of the given lines."""
        labels = [label for label in labels if label]
        if not labels:
            return []

        page = await self.fetch_all_pages(SEQUENCE_ENDPOINT, lines_query(labels))
        return sort_sequence([parse_sequence_entry(r) for r in page.resources])

    # Stops

    async def list_stops(self) -> list[Stop]:
        """List all bus stops."""
        page = await self.fetch_all_pages(STOPS_ENDPOINT)
        return [parse_stop(r) for r in page.resources]

    async def search_stops(self, text: str) -> list[Stop]:
        """Search stops whose name, address or direction label contains text."""
        escaped = lucene_escape(text.strip())
        query = " OR ".join(
            f"{escape_field(name)}:*{escaped}*"
            for name in ("ayto:parada", "vivo:address1", "ayto:sentido")
        )
        page = await self.fetch_all_pages(STOPS_ENDPOINT, query)
        return [parse_stop(r) for r in page.resources]

    async def get_stop(self, number: str) -> Stop | None:
        """Get a stop by its stop number."""
        page = await self.fetch_all_pages(
            STOPS_ENDPOINT, field_query("ayto:numero", str(number).strip())
        )
        if not page.resources:
            return None
        return parse_stop(page.resources[0])

    # Estimates

    async def fetch_all_estimates(self) -> list[Estimate]:
        """Current estimates for every stop (refreshed upstream every ~30 s)."""
        page = await self.fetch_all_pages(ESTIMATES_ENDPOINT)
        return self._parse_estimates(page.resources)

    async def fetch_estimates_by_stop(self, stop_id: str) -> list[Estimate]:
        """Current estimates at one stop."""
        page = await self.fetch_all_pages(
            ESTIMATES_ENDPOINT, field_query("ayto:paradaId", str(stop_id))
        )
        return self._parse_estimates(page.resources)

    async def fetch_estimates_by_line(self, line: str) -> list[Estimate]:
        """Current estimates for every stop of one line."""
        page = await self.fetch_all_pages(
            ESTIMATES_ENDPOINT, field_query("ayto:etiqLinea", normalize_label(line))
        )
        return self._parse_estimates(page.resources)
