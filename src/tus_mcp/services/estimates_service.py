"""Live arrival estimates per stop and per line."""

import asyncio
import logging
from datetime import UTC, datetime

from tus_mcp.data.client import OpenDataClient, TusAPIError
from tus_mcp.models.feed import BusArrival
from tus_mcp.models.responses import (
    ArrivalInfo,
    BusPosition,
    GetLineEstimatesResponse,
    GetStopEstimatesResponse,
    LineArrivals,
    StopResult,
)
from tus_mcp.services.line_service import line_summary
from tus_mcp.services.stop_service import stop_result

logger = logging.getLogger(__name__)


def arrival_info(arrival: BusArrival | None) -> ArrivalInfo | None:
    """Convert a parsed arrival to its response form."""
    if arrival is None:
        return None
    return ArrivalInfo(
        minutes=arrival.minutes,
        arrival_time=arrival.arrival_time,
        distance_meters=arrival.distance_meters,
        destination=arrival.destination,
    )


async def get_stop_estimates(client: OpenDataClient, stop_id: str) -> GetStopEstimatesResponse:
    """Get the next two buses of every line at a stop.

    Args:
        client: Open-data client.
        stop_id: Stop number.

    Returns:
        GetStopEstimatesResponse; estimates is empty (with a message) when no
        bus is currently reported for the stop.
    """
    stop, estimates = await asyncio.gather(
        client.get_stop(stop_id),
        client.fetch_estimates_by_stop(stop_id),
    )

    stop_info = stop_result(stop) if stop else StopResult(stop_id=stop_id)
    query_time = datetime.now(UTC).isoformat()

    if not estimates:
        return GetStopEstimatesResponse(
            stop=stop_info,
            estimates=[],
            count=0,
            message=(
                "No estimates available for this stop right now. There may be no buses "
                "in service or no lines assigned to the stop."
            ),
            query_time=query_time,
        )

    lines = [
        LineArrivals(
            line=e.line,
            next_bus=arrival_info(e.next_bus),
            second_bus=arrival_info(e.second_bus),
        )
        for e in estimates
    ]
    return GetStopEstimatesResponse(
        stop=stop_info,
        estimates=lines,
        count=len(lines),
        query_time=query_time,
    )


async def _stop_names(client: OpenDataClient) -> dict[str, str | None]:
    """Map stop number -> name; empty if the stop list can't be fetched."""
    try:
        stops = await client.list_stops()
    except TusAPIError as e:
        logger.warning(f"Failed to fetch stop names: {e}")
        return {}
    return {stop.stop_id: stop.name for stop in stops if stop.stop_id}


async def get_line_estimates(client: OpenDataClient, line: str) -> GetLineEstimatesResponse:
    """Get where the buses of a line are, by time to their next stop.

    Args:
        client: Open-data client.
        line: Line label (e.g. "1", "15", "N3").

    Returns:
        GetLineEstimatesResponse with positions sorted by seconds to arrival.
    """
    line_info, estimates = await asyncio.gather(
        client.get_line(line),
        client.fetch_estimates_by_line(line),
    )

    summary = line_summary(line_info, line)
    query_time = datetime.now(UTC).isoformat()

    if not estimates:
        return GetLineEstimatesResponse(
            line=summary,
            positions=[],
            stops_with_buses=0,
            message="No estimates available for this line right now.",
            query_time=query_time,
        )

    names = await _stop_names(client)

    upcoming = sorted(
        (e for e in estimates if e.next_bus is not None),
        key=lambda e: e.next_bus.seconds,
    )
    positions = [
        BusPosition(
            stop_id=e.stop_id,
            stop_name=names.get(e.stop_id) if e.stop_id else None,
            next_bus=arrival_info(e.next_bus),
        )
        for e in upcoming
    ]

    return GetLineEstimatesResponse(
        line=summary,
        positions=positions,
        stops_with_buses=len(estimates),
        query_time=query_time,
    )
