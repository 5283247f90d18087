"""Route planning from free-text place names."""

import asyncio
import logging

from tus_mcp.data.client import OpenDataClient
from tus_mcp.models.feed import Stop
from tus_mcp.models.responses import PlanRouteByNamesResponse, StopSearchInfo
from tus_mcp.services.route_planner import RoutePlanner
from tus_mcp.services.stop_service import stop_result

logger = logging.getLogger(__name__)

MAX_OTHER_STOPS = 3


class PlaceNotFoundError(LookupError):
    """Raised when a place name matches no stop."""


class SameStopError(ValueError):
    """Raised when origin and destination are the same stop."""


def _search_info(query: str, stops: list[Stop]) -> StopSearchInfo:
    return StopSearchInfo(
        query=query,
        selected_stop=stop_result(stops[0]),
        other_stops=[stop_result(s) for s in stops[1 : 1 + MAX_OTHER_STOPS]],
    )


async def plan_route_by_names(
    client: OpenDataClient,
    planner: RoutePlanner,
    origin: str,
    destination: str,
) -> PlanRouteByNamesResponse:
    """Plan a route between the first stops matching two place names.

    The first search hit is taken as-is, so results follow the upstream
    search ranking.

    Args:
        client: Open-data client used for the stop searches.
        planner: Route planner.
        origin: Origin place name or address.
        destination: Destination place name or address.

    Returns:
        PlanRouteByNamesResponse with the search context and the plan.

    Raises:
        PlaceNotFoundError: If either name matches no stop.
        SameStopError: If both names resolve to the same stop.
    """
    origin_hits, destination_hits = await asyncio.gather(
        client.search_stops(origin),
        client.search_stops(destination),
    )
    # Hits without a stop number can't be planned from
    origin_stops = [s for s in origin_hits if s.stop_id]
    destination_stops = [s for s in destination_hits if s.stop_id]

    if not origin_stops:
        raise PlaceNotFoundError(f'No stops found near "{origin}". Try a different name.')
    if not destination_stops:
        raise PlaceNotFoundError(f'No stops found near "{destination}". Try a different name.')

    origin_stop = origin_stops[0]
    destination_stop = destination_stops[0]
    if origin_stop.stop_id == destination_stop.stop_id:
        raise SameStopError(
            f'"{origin}" and "{destination}" resolve to the same stop ({origin_stop.stop_id}).'
        )

    logger.debug(
        f"Resolved '{origin}' -> {origin_stop.stop_id}, '{destination}' -> {destination_stop.stop_id}"
    )
    plan = await planner.plan_route(origin_stop.stop_id, destination_stop.stop_id)

    if plan.direct_routes or plan.transfer_routes:
        summary = (
            f"Found {len(plan.direct_routes)} direct route(s) and "
            f"{len(plan.transfer_routes)} transfer route(s) between "
            f'"{origin_stop.name}" and "{destination_stop.name}".'
        )
    else:
        summary = (
            f'No routes found between "{origin_stop.name}" and "{destination_stop.name}". '
            "Try other nearby stops with search_stops."
        )

    return PlanRouteByNamesResponse(
        origin_search=_search_info(origin, origin_stops),
        destination_search=_search_info(destination, destination_stops),
        plan=plan,
        summary=summary,
    )
