"""Stop search service."""

import math

from tus_mcp.data.client import OpenDataClient
from tus_mcp.models.feed import Stop
from tus_mcp.models.responses import NearbyStopsResponse, SearchStopsResponse, StopResult

# Earth's radius in meters for haversine calculation
EARTH_RADIUS_METERS = 6_371_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points in meters.

    Args:
        lat1, lon1: First point coordinates in degrees.
        lat2, lon2: Second point coordinates in degrees.

    Returns:
        Distance in meters.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def stop_result(stop: Stop, distance: float | None = None) -> StopResult:
    """Convert a Stop to a StopResult."""
    return StopResult(
        stop_id=stop.stop_id,
        name=stop.name,
        address=stop.address,
        direction_label=stop.direction_label,
        lat=stop.lat,
        lon=stop.lon,
        distance_meters=distance,
    )


async def search_stops(client: OpenDataClient, text: str) -> SearchStopsResponse:
    """Search stops by name, address or direction label.

    Args:
        client: Open-data client.
        text: Text to look for (e.g. "Valdecilla", "Sardinero").

    Returns:
        SearchStopsResponse; when nothing matches it carries a message and a
        suggestion instead of stops.
    """
    stops = await client.search_stops(text)
    if not stops:
        return SearchStopsResponse(
            stops=[],
            count=0,
            message=f'No stops match "{text}".',
            suggestion="Try a broader term such as the neighbourhood or main street.",
        )

    results = [stop_result(stop) for stop in stops]
    return SearchStopsResponse(stops=results, count=len(results))


async def get_stop(client: OpenDataClient, stop_id: str) -> StopResult | None:
    """Get a stop by its number, or None if it doesn't exist."""
    stop = await client.get_stop(stop_id)
    if stop is None:
        return None
    return stop_result(stop)


async def nearby_stops(
    client: OpenDataClient,
    lat: float,
    lon: float,
    limit: int = 5,
) -> NearbyStopsResponse:
    """Find the stops closest to a point.

    Stops without coordinates are skipped.

    Args:
        client: Open-data client.
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.
        limit: Number of stops to return.

    Returns:
        NearbyStopsResponse with stops sorted by distance.
    """
    stops = await client.list_stops()

    with_distance = [
        (stop, haversine_distance(lat, lon, stop.lat, stop.lon))
        for stop in stops
        if stop.lat is not None and stop.lon is not None
    ]
    with_distance.sort(key=lambda pair: pair[1])

    results = [stop_result(stop, round(distance)) for stop, distance in with_distance[:limit]]
    return NearbyStopsResponse(lat=lat, lon=lon, stops=results, count=len(results))
