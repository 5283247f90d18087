"""MCP tools for searching stops."""

from mcp.server.fastmcp import Context
from mcp.server.fastmcp.exceptions import ToolError

from tus_mcp.app import get_app_context, mcp
from tus_mcp.models.responses import NearbyStopsResponse, SearchStopsResponse, StopResult
from tus_mcp.services.stop_service import get_stop as _get_stop
from tus_mcp.services.stop_service import nearby_stops as _nearby_stops
from tus_mcp.services.stop_service import search_stops as _search_stops


@mcp.tool()
async def search_stops(text: str, ctx: Context) -> SearchStopsResponse:
    """Search bus stops by name, address or area.

    Examples:
        search_stops(text="Valdecilla")
        search_stops(text="Plaza del Ayuntamiento")

    Args:
        text: Text to look for in the stop name or address.

    Returns:
        SearchStopsResponse with matching stops, their numbers and coordinates.
    """
    return await _search_stops(get_app_context(ctx).client, text)


@mcp.tool()
async def get_stop(stop_id: str, ctx: Context) -> StopResult:
    """Get a stop by its number: name, address, direction and GPS coordinates.

    Args:
        stop_id: Stop number (e.g., "539").
    """
    stop = await _get_stop(get_app_context(ctx).client, stop_id)
    if stop is None:
        raise ToolError(
            f'Stop "{stop_id}" not found. Use search_stops to find it by name.'
        )
    return stop


@mcp.tool()
async def nearby_stops(
    lat: float,
    lon: float,
    ctx: Context,
    limit: int = 5,
) -> NearbyStopsResponse:
    """Find the bus stops closest to GPS coordinates.

    Args:
        lat: Latitude in decimal degrees (e.g., 43.4628).
        lon: Longitude in decimal degrees (e.g., -3.8044).
        limit: Number of stops to return (1-20, default: 5).

    Returns:
        NearbyStopsResponse with stops sorted by distance_meters.
    """
    # Validate and clamp limit to 1-20
    limit = max(1, min(20, limit))

    return await _nearby_stops(get_app_context(ctx).client, lat, lon, limit)
