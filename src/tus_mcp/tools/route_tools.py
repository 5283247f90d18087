from mcp.server.fastmcp import Context
from mcp.server.fastmcp.exceptions import ToolError

from tus_mcp.app import get_app_context, mcp
from tus_mcp.models.responses import PlanRouteByNamesResponse, RoutePlan
from tus_mcp.services.route_service import PlaceNotFoundError, SameStopError
from tus_mcp.services.route_service import plan_route_by_names as _plan_route_by_names


@mcp.tool()
async def plan_route(origin_stop_id: str, destination_stop_id: str, ctx: Context) -> RoutePlan:
    """Plan a bus trip between two TUS stops.

    Finds direct routes (one line) and, when there are none, routes with one
    transfer. Only lines with buses currently in service are suggested, and
    direct routes include the real-time estimate of the next bus.

    Args:
        origin_stop_id: Origin stop number (e.g., "539").
        destination_stop_id: Destination stop number (e.g., "1234").

    Returns:
        RoutePlan with direct_routes, transfer_routes (max 5) and a summary.
    """
    if origin_stop_id.strip() == destination_stop_id.strip():
        raise ToolError("Origin and destination are the same stop.")

    planner = get_app_context(ctx).planner
    return await planner.plan_route(origin_stop_id.strip(), destination_stop_id.strip())


@mcp.tool()
async def plan_route_by_names(
    origin: str, destination: str, ctx: Context
) -> PlanRouteByNamesResponse:
    """Plan a bus trip between two places given by name or address.

    No stop numbers needed: the best stop match for each place is used and
    the route is planned between them.

    Args:
        origin: Origin place or address (e.g., "Hospital Valdecilla", "Sardinero").
        destination: Destination place or address (e.g., "Cuatro Caminos").

    Returns:
        PlanRouteByNamesResponse with the selected stops, alternatives and the plan.
    """
    app = get_app_context(ctx)
    try:
        return await _plan_route_by_names(app.client, app.planner, origin, destination)
    except (PlaceNotFoundError, SameStopError) as e:
        raise ToolError(str(e)) from e
