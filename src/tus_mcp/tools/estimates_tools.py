from mcp.server.fastmcp import Context

from tus_mcp.app import get_app_context, mcp
from tus_mcp.models.responses import GetLineEstimatesResponse, GetStopEstimatesResponse
from tus_mcp.services.estimates_service import get_line_estimates as _get_line_estimates
from tus_mcp.services.estimates_service import get_stop_estimates as _get_stop_estimates


@mcp.tool()
async def get_stop_estimates(stop_id: str, ctx: Context) -> GetStopEstimatesResponse:
    """Get real-time arrival estimates at a bus stop.

    For every line serving the stop, returns minutes and clock time of the
    next bus and, when reported, the one after.

    Args:
        stop_id: Stop number (e.g., "539").

    Returns:
        GetStopEstimatesResponse with one entry per line.
    """
    return await _get_stop_estimates(get_app_context(ctx).client, stop_id)


@mcp.tool()
async def get_line_estimates(line_number: str, ctx: Context) -> GetLineEstimatesResponse:
    """Get real-time positions of the buses running on a line.

    Shows at which stops the buses of the line are expected and how soon.

    Args:
        line_number: Line number or label (e.g., "1", "15", "N3").

    Returns:
        GetLineEstimatesResponse with bus positions sorted by time.
    """
    return await _get_line_estimates(get_app_context(ctx).client, line_number)
