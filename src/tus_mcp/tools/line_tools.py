"""MCP tools for bus lines."""

from typing import Literal

from mcp.server.fastmcp import Context
from mcp.server.fastmcp.exceptions import ToolError

from tus_mcp.app import get_app_context, mcp
from tus_mcp.models.responses import GetLineResponse, ListLinesResponse
from tus_mcp.services.line_service import get_line as _get_line
from tus_mcp.services.line_service import list_lines as _list_lines


@mcp.tool()
async def list_lines(ctx: Context) -> ListLinesResponse:
    """List every TUS Santander urban bus line with its number and route name.

    Use it to find out which lines exist before asking for details.

    Returns:
        ListLinesResponse with all lines and the total count.
    """
    return await _list_lines(get_app_context(ctx).client)


@mcp.tool()
async def get_line(
    line_number: str,
    ctx: Context,
    direction: Literal["outbound", "inbound", "both"] = "both",
) -> GetLineResponse:
    """Get a bus line with its ordered stop sequence per direction.

    Args:
        line_number: Line number or label (e.g., "1", "15", "N3", "24C2").
        direction: "outbound" (ida), "inbound" (vuelta) or "both" (default).

    Returns:
        GetLineResponse with stops grouped by direction, each with its order,
        stop number, name and kilometer point.
    """
    response = await _get_line(get_app_context(ctx).client, line_number, direction)
    if response is None:
        raise ToolError(
            f'Line "{line_number}" not found. Use list_lines to see the available lines.'
        )
    return response
