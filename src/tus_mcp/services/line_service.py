"""Line listing and stop-sequence lookup."""

from tus_mcp.data.client import OpenDataClient
from tus_mcp.models.feed import Direction, Line
from tus_mcp.models.responses import (
    GetLineResponse,
    LineSummary,
    ListLinesResponse,
    SequenceStop,
)

# Tool-level direction names -> ayto:SentidoRuta codes (None = both)
DIRECTION_CODES: dict[str, int | None] = {
    "outbound": 1,
    "inbound": 2,
    "both": None,
}


def line_summary(line: Line | None, number: str | None = None) -> LineSummary:
    """Summarize a line, falling back to the queried number when unknown."""
    if line is None:
        return LineSummary(number=number)
    return LineSummary(number=line.number or number, name=line.name, line_id=line.line_id)


async def list_lines(client: OpenDataClient) -> ListLinesResponse:
    """List every line of the network."""
    lines = await client.list_lines()
    return ListLinesResponse(
        lines=[line_summary(line) for line in lines],
        total=len(lines),
    )


async def get_line(
    client: OpenDataClient,
    number: str,
    direction: str = "both",
) -> GetLineResponse | None:
    """Get a line with its ordered stops per direction.

    Args:
        client: Open-data client.
        number: Line label (e.g. "1", "15", "N3").
        direction: "outbound", "inbound" or "both".

    Returns:
        GetLineResponse, or None if the line has no stop sequence.

    Raises:
        ValueError: If direction is not recognized.
    """
    if direction not in DIRECTION_CODES:
        raise ValueError(f"Unknown direction '{direction}'")

    line = await client.get_line(number)
    sequence = await client.get_line_sequence(number, DIRECTION_CODES[direction])
    if not sequence:
        return None

    routes: dict[Direction, list[SequenceStop]] = {}
    for entry in sequence:
        stops = routes.setdefault(entry.direction, [])
        stops.append(
            SequenceStop(
                order=len(stops) + 1,
                stop_id=entry.stop_id,
                stop_name=entry.stop_name,
                position_km=entry.position_km,
            )
        )

    return GetLineResponse(
        line=line_summary(line, number),
        routes=routes,
        total_stops=len(sequence),
    )
