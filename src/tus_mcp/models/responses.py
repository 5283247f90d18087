from typing import Literal

from pydantic import BaseModel, Field

from tus_mcp.models.feed import Direction


class LineSummary(BaseModel):
    number: str | None = None
    name: str | None = None
    line_id: str | None = None


class ListLinesResponse(BaseModel):
    lines: list[LineSummary]
    total: int = Field(description="Number of lines returned")


class SequenceStop(BaseModel):
    order: int = Field(description="1-based position of the stop in this direction")
    stop_id: str | None = None
    stop_name: str | None = None
    position_km: float = Field(description="Distance along the route in kilometers")


class GetLineResponse(BaseModel):
    line: LineSummary
    routes: dict[Direction, list[SequenceStop]] = Field(
        description="Ordered stops per direction (outbound=ida, inbound=vuelta)"
    )
    total_stops: int


class StopResult(BaseModel):
    stop_id: str | None = Field(default=None, description="Stop number")
    name: str | None = None
    address: str | None = None
    direction_label: str | None = None
    lat: float | None = None
    lon: float | None = None
    distance_meters: float | None = Field(
        default=None, description="Distance from query coordinates (nearby search only)"
    )


class SearchStopsResponse(BaseModel):
    stops: list[StopResult]
    count: int = Field(description="Number of stops returned")
    message: str | None = None
    suggestion: str | None = None


class NearbyStopsResponse(BaseModel):
    lat: float
    lon: float
    stops: list[StopResult]
    count: int


class ArrivalInfo(BaseModel):
    minutes: int = Field(description="Minutes until arrival")
    arrival_time: str = Field(description="Estimated arrival clock time (HH:MM)")
    distance_meters: int | None = None
    destination: str | None = None


class LineArrivals(BaseModel):
    line: str | None = None
    next_bus: ArrivalInfo | None = None
    second_bus: ArrivalInfo | None = Field(
        default=None, description="Null when no second bus is reported"
    )


class GetStopEstimatesResponse(BaseModel):
    stop: StopResult
    estimates: list[LineArrivals]
    count: int = Field(description="Number of lines with estimates")
    message: str | None = None
    query_time: str = Field(description="ISO timestamp of the query")


class BusPosition(BaseModel):
    stop_id: str | None = None
    stop_name: str | None = None
    next_bus: ArrivalInfo


class GetLineEstimatesResponse(BaseModel):
    line: LineSummary
    positions: list[BusPosition] = Field(description="Buses sorted by time to next stop")
    stops_with_buses: int = Field(description="Estimate records before filtering")
    message: str | None = None
    query_time: str


# Route Planning Models


class StopRef(BaseModel):
    number: str
    name: str | None = None


class NextBus(BaseModel):
    """Next bus of a direct route at the origin stop."""

    minutes: int | None = None
    arrival_time: str | None = None
    destination: str | None = None


class DirectRoute(BaseModel):
    """Single-line itinerary between two stops in one direction."""

    kind: Literal["direct"] = "direct"
    line: str
    direction: Direction
    origin_stop: StopRef
    destination_stop: StopRef
    distance_km: float = Field(description="Distance along the route, 2 decimals, >= 0")
    next_bus: NextBus | None = None


class FirstLeg(BaseModel):
    line: str
    origin_stop: StopRef
    transfer_stop: StopRef


class SecondLeg(BaseModel):
    line: str
    transfer_stop: StopRef
    destination_stop: StopRef


class TransferRoute(BaseModel):
    """Two-line itinerary through one intermediate stop."""

    kind: Literal["transfer"] = "transfer"
    leg1: FirstLeg = Field(description="Origin -> transfer stop")
    leg2: SecondLeg = Field(description="Transfer stop -> destination")


class RoutePlan(BaseModel):
    """Response from plan_route tool."""

    origin: str
    destination: str
    direct_routes: list[DirectRoute] = Field(default_factory=list)
    transfer_routes: list[TransferRoute] = Field(
        default_factory=list, description="At most 5, only when no direct route exists"
    )
    query_time: str = Field(description="ISO timestamp of the query")
    summary: str


class StopSearchInfo(BaseModel):
    query: str = Field(description="Original place name")
    selected_stop: StopResult
    other_stops: list[StopResult] = Field(
        default_factory=list, description="Up to 3 further search hits"
    )


class PlanRouteByNamesResponse(BaseModel):
    origin_search: StopSearchInfo
    destination_search: StopSearchInfo
    plan: RoutePlan
    summary: str
