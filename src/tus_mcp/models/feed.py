"""Pydantic models for records of the Santander open-data feed.

The feed publishes RDF-flavoured JSON with namespaced keys (``ayto:*``,
``dc:*``, ...). These models are the typed view produced by
``tus_mcp.data.parsers``; nothing outside the parsers reads raw keys.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Direction(str, Enum):
    """Direction of travel along a line.

    The feed encodes it in ``ayto:SentidoRuta`` as 1 (ida) or 2 (vuelta).
    """

    OUTBOUND = "outbound"
    INBOUND = "inbound"


class Line(BaseModel):
    """A bus line."""

    model_config = ConfigDict(frozen=True)

    line_id: str | None = None
    number: str | None = None  # e.g. "1", "15", "N3", "24C2"
    name: str | None = None
    updated_at: str | None = None
    uri: str | None = None


class Stop(BaseModel):
    """A bus stop."""

    model_config = ConfigDict(frozen=True)

    stop_id: str | None = None  # stop number, the identifier used for planning
    resource_id: str | None = None
    name: str | None = None
    address: str | None = None
    direction_label: str | None = None
    lat: float | None = None
    lon: float | None = None
    coord_x: float | None = None
    coord_y: float | None = None
    updated_at: str | None = None
    uri: str | None = None


class SequenceEntry(BaseModel):
    """One stop of a line's route, with its distance along the route.

    Within one (line, direction) pair, position_km grows monotonically along
    the physical route.
    """

    model_config = ConfigDict(frozen=True)

    line: str | None = None
    direction: Direction
    direction_code: int = 0
    position_km: float = 0.0
    stop_id: str | None = None
    stop_name: str | None = None
    subline: str | None = None
    route: str | None = None
    coord_x: float = 0.0
    coord_y: float = 0.0
    entry_id: str | None = None


class BusArrival(BaseModel):
    """An upcoming bus at a stop."""

    model_config = ConfigDict(frozen=True)

    seconds: int
    minutes: int
    distance_meters: int | None = None
    arrival_time: str  # HH:MM, local time
    destination: str | None = None


class Estimate(BaseModel):
    """Live arrival estimates for one line at one stop."""

    model_config = ConfigDict(frozen=True)

    stop_id: str | None = None
    line: str | None = None
    next_bus: BusArrival | None = None
    second_bus: BusArrival | None = None
    destination_1: str | None = None
    destination_2: str | None = None
    queried_at: str | None = None
    updated_at: str | None = None
    estimate_id: str | None = None
