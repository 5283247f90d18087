"""Route planning between two stops from line stop sequences.

The feed has no routing endpoint, so routes are derived client-side:
a line connects two stops when both appear in its sequence in the same
direction with the origin no further along the route than the destination.
When no line does, one-transfer itineraries are searched through the stops
of the lines serving the origin. Only lines with live buses are kept.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol

from tus_mcp.data.cache import EstimatesCache
from tus_mcp.models.feed import Estimate, SequenceEntry
from tus_mcp.models.responses import (
    DirectRoute,
    FirstLeg,
    NextBus,
    RoutePlan,
    SecondLeg,
    StopRef,
    TransferRoute,
)

logger = logging.getLogger(__name__)

MAX_TRANSFER_ROUTES = 5


class TransitDataSource(Protocol):
    """Fetch operations the planner needs from the open-data feed."""

    async def fetch_sequence_by_stop(self, stop_id: str) -> list[SequenceEntry]: ...

    async def fetch_sequence_by_lines(self, labels: Iterable[str]) -> list[SequenceEntry]: ...

    async def fetch_estimates_by_stop(self, stop_id: str) -> list[Estimate]: ...

    async def fetch_all_estimates(self) -> list[Estimate]: ...


def build_active_lines(estimates: Iterable[Estimate]) -> set[str]:
    """Uppercased labels of the lines with at least one live estimate."""
    return {e.line.upper() for e in estimates if e.line}


def is_active(line: str | None, active_lines: set[str]) -> bool:
    return bool(line) and line.upper() in active_lines


def distinct_lines(entries: Iterable[SequenceEntry]) -> list[str]:
    """Distinct line labels in first-seen order."""
    return list(dict.fromkeys(e.line for e in entries if e.line))


def index_by_stop(entries: Iterable[SequenceEntry]) -> dict[str, list[SequenceEntry]]:
    """Group sequence entries by stop id."""
    index: dict[str, list[SequenceEntry]] = {}
    for entry in entries:
        if not entry.stop_id:
            continue
        index.setdefault(entry.stop_id, []).append(entry)
    return index


def _reaches(start: SequenceEntry, end: SequenceEntry) -> bool:
    """True if a bus on start's line and direction later stops at end."""
    return (
        bool(start.line)
        and start.line == end.line
        and start.direction == end.direction
        and start.position_km <= end.position_km
    )


def _next_bus(
    origin_stop_id: str, line: str, origin_estimates: list[Estimate]
) -> NextBus | None:
    """Next-bus annotation from the first estimate of the line at the origin."""
    for estimate in origin_estimates:
        if estimate.stop_id is not None and estimate.stop_id != origin_stop_id:
            continue
        if not estimate.line or estimate.line.upper() != line.upper():
            continue
        if estimate.next_bus is None:
            return NextBus(destination=estimate.destination_1)
        return NextBus(
            minutes=estimate.next_bus.minutes,
            arrival_time=estimate.next_bus.arrival_time,
            destination=estimate.destination_1,
        )
    return None


def match_direct_routes(
    origin_stop_id: str,
    destination_stop_id: str,
    origin_entries: list[SequenceEntry],
    destination_entries: list[SequenceEntry],
    active_lines: set[str],
    origin_estimates: list[Estimate] | None = None,
) -> list[DirectRoute]:
    """Find lines serving origin then destination in one direction.

    At most one route per (line, direction) survives, the first found.

    Args:
        origin_stop_id: Origin stop number.
        destination_stop_id: Destination stop number.
        origin_entries: Sequence entries at the origin stop.
        destination_entries: Sequence entries at the destination stop.
        active_lines: Uppercased labels of lines currently running.
        origin_estimates: Live estimates at the origin, for next-bus annotation.

    Returns:
        Direct routes on active lines, in discovery order.
    """
    origin_estimates = origin_estimates or []
    seen: set[tuple] = set()
    routes: list[DirectRoute] = []

    for lo in origin_entries:
        for ld in destination_entries:
            if not _reaches(lo, ld):
                continue

            key = (lo.line, lo.direction)
            if key in seen:
                continue
            seen.add(key)

            if not is_active(lo.line, active_lines):
                continue

            routes.append(
                DirectRoute(
                    line=lo.line,
                    direction=lo.direction,
                    origin_stop=StopRef(number=origin_stop_id, name=lo.stop_name),
                    destination_stop=StopRef(number=destination_stop_id, name=ld.stop_name),
                    distance_km=round(ld.position_km - lo.position_km, 2),
                    next_bus=_next_bus(origin_stop_id, lo.line, origin_estimates),
                )
            )

    return routes


def match_transfer_routes(
    origin_stop_id: str,
    destination_stop_id: str,
    origin_line_sequences: list[SequenceEntry],
    destination_line_sequences: list[SequenceEntry],
    origin_entries: list[SequenceEntry],
    destination_entries: list[SequenceEntry],
    active_lines: set[str],
    limit: int = MAX_TRANSFER_ROUTES,
) -> list[TransferRoute]:
    """Find one-transfer itineraries through an intermediate stop.

    Candidate transfer stops are all stops of the lines serving the origin,
    however far along the line. At each one, any line that also stops at the
    destination further along in the same direction gives a second leg.
    The same (leg1 line, leg2 line, transfer stop) may come out more than once.

    Args:
        origin_stop_id: Origin stop number.
        destination_stop_id: Destination stop number.
        origin_line_sequences: Full sequences of the lines serving the origin.
        destination_line_sequences: Full sequences of the lines serving the destination.
        origin_entries: Sequence entries at the origin stop.
        destination_entries: Sequence entries at the destination stop.
        active_lines: Uppercased labels of lines currently running.
        limit: Maximum number of routes to return.

    Returns:
        Up to limit transfer routes whose two lines are active, in discovery order.
    """
    origin_lines = set(distinct_lines(origin_entries))
    stop_index = index_by_stop([*origin_line_sequences, *destination_line_sequences])

    # Insertion-ordered set of stops reachable on an origin line
    transfer_stops = dict.fromkeys(
        s.stop_id for s in origin_line_sequences if s.stop_id and s.line in origin_lines
    )

    routes: list[TransferRoute] = []

    for stop_id in transfer_stops:
        if stop_id in (origin_stop_id, destination_stop_id):
            continue

        first_leg = next(
            (s for s in origin_line_sequences if s.stop_id == stop_id and s.line in origin_lines),
            None,
        )
        if first_leg is None:
            continue

        origin_name = next(
            (lo.stop_name for lo in origin_entries if lo.line == first_leg.line),
            None,
        )

        for li in stop_index.get(stop_id, []):
            for ld in destination_entries:
                if not _reaches(li, ld):
                    continue

                if not (
                    is_active(first_leg.line, active_lines) and is_active(li.line, active_lines)
                ):
                    continue

                routes.append(
                    TransferRoute(
                        leg1=FirstLeg(
                            line=first_leg.line,
                            origin_stop=StopRef(
                                number=origin_stop_id, name=origin_name or origin_stop_id
                            ),
                            transfer_stop=StopRef(number=stop_id, name=first_leg.stop_name),
                        ),
                        leg2=SecondLeg(
                            line=li.line,
                            transfer_stop=StopRef(number=stop_id, name=li.stop_name),
                            destination_stop=StopRef(
                                number=destination_stop_id, name=ld.stop_name
                            ),
                        ),
                    )
                )
                if len(routes) >= limit:
                    return routes

    return routes


def build_summary(direct_count: int, transfer_count: int) -> str:
    """Human-readable summary of a plan."""
    if direct_count == 0 and transfer_count == 0:
        return "No routes found between these stops. Check the stop numbers with search_stops."
    return (
        f"Found {direct_count} direct route(s) and {transfer_count} transfer route(s)."
    )


class RoutePlanner:
    """Plans routes between stops against a data source and an estimates cache.

    Usage:
        planner = RoutePlanner(client, EstimatesCache(client.fetch_all_estimates))
        plan = await planner.plan_route("539", "1234")
    """

    def __init__(self, source: TransitDataSource, estimates_cache: EstimatesCache):
        self._source = source
        self._estimates_cache = estimates_cache

    @property
    def estimates_cache(self) -> EstimatesCache:
        return self._estimates_cache

    async def plan_route(self, origin_stop_id: str, destination_stop_id: str) -> RoutePlan:
        """Find direct routes, or one-transfer routes when there are none.

        The caller rejects equal stop ids before calling this.

        Args:
            origin_stop_id: Origin stop number.
            destination_stop_id: Destination stop number.

        Returns:
            RoutePlan; empty route lists when nothing connects the stops.

        Raises:
            TusAPIError: If any fetch fails. Nothing is retried.
        """
        origin_stop_id = str(origin_stop_id)
        destination_stop_id = str(destination_stop_id)

        origin_entries, destination_entries = await asyncio.gather(
            self._source.fetch_sequence_by_stop(origin_stop_id),
            self._source.fetch_sequence_by_stop(destination_stop_id),
        )

        (
            origin_line_sequences,
            destination_line_sequences,
            origin_estimates,
            all_estimates,
        ) = await asyncio.gather(
            self._source.fetch_sequence_by_lines(distinct_lines(origin_entries)),
            self._source.fetch_sequence_by_lines(distinct_lines(destination_entries)),
            self._source.fetch_estimates_by_stop(origin_stop_id),
            self._estimates_cache.get(),
        )

        active_lines = build_active_lines(all_estimates)
        logger.debug(
            f"Planning {origin_stop_id} -> {destination_stop_id}: "
            f"{len(origin_entries)} origin entries, {len(destination_entries)} destination "
            f"entries, {len(active_lines)} active lines"
        )

        direct_routes = match_direct_routes(
            origin_stop_id,
            destination_stop_id,
            origin_entries,
            destination_entries,
            active_lines,
            origin_estimates,
        )

        transfer_routes: list[TransferRoute] = []
        if not direct_routes:
            transfer_routes = match_transfer_routes(
                origin_stop_id,
                destination_stop_id,
                origin_line_sequences,
                destination_line_sequences,
                origin_entries,
                destination_entries,
                active_lines,
            )

        return RoutePlan(
            origin=origin_stop_id,
            destination=destination_stop_id,
            direct_routes=direct_routes,
            transfer_routes=transfer_routes,
            query_time=datetime.now(UTC).isoformat(),
            summary=build_summary(len(direct_routes), len(transfer_routes)),
        )
