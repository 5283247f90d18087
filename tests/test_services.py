"""Tests for the line, stop, estimates and name-based route services."""

from unittest.mock import AsyncMock

import pytest

from tus_mcp.data.client import TusAPIError
from tus_mcp.data.parsers import parse_sequence_entry
from tus_mcp.models.feed import BusArrival, Direction, Estimate, Line, Stop
from tus_mcp.models.responses import RoutePlan
from tus_mcp.services import estimates_service, line_service, route_service, stop_service
from tus_mcp.services.route_service import PlaceNotFoundError, SameStopError


def _stop(stop_id: str, name: str, lat: float | None = None, lon: float | None = None) -> Stop:
    return Stop(stop_id=stop_id, name=name, address=f"Calle {name}", lat=lat, lon=lon)


def _arrival(seconds: int, destination: str | None = None) -> BusArrival:
    return BusArrival(
        seconds=seconds,
        minutes=seconds // 60,
        distance_meters=seconds * 5,
        arrival_time="10:05",
        destination=destination,
    )


# ============================================================================
# Lines
# ============================================================================


class TestListLines:
    async def test_lists_all_lines(self):
        client = AsyncMock()
        client.list_lines.return_value = [
            Line(line_id="1", number="1", name="Avda. Valdecilla - Sardinero"),
            Line(line_id="44", number="N3", name="Nocturno"),
        ]

        response = await line_service.list_lines(client)

        assert response.total == 2
        assert [line.number for line in response.lines] == ["1", "N3"]
        assert response.lines[1].name == "Nocturno"

    async def test_empty_network(self):
        client = AsyncMock()
        client.list_lines.return_value = []

        response = await line_service.list_lines(client)

        assert response.total == 0
        assert response.lines == []


class TestGetLine:
    def _sequence(self):
        rows = [
            ("1", "0.0", "100", "Valdecilla"),
            ("1", "1.5", "101", "Cuatro Caminos"),
            ("2", "0.0", "101", "Cuatro Caminos"),
            ("2", "1.4", "100", "Valdecilla"),
        ]
        return [
            parse_sequence_entry(
                {
                    "dc:EtiquetaLinea": "1",
                    "ayto:SentidoRuta": direction,
                    "ayto:PuntoKM": km,
                    "ayto:NParada": stop_id,
                    "ayto:NombreParada": name,
                }
            )
            for direction, km, stop_id, name in rows
        ]

    async def test_groups_stops_by_direction(self):
        client = AsyncMock()
        client.get_line.return_value = Line(number="1", name="Valdecilla - Sardinero")
        client.get_line_sequence.return_value = self._sequence()

        response = await line_service.get_line(client, "1")

        client.get_line_sequence.assert_awaited_once_with("1", None)
        assert response.total_stops == 4
        assert set(response.routes) == {Direction.OUTBOUND, Direction.INBOUND}
        outbound = response.routes[Direction.OUTBOUND]
        assert [(s.order, s.stop_id) for s in outbound] == [(1, "100"), (2, "101")]
        assert outbound[1].position_km == 1.5
        assert response.line.name == "Valdecilla - Sardinero"

    async def test_direction_filter_is_passed_as_code(self):
        client = AsyncMock()
        client.get_line.return_value = None
        client.get_line_sequence.return_value = self._sequence()[2:]

        response = await line_service.get_line(client, "1", "inbound")

        client.get_line_sequence.assert_awaited_once_with("1", 2)
        assert list(response.routes) == [Direction.INBOUND]
        # Unknown line metadata falls back to the queried number
        assert response.line.number == "1"

    async def test_missing_sequence_returns_none(self):
        client = AsyncMock()
        client.get_line.return_value = None
        client.get_line_sequence.return_value = []

        assert await line_service.get_line(client, "999") is None

    async def test_unknown_direction_raises(self):
        client = AsyncMock()

        with pytest.raises(ValueError, match="Unknown direction"):
            await line_service.get_line(client, "1", "sideways")


# ============================================================================
# Stops
# ============================================================================


class TestHaversineDistance:
    def test_same_point_is_zero(self):
        assert stop_service.haversine_distance(43.46, -3.80, 43.46, -3.80) == 0.0

    def test_one_degree_latitude(self):
        distance = stop_service.haversine_distance(43.0, -3.8, 44.0, -3.8)
        assert 111_000 < distance < 111_400


class TestSearchStops:
    async def test_returns_matches(self):
        client = AsyncMock()
        client.search_stops.return_value = [_stop("539", "Valdecilla", 43.455, -3.830)]

        response = await stop_service.search_stops(client, "Valdecilla")

        assert response.count == 1
        assert response.stops[0].stop_id == "539"
        assert response.stops[0].address == "Calle Valdecilla"
        assert response.message is None

    async def test_no_match_gives_message_and_suggestion(self):
        client = AsyncMock()
        client.search_stops.return_value = []

        response = await stop_service.search_stops(client, "Atlantis")

        assert response.count == 0
        assert response.stops == []
        assert "Atlantis" in response.message
        assert response.suggestion is not None


class TestGetStop:
    async def test_found(self):
        client = AsyncMock()
        client.get_stop.return_value = _stop("539", "Valdecilla")

        result = await stop_service.get_stop(client, "539")

        assert result.name == "Valdecilla"
        assert result.distance_meters is None

    async def test_not_found(self):
        client = AsyncMock()
        client.get_stop.return_value = None

        assert await stop_service.get_stop(client, "0") is None


class TestNearbyStops:
    async def test_sorted_by_distance_and_limited(self):
        client = AsyncMock()
        client.list_stops.return_value = [
            _stop("far", "Far", 43.50, -3.80),
            _stop("near", "Near", 43.4629, -3.8044),
            _stop("mid", "Mid", 43.47, -3.80),
            _stop("nowhere", "No coordinates"),
        ]

        response = await stop_service.nearby_stops(client, 43.4628, -3.8044, limit=2)

        assert response.count == 2
        assert [s.stop_id for s in response.stops] == ["near", "mid"]
        assert response.stops[0].distance_meters < response.stops[1].distance_meters
        assert response.stops[0].distance_meters == round(response.stops[0].distance_meters)

    async def test_skips_stops_without_coordinates(self):
        client = AsyncMock()
        client.list_stops.return_value = [_stop("nowhere", "No coordinates")]

        response = await stop_service.nearby_stops(client, 43.46, -3.80)

        assert response.stops == []
        assert response.count == 0


# ============================================================================
# Estimates
# ============================================================================


class TestGetStopEstimates:
    async def test_lists_lines_with_arrivals(self):
        client = AsyncMock()
        client.get_stop.return_value = _stop("539", "Valdecilla")
        client.fetch_estimates_by_stop.return_value = [
            Estimate(
                stop_id="539",
                line="15",
                next_bus=_arrival(120, "Sardinero"),
                second_bus=_arrival(900, "Sardinero"),
            ),
            Estimate(stop_id="539", line="7", next_bus=_arrival(60)),
        ]

        response = await estimates_service.get_stop_estimates(client, "539")

        assert response.stop.name == "Valdecilla"
        assert response.count == 2
        assert response.estimates[0].line == "15"
        assert response.estimates[0].next_bus.minutes == 2
        assert response.estimates[0].second_bus.minutes == 15
        assert response.estimates[1].second_bus is None
        assert response.message is None

    async def test_no_estimates_gives_message(self):
        client = AsyncMock()
        client.get_stop.return_value = None
        client.fetch_estimates_by_stop.return_value = []

        response = await estimates_service.get_stop_estimates(client, "539")

        assert response.count == 0
        assert response.estimates == []
        assert response.message.startswith("No estimates available")
        assert response.stop.stop_id == "539"


class TestGetLineEstimates:
    async def test_positions_sorted_by_time_with_stop_names(self):
        client = AsyncMock()
        client.get_line.return_value = Line(number="15", name="Valdecilla - Sardinero")
        client.fetch_estimates_by_line.return_value = [
            Estimate(stop_id="1234", line="15", next_bus=_arrival(600)),
            Estimate(stop_id="539", line="15", next_bus=_arrival(60)),
            Estimate(stop_id="700", line="15"),
        ]
        client.list_stops.return_value = [
            _stop("539", "Valdecilla"),
            _stop("1234", "Sardinero"),
        ]

        response = await estimates_service.get_line_estimates(client, "15")

        assert [p.stop_id for p in response.positions] == ["539", "1234"]
        assert [p.stop_name for p in response.positions] == ["Valdecilla", "Sardinero"]
        assert response.stops_with_buses == 3
        assert response.line.name == "Valdecilla - Sardinero"

    async def test_stop_names_are_optional(self):
        client = AsyncMock()
        client.get_line.return_value = None
        client.fetch_estimates_by_line.return_value = [
            Estimate(stop_id="539", line="15", next_bus=_arrival(60)),
        ]
        client.list_stops.side_effect = TusAPIError("HTTP 500 error querying paradas_bus.json")

        response = await estimates_service.get_line_estimates(client, "15")

        assert response.positions[0].stop_id == "539"
        assert response.positions[0].stop_name is None
        assert response.line.number == "15"

    async def test_no_estimates_gives_message(self):
        client = AsyncMock()
        client.get_line.return_value = None
        client.fetch_estimates_by_line.return_value = []

        response = await estimates_service.get_line_estimates(client, "99")

        assert response.positions == []
        assert response.stops_with_buses == 0
        assert response.message is not None
        client.list_stops.assert_not_awaited()


# ============================================================================
# Route planning by place names
# ============================================================================


def _plan(origin: str, destination: str, summary: str = "") -> RoutePlan:
    return RoutePlan(
        origin=origin,
        destination=destination,
        query_time="2026-03-02T10:00:00+00:00",
        summary=summary,
    )


class TestPlanRouteByNames:
    def _client(self, results: dict[str, list[Stop]]) -> AsyncMock:
        client = AsyncMock()
        client.search_stops.side_effect = lambda text: results.get(text, [])
        return client

    async def test_uses_first_hit_of_each_search(self):
        client = self._client(
            {
                "Valdecilla": [
                    _stop("539", "Valdecilla"),
                    _stop("540", "Valdecilla 2"),
                    _stop("541", "Valdecilla 3"),
                    _stop("542", "Valdecilla 4"),
                    _stop("543", "Valdecilla 5"),
                ],
                "Sardinero": [_stop("1234", "Sardinero")],
            }
        )
        planner = AsyncMock()
        planner.plan_route.return_value = _plan("539", "1234")

        response = await route_service.plan_route_by_names(
            client, planner, "Valdecilla", "Sardinero"
        )

        planner.plan_route.assert_awaited_once_with("539", "1234")
        assert response.origin_search.query == "Valdecilla"
        assert response.origin_search.selected_stop.stop_id == "539"
        assert [s.stop_id for s in response.origin_search.other_stops] == ["540", "541", "542"]
        assert response.destination_search.other_stops == []
        assert response.plan.origin == "539"
        assert response.summary.startswith('No routes found between "Valdecilla" and "Sardinero"')

    async def test_summary_counts_routes(self):
        client = self._client(
            {"A": [_stop("1", "Alpha")], "B": [_stop("2", "Beta")]}
        )
        plan = RoutePlan.model_validate(
            {
                "origin": "1",
                "destination": "2",
                "direct_routes": [
                    {
                        "line": "15",
                        "direction": "outbound",
                        "origin_stop": {"number": "1"},
                        "destination_stop": {"number": "2"},
                        "distance_km": 1.0,
                    }
                ],
                "query_time": "2026-03-02T10:00:00+00:00",
                "summary": "",
            }
        )
        planner = AsyncMock()
        planner.plan_route.return_value = plan

        response = await route_service.plan_route_by_names(client, planner, "A", "B")

        assert response.summary == (
            'Found 1 direct route(s) and 0 transfer route(s) between "Alpha" and "Beta".'
        )

    async def test_skips_hits_without_stop_number(self):
        client = self._client(
            {
                "Valdecilla": [Stop(name="Valdecilla (unnumbered)"), _stop("539", "Valdecilla")],
                "Sardinero": [Stop(name="Sardinero (unnumbered)"), _stop("1234", "Sardinero")],
            }
        )
        planner = AsyncMock()
        planner.plan_route.return_value = _plan("539", "1234")

        response = await route_service.plan_route_by_names(
            client, planner, "Valdecilla", "Sardinero"
        )

        planner.plan_route.assert_awaited_once_with("539", "1234")
        assert response.origin_search.selected_stop.stop_id == "539"
        assert response.destination_search.selected_stop.stop_id == "1234"

    async def test_only_unnumbered_hits_is_not_found(self):
        client = self._client(
            {
                "Valdecilla": [Stop(name="Valdecilla (unnumbered)")],
                "Sardinero": [Stop(name="Sardinero (unnumbered)")],
            }
        )
        planner = AsyncMock()

        with pytest.raises(PlaceNotFoundError, match="Valdecilla"):
            await route_service.plan_route_by_names(client, planner, "Valdecilla", "Sardinero")
        planner.plan_route.assert_not_awaited()

    async def test_unknown_origin_raises(self):
        client = self._client({"Sardinero": [_stop("1234", "Sardinero")]})
        planner = AsyncMock()

        with pytest.raises(PlaceNotFoundError, match="Atlantis"):
            await route_service.plan_route_by_names(client, planner, "Atlantis", "Sardinero")
        planner.plan_route.assert_not_awaited()

    async def test_unknown_destination_raises(self):
        client = self._client({"Sardinero": [_stop("1234", "Sardinero")]})

        with pytest.raises(PlaceNotFoundError, match="Atlantis"):
            await route_service.plan_route_by_names(client, AsyncMock(), "Sardinero", "Atlantis")

    async def test_same_stop_raises(self):
        client = self._client(
            {
                "Sardinero": [_stop("1234", "Sardinero")],
                "Playa Sardinero": [_stop("1234", "Sardinero")],
            }
        )

        with pytest.raises(SameStopError):
            await route_service.plan_route_by_names(
                client, AsyncMock(), "Sardinero", "Playa Sardinero"
            )
