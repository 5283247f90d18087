"""Parse raw open-data records into typed feed models.

Upstream data quality is uncontrolled, so parsing never fails: missing or
malformed numeric fields fall back to a default instead of raising or
propagating NaN.
"""

import math
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from tus_mcp.models.feed import BusArrival, Direction, Estimate, Line, SequenceEntry, Stop

OUTBOUND_CODE = 1


def parse_float(value: Any, default: float | None = 0.0) -> float | None:
    """Parse a float, returning default for missing, malformed or NaN values."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(str(value).strip())
    except ValueError:
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def parse_int(value: Any, default: int = 0) -> int:
    """Parse an integer, truncating decimals (``"2.0"`` -> 2)."""
    result = parse_float(value, None)
    if result is None:
        return default
    return int(result)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_direction(value: Any) -> Direction:
    """Map ``ayto:SentidoRuta`` to a Direction: 1 is outbound, anything else inbound."""
    return Direction.OUTBOUND if parse_int(value) == OUTBOUND_CODE else Direction.INBOUND


def parse_sequence_entry(raw: dict[str, Any]) -> SequenceEntry:
    """Normalize a ``lineas_bus_secuencia`` record."""
    return SequenceEntry(
        line=_text(raw.get("dc:EtiquetaLinea")) or _text(raw.get("ayto:Linea")),
        direction=parse_direction(raw.get("ayto:SentidoRuta")),
        direction_code=parse_int(raw.get("ayto:SentidoRuta")),
        position_km=parse_float(raw.get("ayto:PuntoKM")),
        stop_id=_text(raw.get("ayto:NParada")),
        stop_name=_text(raw.get("ayto:NombreParada")),
        subline=_text(raw.get("ayto:NombreSublinea")),
        route=_text(raw.get("ayto:Ruta")),
        coord_x=parse_float(raw.get("ayto:PosX")),
        coord_y=parse_float(raw.get("ayto:PosY")),
        entry_id=_text(raw.get("dc:identifier")),
    )


def sort_sequence(entries: list[SequenceEntry]) -> list[SequenceEntry]:
    """Order entries by (direction, position along the route)."""
    return sorted(entries, key=lambda e: (e.direction_code, e.position_km))


def parse_line(raw: dict[str, Any]) -> Line:
    """Parse a ``lineas_bus`` record."""
    return Line(
        line_id=_text(raw.get("dc:identifier")),
        number=_text(raw.get("ayto:numero")),
        name=_text(raw.get("dc:name")),
        updated_at=_text(raw.get("dc:modified")),
        uri=_text(raw.get("uri")),
    )


def parse_stop(raw: dict[str, Any]) -> Stop:
    """Parse a ``paradas_bus`` record."""
    return Stop(
        stop_id=_text(raw.get("ayto:numero")),
        resource_id=_text(raw.get("dc:identifier")),
        name=_text(raw.get("ayto:parada")),
        address=_text(raw.get("vivo:address1")),
        direction_label=_text(raw.get("ayto:sentido")),
        lat=parse_float(raw.get("wgs84_pos:lat"), None),
        lon=parse_float(raw.get("wgs84_pos:long"), None),
        coord_x=parse_float(raw.get("gn:coordX"), None),
        coord_y=parse_float(raw.get("gn:coordY"), None),
        updated_at=_text(raw.get("dc:modified")),
        uri=_text(raw.get("uri")),
    )


def _parse_arrival(
    seconds_raw: Any,
    distance_raw: Any,
    destination: str | None,
    now: datetime,
) -> BusArrival | None:
    """Build a BusArrival; a negative or missing time means there is no bus."""
    seconds = parse_int(seconds_raw, -1)
    if seconds < 0:
        return None

    distance = parse_int(distance_raw, -1)
    return BusArrival(
        seconds=seconds,
        minutes=math.floor(seconds / 60 + 0.5),  # half-up
        distance_meters=distance if distance >= 0 else None,
        arrival_time=(now + timedelta(seconds=seconds)).strftime("%H:%M"),
        destination=destination,
    )


def parse_estimate(
    raw: dict[str, Any],
    timezone: str = "Europe/Madrid",
    now: datetime | None = None,
) -> Estimate:
    """Parse a ``control_flotas_estimaciones`` record.

    Args:
        raw: Raw record.
        timezone: IANA timezone used to render arrival clock times.
        now: Reference time for arrival clock times (default: current time).

    Returns:
        Estimate with up to two upcoming buses.
    """
    if now is None:
        now = datetime.now(ZoneInfo(timezone))

    destination_1 = _text(raw.get("ayto:destino1"))
    destination_2 = _text(raw.get("ayto:destino2"))

    return Estimate(
        stop_id=_text(raw.get("ayto:paradaId")),
        line=_text(raw.get("ayto:etiqLinea")),
        next_bus=_parse_arrival(
            raw.get("ayto:tiempo1"), raw.get("ayto:distancia1"), destination_1, now
        ),
        second_bus=_parse_arrival(
            raw.get("ayto:tiempo2"), raw.get("ayto:distancia2"), destination_2, now
        ),
        destination_1=destination_1,
        destination_2=destination_2,
        queried_at=_text(raw.get("ayto:fechActual")),
        updated_at=_text(raw.get("dc:modified")),
        estimate_id=_text(raw.get("dc:identifier")),
    )
