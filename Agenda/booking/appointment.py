"""Appointment model shared by the validator, repository and routes."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from Agenda.booking.errors import InvalidInput

KIND_APPOINTMENT = "cita"
KIND_BLOCK = "bloqueo"
BOOKING_KINDS: tuple[str, ...] = (KIND_APPOINTMENT, KIND_BLOCK)

DEFAULT_KIND_COLORS: dict[str, str] = {
    KIND_APPOINTMENT: "#6366f1",
    KIND_BLOCK: "#64748b",
}

HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


def _string_or_none(raw_value: object) -> str | None:
    """Return a stripped, non-empty string value when possible."""
    if not isinstance(raw_value, str):
        return None

    stripped = raw_value.strip()
    return stripped or None


def parse_instant(raw_value: object) -> datetime | None:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    text = _string_or_none(raw_value)
    if text is None:
        return None

    normalized = text.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None

    # Stored values keep milliseconds only; validate the instant that is written.
    parsed = parsed.replace(microsecond=parsed.microsecond // 1000 * 1000)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_instant(instant: datetime) -> str:
    """Render an instant as UTC ISO-8601 with milliseconds and ``Z``."""
    utc_instant = instant.astimezone(timezone.utc)
    return utc_instant.isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def default_color(kind: str) -> str:
    """Return the presentation colour used when a request omits one."""
    return DEFAULT_KIND_COLORS.get(kind, DEFAULT_KIND_COLORS[KIND_APPOINTMENT])


@dataclass(frozen=True)
class FieldMap:
    """Column names used for appointments in the record store."""

    start: str = "inicio"
    end: str = "fin"
    label: str = "nombre"
    kind: str = "tipo"
    color: str = "color"
    partition: str = "trabajador"


class Appointment:
    """A booked appointment or a blocked slot on the calendar."""

    id: str | None
    start: datetime
    end: datetime
    kind: str
    label: str | None
    color: str
    partition: str | None

    def __init__(
        self,
        start: datetime,
        end: datetime,
        kind: str = KIND_APPOINTMENT,
        label: str | None = None,
        color: str | None = None,
        partition: str | None = None,
        appointment_id: str | None = None,
    ) -> None:
        """Initialize an appointment, filling kind-based defaults."""
        self.id = appointment_id
        self.start = start
        self.end = end
        self.kind = kind
        self.label = None if kind == KIND_BLOCK else label
        self.color = color if color is not None else default_color(kind)
        self.partition = partition

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        kind: str | None = None,
    ) -> Appointment:
        """Build an appointment from a JSON request body.

        ``kind`` overrides the body value; updates pass the stored kind
        because it cannot change after creation.
        """
        start = parse_instant(payload.get("start"))
        end = parse_instant(payload.get("end"))
        if start is None or end is None:
            raise InvalidInput("start and end must be ISO-8601 timestamps")

        if kind is None:
            raw_kind = payload.get("kind")
            kind = KIND_APPOINTMENT if raw_kind in (None, "") else raw_kind
        if kind not in BOOKING_KINDS:
            raise InvalidInput(f"kind must be one of: {', '.join(BOOKING_KINDS)}")

        raw_color = payload.get("color")
        color = _string_or_none(raw_color)
        if raw_color not in (None, "") and (
            color is None or not HEX_COLOR_PATTERN.match(color)
        ):
            raise InvalidInput("color must be a #rrggbb hex value")

        return cls(
            start=start,
            end=end,
            kind=kind,
            label=_string_or_none(payload.get("label")),
            color=color,
            partition=_string_or_none(payload.get("partition")),
        )

    @classmethod
    def from_record(
        cls,
        record_id: str,
        fields: Mapping[str, Any],
        field_map: FieldMap,
    ) -> Appointment | None:
        """Build an appointment from stored fields, or None if times are bad."""
        start = parse_instant(fields.get(field_map.start))
        end = parse_instant(fields.get(field_map.end))
        if start is None or end is None:
            return None

        kind = _string_or_none(fields.get(field_map.kind)) or KIND_APPOINTMENT
        return cls(
            start=start,
            end=end,
            kind=kind,
            label=_string_or_none(fields.get(field_map.label)),
            color=_string_or_none(fields.get(field_map.color)),
            partition=_string_or_none(fields.get(field_map.partition)),
            appointment_id=record_id,
        )

    @property
    def duration_minutes(self) -> int:
        """Return the appointment length in whole minutes."""
        return int((self.end - self.start).total_seconds() // 60)

    def validate(self, require_partition: bool = False) -> None:
        """Reject intervals and fields that cannot be booked."""
        if self.start >= self.end:
            raise InvalidInput("start must be before end")

        if self.kind == KIND_APPOINTMENT and not self.label:
            raise InvalidInput("label is required for appointments")

        if require_partition and not self.partition:
            raise InvalidInput("partition is required")

    def overlaps(self, other: Appointment) -> bool:
        """Check strict half-open overlap; touching intervals do not count."""
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> dict[str, Any]:
        """Serialize into the JSON shape returned by the API."""
        return {
            "id": self.id,
            "start": format_instant(self.start),
            "end": format_instant(self.end),
            "label": self.label,
            "color": self.color,
            "kind": self.kind,
            "partition": self.partition,
        }

    def to_fields(self, field_map: FieldMap) -> dict[str, Any]:
        """Serialize into record-store fields.

        Every mutable column is written so a replace clears stale values.
        """
        return {
            field_map.start: format_instant(self.start),
            field_map.end: format_instant(self.end),
            field_map.label: self.label,
            field_map.kind: self.kind,
            field_map.color: self.color,
            field_map.partition: self.partition,
        }
