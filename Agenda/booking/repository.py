"""Appointment repository facade over a record store."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from Agenda.booking.appointment import Appointment, FieldMap, parse_instant
from Agenda.booking.criteria import (
    FieldEquals,
    IsBefore,
    IsNotBlank,
    IsSameOrAfter,
    all_of,
)
from Agenda.booking.errors import InvalidInput, InvalidRange, NotFound, SlotTaken
from Agenda.booking.store import RecordStore
from Agenda.booking.validator import BookingValidator

LOGGER = logging.getLogger(__name__)


class AppointmentRepository:
    """Create, move, delete and list appointments without double booking.

    The overlap check and the following write are two store round trips.
    They are serialized per partition inside this process only; writers in
    other processes can still interleave between them.
    """

    def __init__(
        self,
        store: RecordStore,
        field_map: FieldMap | None = None,
        validator: BookingValidator | None = None,
        require_partition: bool = False,
    ) -> None:
        """Bind the facade to a store and its column names."""
        self.store = store
        self.field_map = field_map if field_map is not None else FieldMap()
        self.validator = (
            validator
            if validator is not None
            else BookingValidator(store, self.field_map)
        )
        self.require_partition = require_partition
        self._partition_locks: dict[str | None, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _partition_lock(self, partition: str | None) -> Iterator[None]:
        with self._locks_guard:
            lock = self._partition_locks.setdefault(partition, threading.Lock())
        with lock:
            yield

    def _lock_key(self, candidate: Appointment) -> str | None:
        # Unpartitioned bookings are checked globally, so they share one lock
        # with everything unless every booking is forced into a partition.
        return candidate.partition if self.require_partition else None

    def list(
        self,
        range_from: str | None,
        range_to: str | None,
        partition: str | None = None,
        search: str | None = None,
    ) -> list[Appointment]:
        """Return appointments starting in ``[range_from, range_to)``."""
        if not range_from or not range_to:
            raise InvalidRange("from and to are required (ISO-8601)")

        window_start = parse_instant(range_from)
        window_end = parse_instant(range_to)
        if window_start is None or window_end is None:
            raise InvalidRange("from and to must be ISO-8601 timestamps")

        criteria = all_of(
            IsSameOrAfter(self.field_map.start, window_start),
            IsBefore(self.field_map.start, window_end),
            FieldEquals(self.field_map.partition, partition) if partition else None,
        )
        records = self.store.select(criteria, sort_field=self.field_map.start)

        appointments: list[Appointment] = []
        for record in records:
            appointment = Appointment.from_record(
                record.id,
                record.fields,
                self.field_map,
            )
            if appointment is None:
                LOGGER.warning("Skipping record %s with unreadable times", record.id)
                continue
            if not window_start <= appointment.start < window_end:
                continue
            appointments.append(appointment)

        if search:
            needle = search.strip().lower()
            appointments = [
                appointment
                for appointment in appointments
                if needle in (appointment.label or "").lower()
            ]

        appointments.sort(key=lambda appointment: appointment.start)
        return appointments

    def partitions(self) -> list[str]:
        """Return the distinct partition keys in use, sorted."""
        records = self.store.select(all_of(IsNotBlank(self.field_map.partition)))
        keys: set[str] = set()
        for record in records:
            raw_value = record.fields.get(self.field_map.partition)
            if isinstance(raw_value, str) and raw_value.strip():
                keys.add(raw_value.strip())
        return sorted(keys)

    def get(self, record_id: str) -> Appointment:
        """Return one appointment by id."""
        record = self.store.get(record_id)
        if record is None:
            raise NotFound(f"appointment {record_id} not found")

        appointment = Appointment.from_record(record.id, record.fields, self.field_map)
        if appointment is None:
            raise NotFound(f"appointment {record_id} has unreadable times")
        return appointment

    def create(self, fields: Mapping[str, Any]) -> str:
        """Validate and insert a booking; return the new id."""
        if not isinstance(fields, Mapping):
            raise InvalidInput("request body must be a JSON object")

        candidate = Appointment.from_payload(fields)
        candidate.validate(require_partition=self.require_partition)

        with self._partition_lock(self._lock_key(candidate)):
            if not self.validator.admit(candidate):
                LOGGER.warning(
                    "Rejected %s booking %s - %s: slot taken",
                    candidate.kind,
                    candidate.start.isoformat(),
                    candidate.end.isoformat(),
                )
                raise SlotTaken("slot_taken")

            record = self.store.insert(candidate.to_fields(self.field_map))

        LOGGER.info("Created %s %s", candidate.kind, record.id)
        return record.id

    def update(self, record_id: str, fields: Mapping[str, Any]) -> None:
        """Move or edit a booking, keeping its kind."""
        if not isinstance(fields, Mapping):
            raise InvalidInput("request body must be a JSON object")

        current = self.get(record_id)
        candidate = Appointment.from_payload(fields, kind=current.kind)
        candidate.id = record_id
        candidate.validate(require_partition=self.require_partition)

        with self._partition_lock(self._lock_key(candidate)):
            if not self.validator.admit(candidate, exclude_id=record_id):
                LOGGER.warning("Rejected move of %s: slot taken", record_id)
                raise SlotTaken("slot_taken")

            self.store.replace(record_id, candidate.to_fields(self.field_map))

        LOGGER.info("Updated %s %s", candidate.kind, record_id)

    def delete(self, record_id: str) -> None:
        """Remove a booking."""
        self.store.remove(record_id)
        LOGGER.info("Deleted %s", record_id)
