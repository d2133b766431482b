"""Overlap check run before every booking write."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from Agenda.booking.appointment import Appointment, FieldMap
from Agenda.booking.criteria import (
    AnyOf,
    FieldEquals,
    IsAfter,
    IsBefore,
    IsBlank,
    RecordIdIsNot,
    all_of,
)
from Agenda.booking.errors import InvalidInput
from Agenda.booking.store import RecordStore

LOGGER = logging.getLogger(__name__)

SLOT_TAKEN_REASON = "slot_taken"


@dataclass(frozen=True)
class Decision:
    """Outcome of an admission check."""

    admitted: bool
    reason: str | None = None
    conflict_id: str | None = None

    def __bool__(self) -> bool:
        return self.admitted

    @classmethod
    def admit(cls) -> Decision:
        return cls(admitted=True)

    @classmethod
    def reject(cls, conflict_id: str | None = None) -> Decision:
        return cls(
            admitted=False,
            reason=SLOT_TAKEN_REASON,
            conflict_id=conflict_id,
        )


class BookingValidator:
    """Decide whether a candidate slot is free in its partition."""

    def __init__(self, store: RecordStore, field_map: FieldMap) -> None:
        """Check candidates against ``store`` using ``field_map`` columns."""
        self.store = store
        self.field_map = field_map

    def admit(
        self,
        candidate: Appointment,
        exclude_id: str | None = None,
    ) -> Decision:
        """Admit the candidate unless a stored slot overlaps it.

        A stored record ``R`` conflicts when ``R.start < candidate.end`` and
        ``R.end > candidate.start``. With a partition only records of that
        partition and unpartitioned records are considered; without one the
        check is global.
        ``exclude_id`` skips the record being updated.
        """
        if candidate.start >= candidate.end:
            raise InvalidInput("start must be before end")

        criteria = all_of(
            RecordIdIsNot(exclude_id) if exclude_id else None,
            (
                AnyOf(
                    (
                        FieldEquals(self.field_map.partition, candidate.partition),
                        IsBlank(self.field_map.partition),
                    )
                )
                if candidate.partition
                else None
            ),
            IsBefore(self.field_map.start, candidate.end),
            IsAfter(self.field_map.end, candidate.start),
        )
        conflicts = self.store.select(criteria, max_records=1)
        if conflicts:
            LOGGER.info(
                "Slot %s - %s rejected, overlaps %s",
                candidate.start.isoformat(),
                candidate.end.isoformat(),
                conflicts[0].id,
            )
            return Decision.reject(conflicts[0].id)

        return Decision.admit()
