"""Record-store query criteria.

Each condition renders to Airtable formula text for ``filterByFormula`` and
can be evaluated against a record in memory with the same meaning.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from Agenda.booking.appointment import format_instant, parse_instant


def quote(value: str) -> str:
    """Render a string literal for a formula."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def field_ref(field_name: str) -> str:
    """Render a column reference for a formula."""
    return "{" + field_name + "}"


class Condition:
    """One predicate over a stored record."""

    def formula(self) -> str:
        """Render the predicate as formula text."""
        raise NotImplementedError

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        """Evaluate the predicate against one record."""
        raise NotImplementedError


def _instant_field(fields: Mapping[str, Any], field_name: str) -> datetime | None:
    return parse_instant(fields.get(field_name))


@dataclass(frozen=True)
class IsBefore(Condition):
    """Column instant is strictly earlier than ``instant``."""

    field_name: str
    instant: datetime

    def formula(self) -> str:
        return (
            f"IS_BEFORE({field_ref(self.field_name)}, "
            f"{quote(format_instant(self.instant))})"
        )

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        value = _instant_field(fields, self.field_name)
        return value is not None and value < self.instant


@dataclass(frozen=True)
class IsAfter(Condition):
    """Column instant is strictly later than ``instant``."""

    field_name: str
    instant: datetime

    def formula(self) -> str:
        return (
            f"IS_AFTER({field_ref(self.field_name)}, "
            f"{quote(format_instant(self.instant))})"
        )

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        value = _instant_field(fields, self.field_name)
        return value is not None and value > self.instant


@dataclass(frozen=True)
class IsSameOrAfter(Condition):
    """Column instant equals or follows ``instant``."""

    field_name: str
    instant: datetime

    def formula(self) -> str:
        column = field_ref(self.field_name)
        literal = quote(format_instant(self.instant))
        return (
            f'OR(IS_SAME({column}, {literal}, "milliseconds"), '
            f"IS_AFTER({column}, {literal}))"
        )

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        value = _instant_field(fields, self.field_name)
        return value is not None and value >= self.instant


@dataclass(frozen=True)
class FieldEquals(Condition):
    """Column text equals ``value``."""

    field_name: str
    value: str

    def formula(self) -> str:
        return f"{field_ref(self.field_name)} = {quote(self.value)}"

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        return fields.get(self.field_name) == self.value


@dataclass(frozen=True)
class IsNotBlank(Condition):
    """Column holds a non-empty value."""

    field_name: str

    def formula(self) -> str:
        return f'NOT({field_ref(self.field_name)} = "")'

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        raw_value = fields.get(self.field_name)
        return raw_value is not None and raw_value != ""


@dataclass(frozen=True)
class IsBlank(Condition):
    """Column is empty."""

    field_name: str

    def formula(self) -> str:
        return f'{field_ref(self.field_name)} = ""'

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        raw_value = fields.get(self.field_name)
        return raw_value is None or raw_value == ""


@dataclass(frozen=True)
class RecordIdIsNot(Condition):
    """Record is anything other than ``record_id``."""

    record_id: str

    def formula(self) -> str:
        return f"RECORD_ID() != {quote(self.record_id)}"

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        return record_id != self.record_id


@dataclass(frozen=True)
class AllOf(Condition):
    """Conjunction of conditions; empty means every record."""

    conditions: tuple[Condition, ...]

    def formula(self) -> str:
        if not self.conditions:
            return ""
        if len(self.conditions) == 1:
            return self.conditions[0].formula()

        joined = ", ".join(condition.formula() for condition in self.conditions)
        return f"AND({joined})"

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        return all(
            condition.matches(record_id, fields)
            for condition in self.conditions
        )


@dataclass(frozen=True)
class AnyOf(Condition):
    """Disjunction of conditions."""

    conditions: tuple[Condition, ...]

    def formula(self) -> str:
        if len(self.conditions) == 1:
            return self.conditions[0].formula()

        joined = ", ".join(condition.formula() for condition in self.conditions)
        return f"OR({joined})"

    def matches(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        return any(
            condition.matches(record_id, fields)
            for condition in self.conditions
        )


def all_of(*conditions: Condition | None) -> AllOf:
    """Combine conditions, skipping ``None`` placeholders."""
    return AllOf(
        tuple(condition for condition in conditions if condition is not None)
    )
