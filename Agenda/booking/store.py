"""Record store adapters: a hosted Airtable table and an in-memory table."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, NamedTuple
from uuid import uuid4

import requests
from pyairtable import Api, Table

from Agenda.booking.criteria import AllOf
from Agenda.booking.errors import NotFound, StoreUnavailable

LOGGER = logging.getLogger(__name__)


class Record(NamedTuple):
    """A stored row: opaque id plus column values."""

    id: str
    fields: dict[str, Any]


class RecordStore:
    """Interface shared by the record store adapters."""

    def select(
        self,
        criteria: AllOf,
        max_records: int | None = None,
        sort_field: str | None = None,
    ) -> list[Record]:
        """Return records matching ``criteria``."""
        raise NotImplementedError

    def get(self, record_id: str) -> Record | None:
        """Return one record or None when it does not exist."""
        raise NotImplementedError

    def insert(self, fields: Mapping[str, Any]) -> Record:
        """Create a record and return it with its new id."""
        raise NotImplementedError

    def replace(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Overwrite every column of an existing record."""
        raise NotImplementedError

    def remove(self, record_id: str) -> None:
        """Delete an existing record."""
        raise NotImplementedError


def _is_not_found(error: requests.RequestException) -> bool:
    response = getattr(error, "response", None)
    return response is not None and response.status_code == 404


def _record_from_payload(payload: Mapping[str, Any]) -> Record:
    raw_fields = payload.get("fields")
    fields = dict(raw_fields) if isinstance(raw_fields, Mapping) else {}
    return Record(id=str(payload["id"]), fields=fields)


class AirtableStore(RecordStore):
    """Records kept in one Airtable table, queried with formulas."""

    def __init__(self, table: Table) -> None:
        """Wrap a pyairtable table handle."""
        self.table = table

    @classmethod
    def connect(cls, token: str, base_id: str, table_name: str) -> AirtableStore:
        """Open the configured table with an access token."""
        return cls(Api(token).table(base_id, table_name))

    def select(
        self,
        criteria: AllOf,
        max_records: int | None = None,
        sort_field: str | None = None,
    ) -> list[Record]:
        options: dict[str, Any] = {}
        formula = criteria.formula()
        if formula:
            options["formula"] = formula
        if max_records is not None:
            options["max_records"] = max_records
        if sort_field is not None:
            options["sort"] = [sort_field]

        LOGGER.debug("Selecting records with %s", options)
        try:
            payloads = self.table.all(**options)
        except requests.RequestException as error:
            raise StoreUnavailable(type(error).__name__) from error

        return [_record_from_payload(payload) for payload in payloads]

    def get(self, record_id: str) -> Record | None:
        try:
            payload = self.table.get(record_id)
        except requests.RequestException as error:
            if _is_not_found(error):
                return None
            raise StoreUnavailable(type(error).__name__) from error

        return _record_from_payload(payload)

    def insert(self, fields: Mapping[str, Any]) -> Record:
        try:
            payload = self.table.create(dict(fields))
        except requests.RequestException as error:
            raise StoreUnavailable(type(error).__name__) from error

        return _record_from_payload(payload)

    def replace(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        try:
            payload = self.table.update(record_id, dict(fields), replace=True)
        except requests.RequestException as error:
            if _is_not_found(error):
                raise NotFound(f"appointment {record_id} not found") from error
            raise StoreUnavailable(type(error).__name__) from error

        return _record_from_payload(payload)

    def remove(self, record_id: str) -> None:
        try:
            self.table.delete(record_id)
        except requests.RequestException as error:
            if _is_not_found(error):
                raise NotFound(f"appointment {record_id} not found") from error
            raise StoreUnavailable(type(error).__name__) from error


class InMemoryStore(RecordStore):
    """Process-local table with the same query semantics as Airtable."""

    def __init__(self) -> None:
        """Start with an empty table."""
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _new_id() -> str:
        return f"rec{uuid4().hex[:14]}"

    def select(
        self,
        criteria: AllOf,
        max_records: int | None = None,
        sort_field: str | None = None,
    ) -> list[Record]:
        with self._lock:
            matched = [
                Record(id=record_id, fields=dict(fields))
                for record_id, fields in self._records.items()
                if criteria.matches(record_id, fields)
            ]

        if sort_field is not None:
            matched.sort(key=lambda record: str(record.fields.get(sort_field) or ""))
        if max_records is not None:
            matched = matched[:max_records]
        return matched

    def get(self, record_id: str) -> Record | None:
        with self._lock:
            fields = self._records.get(record_id)
            if fields is None:
                return None
            return Record(id=record_id, fields=dict(fields))

    def insert(self, fields: Mapping[str, Any]) -> Record:
        record_id = self._new_id()
        stored = {name: value for name, value in fields.items() if value is not None}
        with self._lock:
            self._records[record_id] = stored
        return Record(id=record_id, fields=dict(stored))

    def replace(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        stored = {name: value for name, value in fields.items() if value is not None}
        with self._lock:
            if record_id not in self._records:
                raise NotFound(f"appointment {record_id} not found")
            self._records[record_id] = stored
        return Record(id=record_id, fields=dict(stored))

    def remove(self, record_id: str) -> None:
        with self._lock:
            if self._records.pop(record_id, None) is None:
                raise NotFound(f"appointment {record_id} not found")
