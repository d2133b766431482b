"""Appointment REST endpoints."""

from __future__ import annotations

from typing import Any, cast

import flask
from flask.typing import ResponseReturnValue

from Agenda.app import Agenda
from Agenda.booking.errors import InvalidInput
from Agenda.booking.repository import AppointmentRepository

CITAS = flask.Blueprint(
    name="citas",
    import_name=__name__,
    url_prefix="/api",
)


def _repository() -> AppointmentRepository:
    """Return the repository bound to the running app."""
    return cast(Agenda, flask.current_app).repository


def _query_value(name: str) -> str | None:
    """Read a non-blank query parameter."""
    raw_value = flask.request.args.get(name, "").strip()
    return raw_value or None


def _json_body() -> dict[str, Any]:
    """Return the request JSON object or reject the request."""
    payload = flask.request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInput("request body must be a JSON object")
    return payload


@CITAS.get("/citas")
def list_citas() -> ResponseReturnValue:
    """List appointments starting inside a calendar window."""
    appointments = _repository().list(
        _query_value("from"),
        _query_value("to"),
        partition=_query_value("partition"),
        search=_query_value("q"),
    )
    return flask.jsonify([appointment.to_dict() for appointment in appointments])


@CITAS.get("/partitions")
def list_partitions() -> ResponseReturnValue:
    """List the workers that have bookings."""
    return flask.jsonify(_repository().partitions())


@CITAS.post("/citas")
def create_cita() -> ResponseReturnValue:
    """Book a slot, or block it when ``kind`` is ``bloqueo``."""
    record_id = _repository().create(_json_body())
    return flask.jsonify({"id": record_id}), 201


@CITAS.put("/citas/<record_id>")
def update_cita(record_id: str) -> ResponseReturnValue:
    """Move, resize or relabel a booking."""
    _repository().update(record_id, _json_body())
    return flask.jsonify({"ok": True})


@CITAS.delete("/citas/<record_id>")
def delete_cita(record_id: str) -> ResponseReturnValue:
    """Cancel a booking."""
    _repository().delete(record_id)
    return flask.jsonify({"ok": True})
