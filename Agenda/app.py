"""Entry point for doing flask things."""

from __future__ import annotations

import flask

from Agenda.booking.repository import AppointmentRepository
from Agenda.config import Settings


class Agenda(flask.Flask):
    """Flask application entry point."""

    settings: Settings
    repository: AppointmentRepository
