"""Agenda app creation."""  # noqa: N999

from __future__ import annotations

import flask
from flask.typing import ResponseReturnValue
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from Agenda.app import Agenda
from Agenda.booking.errors import BookingError, StoreUnavailable
from Agenda.booking.repository import AppointmentRepository
from Agenda.booking.store import AirtableStore, InMemoryStore, RecordStore
from Agenda.config import Settings, load_settings
from Agenda.controllers.citas import CITAS


def _open_store(app: Agenda, settings: Settings) -> RecordStore:
    """Connect to the configured Airtable table or fall back to memory."""
    if not settings.store_configured:
        app.logger.error(
            "Airtable is not configured (missing %s). "
            "Bookings are kept in memory and lost on restart.",
            ", ".join(settings.missing_store_settings()),
        )
        return InMemoryStore()

    return AirtableStore.connect(
        settings.airtable_token or "",
        settings.airtable_base_id or "",
        settings.airtable_table_name or "",
    )


def create_app(
    settings: Settings | None = None,
    store: RecordStore | None = None,
) -> Agenda:
    """Create and configure the Flask app."""
    if settings is None:
        settings = load_settings()

    app = Agenda(__name__)
    app.logger.setLevel(settings.log_level)
    app.settings = settings
    app.repository = AppointmentRepository(
        store if store is not None else _open_store(app, settings),
        settings.field_map,
        require_partition=settings.require_partition,
    )

    origins = list(settings.cors_origins)
    CORS(
        app,
        resources={
            r"/api/*": {"origins": origins},
            r"/health": {"origins": origins},
        },
    )
    app.register_blueprint(CITAS)

    @app.errorhandler(BookingError)
    def booking_error(error: BookingError) -> ResponseReturnValue:
        """Render domain errors as JSON with their status code."""
        if isinstance(error, StoreUnavailable):
            flask.current_app.logger.error(
                "Record store request failed: %s",
                error.detail,
                exc_info=error,
            )
        return flask.jsonify(error.to_dict()), error.status_code

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception) -> ResponseReturnValue:
        """Keep unexpected failures opaque to API clients."""
        if isinstance(error, HTTPException):
            return error

        flask.current_app.logger.exception(
            "Unhandled error serving %s: %s",
            flask.request.path,
            error,
        )
        return flask.jsonify(StoreUnavailable(type(error).__name__).to_dict()), 500

    @app.get("/health")
    def health() -> ResponseReturnValue:
        """Report that the process is up."""
        return flask.jsonify({"ok": True})

    return app
