"""Run the booking API with Flask's development server."""

from __future__ import annotations

import argparse
import logging

from Agenda import create_app
from Agenda.config import load_settings


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Agenda: appointment booking API")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=None, help="Overrides PORT")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    args = parser.parse_args()

    settings = load_settings()
    _setup_logging(settings.log_level)

    app = create_app(settings)
    port = args.port if args.port is not None else settings.port
    logging.getLogger(__name__).info("API listening on port %s", port)
    app.run(host=args.host, port=port, debug=args.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
