"""Environment-driven settings for the booking API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from Agenda.booking.appointment import FieldMap

STORE_ENV_VARS: tuple[str, ...] = (
    "AIRTABLE_TOKEN",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_TABLE_NAME",
)


@dataclass(frozen=True)
class Settings:
    airtable_token: str | None = None
    airtable_base_id: str | None = None
    airtable_table_name: str | None = None

    field_map: FieldMap = field(default_factory=FieldMap)

    # Reject bookings without a worker when every slot belongs to one.
    require_partition: bool = False

    cors_origins: tuple[str, ...] = ("*",)
    port: int = 3000
    log_level: str = "INFO"

    @property
    def store_configured(self) -> bool:
        return bool(
            self.airtable_token
            and self.airtable_base_id
            and self.airtable_table_name
        )

    def missing_store_settings(self) -> list[str]:
        values = (
            self.airtable_token,
            self.airtable_base_id,
            self.airtable_table_name,
        )
        return [name for name, value in zip(STORE_ENV_VARS, values) if not value]


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _parse_origins(raw: str) -> tuple[str, ...]:
    # CORS_ORIGINS accepts "*" or a comma-separated list of origins.
    parts = [p.strip() for p in raw.split(",")]
    origins = tuple(p for p in parts if p)
    return origins or ("*",)


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid PORT value: {raw!r}. Expected an integer.") from e

    if not 0 < port < 65536:
        raise RuntimeError(f"Invalid PORT value: {port}. Expected 1-65535.")
    return port


def _parse_log_level(raw: str) -> str:
    level = raw.strip().upper() or "INFO"
    if level not in logging.getLevelNamesMapping():
        raise RuntimeError(f"Invalid LOG_LEVEL value: {raw!r}. Expected a logging level name.")
    return level


def _field_map_from_env() -> FieldMap:
    defaults = FieldMap()
    return FieldMap(
        start=os.getenv("AIRTABLE_FIELD_START", defaults.start),
        end=os.getenv("AIRTABLE_FIELD_END", defaults.end),
        label=os.getenv("AIRTABLE_FIELD_LABEL", defaults.label),
        kind=os.getenv("AIRTABLE_FIELD_KIND", defaults.kind),
        color=os.getenv("AIRTABLE_FIELD_COLOR", defaults.color),
        partition=os.getenv("AIRTABLE_FIELD_PARTITION", defaults.partition),
    )


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in the working directory; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    return Settings(
        airtable_token=_optional("AIRTABLE_TOKEN"),
        airtable_base_id=_optional("AIRTABLE_BASE_ID"),
        airtable_table_name=_optional("AIRTABLE_TABLE_NAME"),
        field_map=_field_map_from_env(),
        require_partition=_flag("REQUIRE_PARTITION", False),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS", "*")),
        port=_parse_port(os.getenv("PORT", "3000")),
        log_level=_parse_log_level(os.getenv("LOG_LEVEL", "INFO")),
    )

