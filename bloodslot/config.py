from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

STORE_BACKENDS = ("file", "firebase", "memory")


def _parse_flag(name: str, default: str) -> bool:
    raw = os.getenv(name, default).strip().lower()
    return raw not in {"0", "false", "no", "off"}


def _parse_int(name: str, default: str, *, minimum: int) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected an integer.") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


def _parse_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected a number.") from e
    if value <= 0:
        raise RuntimeError(f"{name} must be > 0")
    return value


@dataclass(frozen=True)
class Settings:
    # Global kill switch, e.g. while the admin team is testing.
    booking_enabled: bool = True
    # Allow booking while the clinic is closed.
    override_clinic_hours: bool = False

    store_backend: str = "file"
    store_file: str = "bloodslot.json"
    firebase_database_url: str | None = None
    firebase_auth_token: str | None = None

    # Identity handed over by the auth provider; the core never signs anyone in.
    donor_user_id: str | None = None

    cases_path: str = "donationCases"
    donations_path: str = "donations"

    # How many times a store request is attempted on transient failures.
    store_retry_attempts: int = 2
    store_timeout_seconds: float = 20.0


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    store_backend = os.getenv("STORE_BACKEND", "file").strip().lower()
    if store_backend not in STORE_BACKENDS:
        raise RuntimeError(f"Invalid STORE_BACKEND value: {store_backend!r}. Expected one of {', '.join(STORE_BACKENDS)}")

    firebase_database_url = os.getenv("FIREBASE_DATABASE_URL") or None
    if store_backend == "firebase" and not firebase_database_url:
        raise RuntimeError("Missing required environment variable: FIREBASE_DATABASE_URL")

    return Settings(
        booking_enabled=_parse_flag("BOOKING_ENABLED", "1"),
        override_clinic_hours=_parse_flag("OVERRIDE_CLINIC_HOURS", "0"),
        store_backend=store_backend,
        store_file=os.getenv("STORE_FILE", "bloodslot.json"),
        firebase_database_url=firebase_database_url,
        firebase_auth_token=os.getenv("FIREBASE_AUTH_TOKEN") or None,
        donor_user_id=os.getenv("DONOR_USER_ID") or None,
        cases_path=os.getenv("CASES_PATH", "donationCases"),
        donations_path=os.getenv("DONATIONS_PATH", "donations"),
        store_retry_attempts=_parse_int("STORE_RETRY_ATTEMPTS", "2", minimum=1),
        store_timeout_seconds=_parse_float("STORE_TIMEOUT_SECONDS", "20"),
    )
