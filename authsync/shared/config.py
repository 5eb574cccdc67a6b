from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _json(name: str) -> dict:
    value = _env(name)
    if not value:
        return {}
    return json.loads(value)


def _bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    supabase_jwt_secret: str
    supabase_timeout_seconds: float
    postgres_dsn: str
    profile_poll_interval_seconds: float
    merge_profile_data: bool
    site_url: str
    app_start_url: str
    auth_redirect_path: str
    signin_path: str
    session_cache_path: str
    stripe_price_ids: dict


def get_settings() -> Settings:
    site_url = _env("SITE_URL", "http://localhost:8000").rstrip("/")
    return Settings(
        supabase_url=_env("SUPABASE_URL", "").rstrip("/"),
        supabase_anon_key=_env("SUPABASE_ANON_KEY", ""),
        supabase_jwt_secret=_env("SUPABASE_JWT_SECRET", ""),
        supabase_timeout_seconds=float(_env("SUPABASE_TIMEOUT_SECONDS", "10")),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        profile_poll_interval_seconds=float(_env("PROFILE_POLL_INTERVAL_SECONDS", "5")),
        merge_profile_data=_bool("MERGE_PROFILE_DATA", True),
        site_url=site_url,
        app_start_url=_env("APP_START_URL", site_url),
        auth_redirect_path=_env("AUTH_REDIRECT_PATH", "/dashboard"),
        signin_path=_env("SIGNIN_PATH", "/auth/signin"),
        session_cache_path=_env("SESSION_CACHE_PATH", ".authsync/session.json"),
        stripe_price_ids=_json("STRIPE_PRICE_IDS"),
    )
