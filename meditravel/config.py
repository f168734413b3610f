from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import streamlit as st


# ---------------------- DATA CLASSES ----------------------

@dataclass
class SupabaseConfig:
    url: str
    key: str


@dataclass
class AppSettings:
    log_level: str = "INFO"
    log_to_file: bool = False
    admin_password: str = ""
    search_min_length: int = 2
    search_debounce_ms: int = 300
    featured_limit: int = 2
    site_url: str = ""


@dataclass
class AppConfig:
    supabase: SupabaseConfig
    app: AppSettings


# ---------------------- LOADING ----------------------

def _as_bool(value: Any) -> bool:
    # secrets.toml may hold a real bool or a quoted string
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_config(secrets: Optional[Mapping[str, Any]] = None) -> AppConfig:
    if secrets is None:
        secrets = st.secrets

    # --- Supabase ---
    # Accepts either "key" or the older "anon_key" entry name
    supabase_section = secrets["supabase"]
    if "key" in supabase_section:
        key = supabase_section["key"]
    else:
        key = supabase_section["anon_key"]

    supabase_cfg = SupabaseConfig(
        url=supabase_section["url"],
        key=key,
    )

    # --- App ---
    app_section = secrets.get("app", {})
    defaults = AppSettings()
    app_cfg = AppSettings(
        log_level=str(app_section.get("log_level", defaults.log_level)).upper(),
        log_to_file=_as_bool(app_section.get("log_to_file", defaults.log_to_file)),
        admin_password=app_section.get("admin_password", defaults.admin_password),
        search_min_length=int(app_section.get("search_min_length", defaults.search_min_length)),
        search_debounce_ms=int(app_section.get("search_debounce_ms", defaults.search_debounce_ms)),
        featured_limit=int(app_section.get("featured_limit", defaults.featured_limit)),
        site_url=app_section.get("site_url", defaults.site_url),
    )

    return AppConfig(
        supabase=supabase_cfg,
        app=app_cfg,
    )
