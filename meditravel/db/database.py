# meditravel/db/database.py

from supabase import create_client, Client
import streamlit as st

from meditravel.config import load_config


def get_supabase_client() -> Client:
    """
    Returns the Supabase client cached in the browser session.
    Each session keeps its own client so an auth sign-in applies
    to that session's table calls only.
    """

    if "supabase_client" not in st.session_state:
        cfg = load_config().supabase
        st.session_state.supabase_client = create_client(cfg.url, cfg.key)

    return st.session_state.supabase_client


def describe_error(e: Exception) -> str:
    """Readable text for a Supabase/PostgREST error or any other exception."""
    if getattr(e, "message", None):
        return str(e.message)
    if getattr(e, "details", None):
        return str(e.details)
    return str(e)


def clean_search_term(term: str) -> str:
    """Commas and parentheses are PostgREST filter syntax, so they are dropped."""
    return "".join(ch for ch in (term or "") if ch not in ",()").strip()


def ilike_any(columns, term: str) -> str:
    """PostgREST "or" filter matching `term` case-insensitively in any column."""
    cleaned = clean_search_term(term)
    return ",".join(f"{col}.ilike.%{cleaned}%" for col in columns)
