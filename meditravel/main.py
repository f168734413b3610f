from __future__ import annotations

import os
import sys

# --- Add project root to sys.path ---
current_dir = os.path.dirname(os.path.abspath(__file__))
parent_dir = os.path.dirname(current_dir)
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

import streamlit as st

# IMPORTS
from meditravel import auth
from meditravel.admin_dashboard import render_admin_dashboard
from meditravel.config import AppConfig, load_config
from meditravel.db.database import get_supabase_client
from meditravel.journey import JourneySession
from meditravel.logging_config import get_logger, setup_logging
from meditravel.views import (
    render_booking_form,
    render_destinations,
    render_home,
    render_journey,
    render_medical_history,
    render_my_bookings,
    render_profile,
    render_search,
    render_support,
    render_treatments,
)

logger = get_logger(__name__)

PAGES = [
    "Home",
    "Destinations",
    "Treatments",
    "Search",
    "Book",
    "My Bookings",
    "My Journey",
    "Medical History",
    "Support",
    "Profile",
    "Admin Dashboard",
]


def _init_app_state():
    if "user" not in st.session_state:
        st.session_state.user = None
    if "journey" not in st.session_state:
        st.session_state.journey = None
    if "nav" not in st.session_state:
        st.session_state.nav = "Home"


# --- CSS STYLING ---
def inject_custom_css():
    st.markdown("""
    <style>
        /* --- Hide Header/Footer for clean look --- */
        header {visibility: hidden;}
        footer {visibility: hidden;}

        div[data-testid="stMetricValue"] {
            color: #2563eb;
        }
    </style>
    """, unsafe_allow_html=True)


# --- SESSION LIFECYCLE ---
def on_login(user: auth.AuthUser):
    st.session_state.user = user
    journey = JourneySession(get_supabase_client())
    journey.start(user.id)
    st.session_state.journey = journey


def on_logout():
    journey: JourneySession | None = st.session_state.journey
    if journey is not None:
        journey.close()
    for key in ("booking_form", "medical_form", "password_recovery", "admin_destinations", "admin_treatments"):
        st.session_state.pop(key, None)
    st.session_state.journey = None
    st.session_state.user = None
    logger.info("Session state cleared after sign out")


def render_account_sidebar(cfg: AppConfig):
    user: auth.AuthUser | None = st.session_state.user

    if user is not None:
        st.success(f"Signed in as **{user.display_name}**")
        if st.button("Sign out"):
            try:
                auth.sign_out()
            except auth.AuthError as e:
                st.error(str(e))
            on_logout()
            st.rerun()
        return

    mode = st.radio("Account", ["Sign in", "Sign up", "Reset password"], horizontal=True)
    with st.form("account"):
        email = st.text_input("Email")
        password = ""
        first_name = last_name = ""
        if mode != "Reset password":
            password = st.text_input("Password", type="password")
        if mode == "Sign up":
            first_name = st.text_input("First name")
            last_name = st.text_input("Last name")
        submitted = st.form_submit_button(mode)

    if not submitted:
        return

    try:
        if mode == "Sign in":
            on_login(auth.sign_in(email, password))
            st.rerun()
        elif mode == "Sign up":
            user = auth.sign_up(email, password, first_name, last_name)
            if user is None:
                st.info("Check your inbox to confirm your email, then sign in.")
            else:
                on_login(user)
                st.rerun()
        else:
            auth.reset_password(email, redirect_to=cfg.app.site_url or None)
            st.info("If that account exists, a reset link is on its way.")
    except auth.AuthError as e:
        st.error(str(e))


def handle_recovery_link():
    """A reset email lands here with a one-time token; sign in with it and open the password form."""
    if "token_hash" not in st.query_params:
        return
    try:
        user = auth.recover_session(st.query_params)
        if user is not None:
            if st.session_state.user is not None:
                on_logout()
            on_login(user)
            st.session_state.password_recovery = True
            st.session_state.nav = "Profile"
    except auth.AuthError as e:
        st.error(str(e))
    st.query_params.clear()


def main():
    st.set_page_config(
        page_title="MediTravel",
        page_icon="🌍",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    cfg: AppConfig = load_config()
    setup_logging(cfg.app.log_level, cfg.app.log_to_file)
    inject_custom_css()
    _init_app_state()
    handle_recovery_link()

    # The nav radio cannot be changed once drawn, so pages request a switch for the next run
    if "pending_nav" in st.session_state:
        st.session_state.nav = st.session_state.pop("pending_nav")

    # --- SIDEBAR NAVIGATION ---
    with st.sidebar:
        st.title("Navigation")
        menu = st.radio("Go to", PAGES, key="nav")
        st.divider()
        render_account_sidebar(cfg)

    user = st.session_state.user
    journey = st.session_state.journey

    if menu == "Home":
        render_home(cfg)
    elif menu == "Destinations":
        render_destinations(user)
    elif menu == "Treatments":
        render_treatments(user)
    elif menu == "Search":
        render_search(cfg)
    elif menu == "Book":
        render_booking_form(user)
    elif menu == "My Bookings":
        render_my_bookings(user)
    elif menu == "My Journey":
        render_journey(journey)
    elif menu == "Medical History":
        render_medical_history(user, journey)
    elif menu == "Profile":
        render_profile(user, journey)
    elif menu == "Support":
        render_support(user)
    else:
        render_admin_dashboard(cfg)


if __name__ == "__main__":
    main()
