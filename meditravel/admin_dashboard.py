import pandas as pd
import plotly.express as px
import streamlit as st

from meditravel import bookings, destinations, treatments
from meditravel.config import AppConfig
from meditravel.db.database import describe_error
from meditravel.db.models import BOOKING_STATUSES
from meditravel.list_state import ListState
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

DESTINATION_FIELDS = ["name", "city", "country", "rating", "savings_percentage", "image_url", "description"]
TREATMENT_FIELDS = ["name", "category", "procedure_count", "icon_name", "color", "description"]


def _relation_name(related):
    return related.get("name") if isinstance(related, dict) else None


def bookings_frame(rows) -> pd.DataFrame:
    """Flatten booking rows and their embedded destination/treatment into one table."""
    if not rows:
        return pd.DataFrame(columns=["id", "status", "booking_date", "destination", "treatment", "created_at"])

    df = pd.DataFrame(rows)
    # object dtype keeps a missing relation as None rather than NaN
    df["destination"] = pd.Series([_relation_name(r.get("destination")) for r in rows], index=df.index, dtype=object)
    df["treatment"] = pd.Series([_relation_name(r.get("treatment")) for r in rows], index=df.index, dtype=object)
    return df


def booking_kpis(df: pd.DataFrame) -> dict:
    counts = df["status"].value_counts() if "status" in df.columns else pd.Series(dtype=int)
    kpis = {"total": int(len(df))}
    for status in BOOKING_STATUSES:
        kpis[status] = int(counts.get(status, 0))
    return kpis


def _catalog_state(key: str, label: str, list_fn, create_fn, update_fn, delete_fn) -> ListState:
    if key not in st.session_state:
        state = ListState(label, list_fn, create_fn, update_fn, delete_fn)
        state.load()
        st.session_state[key] = state
    return st.session_state[key]


def render_admin_dashboard(cfg: AppConfig):
    st.title("📊 MediTravel Admin Dashboard")

    password = st.sidebar.text_input("Admin Password", type="password")
    if not cfg.app.admin_password or password != cfg.app.admin_password:
        st.warning("Please enter the correct admin password to view data.")
        return

    tab_bookings, tab_destinations, tab_treatments = st.tabs(["Bookings", "Destinations", "Treatments"])

    with tab_bookings:
        render_bookings_overview()

    with tab_destinations:
        state = _catalog_state(
            "admin_destinations",
            "destination",
            destinations.get_destinations,
            destinations.create_destination,
            destinations.update_destination,
            destinations.delete_destination,
        )
        render_catalog_editor(state, DESTINATION_FIELDS)

    with tab_treatments:
        state = _catalog_state(
            "admin_treatments",
            "treatment",
            treatments.get_treatments,
            treatments.create_treatment,
            treatments.update_treatment,
            treatments.delete_treatment,
        )
        render_catalog_editor(state, TREATMENT_FIELDS)


def render_bookings_overview():
    try:
        df = bookings_frame(bookings.get_all_bookings())
    except Exception as e:
        st.error(f"Error loading data: {describe_error(e)}")
        return

    if df.empty:
        st.info("No bookings found in the database.")
        return

    # --- KPI Metrics ---
    kpis = booking_kpis(df)
    cols = st.columns(len(BOOKING_STATUSES) + 1)
    cols[0].metric("Total Bookings", kpis["total"])
    for col, status in zip(cols[1:], BOOKING_STATUSES):
        col.metric(status.capitalize(), kpis[status])

    # --- Charts ---
    by_destination = df.groupby("destination", dropna=False).size().reset_index(name="bookings")
    fig = px.bar(by_destination, x="destination", y="bookings", title="Bookings by destination")
    st.plotly_chart(fig, use_container_width=True)

    # --- Filters ---
    st.divider()
    st.subheader("Booking Management")

    status_filter = st.multiselect(
        "Filter by Status",
        options=BOOKING_STATUSES,
        default=BOOKING_STATUSES,
    )
    filtered_df = df[df["status"].isin(status_filter)] if status_filter else df

    display_cols = ["destination", "treatment", "booking_date", "status", "notes", "id"]
    final_cols = [c for c in display_cols if c in filtered_df.columns]
    st.dataframe(filtered_df[final_cols], use_container_width=True)

    # --- Actions ---
    c1, c2 = st.columns([2, 1])

    with c1:
        st.write("### Update Status")
        booking_id = st.text_input("Booking ID")
        new_status = st.selectbox("New status", BOOKING_STATUSES)
        if st.button("Update Booking") and booking_id:
            try:
                bookings.update_booking_status(booking_id, new_status)
                st.success(f"Booking {booking_id} is now {new_status}.")
                st.rerun()
            except Exception as e:
                st.error(f"Failed to update: {describe_error(e)}")

    with c2:
        st.write("### Export")
        csv = filtered_df[final_cols].to_csv(index=False).encode("utf-8")
        st.download_button(
            "📥 Download as CSV",
            csv,
            "meditravel_bookings.csv",
            "text/csv",
            key="download-csv",
        )


def _coerce(field_name: str, value: str):
    value = value.strip()
    if value == "":
        return None
    if field_name in ("rating",):
        return float(value)
    if field_name in ("savings_percentage", "procedure_count"):
        return int(value)
    return value


def _form_inputs(fields, prefix: str, current=None) -> dict:
    current = current or {}
    return {
        f: st.text_input(f.replace("_", " ").capitalize(), value=str(current.get(f) or ""), key=f"{prefix}-{f}")
        for f in fields
    }


def _coerce_all(raw: dict):
    """Typed values for a submitted form, or None when a numeric field is not a number."""
    try:
        return {f: _coerce(f, v) for f, v in raw.items()}
    except ValueError:
        st.error("Numeric fields must contain numbers.")
        return None


def render_catalog_editor(state: ListState, fields):
    if state.error:
        st.error(state.error)

    if st.button(f"Reload {state.label}s", key=f"reload-{state.label}"):
        state.load()

    if state.items:
        st.dataframe(pd.DataFrame(state.items), use_container_width=True)
    else:
        st.info(f"No {state.label}s yet.")

    with st.expander(f"➕ Add {state.label}"):
        with st.form(f"create-{state.label}"):
            raw = _form_inputs(fields, f"new-{state.label}")
            if st.form_submit_button("Create"):
                values = _coerce_all(raw)
                if values is not None and state.create({k: v for k, v in values.items() if v is not None}):
                    st.success(f"{state.label.capitalize()} created.")

    if not state.items:
        return

    options = {item["id"]: item.get("name", item["id"]) for item in state.items}
    selected = st.selectbox(
        f"Edit {state.label}",
        list(options.keys()),
        format_func=lambda i: options[i],
        key=f"select-{state.label}",
    )
    current = state.find(selected)

    with st.form(f"edit-{state.label}"):
        raw = _form_inputs(fields, f"edit-{state.label}-{selected}", current)
        save, delete = st.columns(2)
        if save.form_submit_button("Save changes"):
            values = _coerce_all(raw)
            if values is not None and state.update(selected, values):
                st.success("Saved.")
        if delete.form_submit_button("Delete"):
            if state.delete(selected):
                st.success(f"{state.label.capitalize()} deleted.")
                st.rerun()
