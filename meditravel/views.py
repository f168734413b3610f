from __future__ import annotations

import threading

import streamlit as st
from streamlit.runtime.scriptrunner import add_script_run_ctx, get_script_run_ctx

from meditravel import auth, bookings, destinations, profiles, reviews, support, treatments
from meditravel.auth import AuthError, AuthUser
from meditravel.booking_flow import (
    BookingFormState,
    generate_confirmation_text,
    submit_booking,
)
from meditravel.config import AppConfig
from meditravel.db.database import describe_error
from meditravel.journey import JOURNEY_STAGES, JourneySession, stage_index
from meditravel.logging_config import get_logger
from meditravel.medical_history import (
    LIST_FIELDS,
    MedicalHistoryForm,
    get_medical_history,
    parse_list_text,
    submit_medical_history,
)
from meditravel.search import TABS, SearchController

logger = get_logger(__name__)


def _require_user(user: AuthUser | None) -> bool:
    if user is None:
        st.info("Please sign in from the sidebar to continue.")
        return False
    return True


def _load(label: str, fn, *args):
    """Call a data-access function and show an inline error instead of raising."""
    try:
        return fn(*args)
    except Exception as e:
        st.error(f"Failed to load {label}: {describe_error(e)}")
        return None


# ---------------- CATALOG ----------------

def _destination_card(d: dict):
    with st.container(border=True):
        if d.get("image_url"):
            st.image(d["image_url"], use_container_width=True)
        st.subheader(d["name"])
        st.caption(f"📍 {d.get('city', '')}, {d.get('country', '')}")
        c1, c2 = st.columns(2)
        c1.metric("Rating", d.get("rating") or "-")
        c2.metric("Savings", f"{d.get('savings_percentage') or 0}%")
        if d.get("description"):
            st.write(d["description"])


def _treatment_card(t: dict):
    with st.container(border=True):
        st.subheader(t["name"])
        st.caption(f"{t.get('category', '')} · {t.get('procedure_count') or 0} procedures")
        if t.get("description"):
            st.write(t["description"])


def render_home(cfg: AppConfig):
    st.title("🌍 MediTravel")
    st.caption("Quality healthcare abroad, planned end to end.")

    featured = _load("featured destinations", destinations.get_featured_destinations, cfg.app.featured_limit)
    if featured:
        st.header("Featured destinations")
        cols = st.columns(len(featured))
        for col, d in zip(cols, featured):
            with col:
                _destination_card(d)

    top = _load("treatments", treatments.get_treatments)
    if top:
        st.header("Popular treatments")
        cols = st.columns(3)
        for i, t in enumerate(top[:6]):
            with cols[i % 3]:
                _treatment_card(t)


def _own_review_actions(review: dict):
    with st.expander("Edit your review"):
        with st.form(f"edit-review-{review['id']}"):
            rating = st.slider("Rating", 1, 5, int(review.get("rating") or 5), key=f"edit-rating-{review['id']}")
            comment = st.text_area("Comment", value=review.get("comment") or "", key=f"edit-comment-{review['id']}")
            save, delete = st.columns(2)
            try:
                if save.form_submit_button("Save"):
                    reviews.update_review(review["id"], {"rating": rating, "comment": comment})
                    st.rerun()
                if delete.form_submit_button("Delete"):
                    reviews.delete_review(review["id"])
                    logger.info(f"Review {review['id']} deleted")
                    st.rerun()
            except Exception as e:
                st.error(f"Failed to update review: {describe_error(e)}")


def _render_reviews(user: AuthUser | None, label: str, fetch, target_key: str, target_id):
    st.subheader("Reviews")
    rows = _load("reviews", fetch, target_id)
    if rows is None:
        return
    if rows:
        st.write(f"⭐ {reviews.average_rating(rows)} from {len(rows)} reviews")
        for r in rows:
            st.markdown(f"**{'★' * int(r.get('rating') or 0)}** {r.get('comment') or ''}")
            if user is not None and r.get("user_id") == user.id:
                _own_review_actions(r)
    else:
        st.info(f"No reviews for this {label} yet.")

    if user is None:
        return
    with st.form(f"review-{target_key}-{target_id}"):
        rating = st.slider("Rating", 1, 5, 5)
        comment = st.text_area("Comment")
        if st.form_submit_button("Post review"):
            data = {target_key: target_id, "rating": rating, "comment": comment}
            errors = reviews.validate_review(data)
            if errors:
                st.error(next(iter(errors.values())))
                return
            try:
                reviews.create_review(user.id, data)
                st.success("Thanks for your review!")
                st.rerun()
            except Exception as e:
                st.error(f"Failed to post review: {describe_error(e)}")


def render_destinations(user: AuthUser | None):
    st.title("📍 Destinations")
    rows = _load("destinations", destinations.get_destinations)
    if rows is None:
        return
    if not rows:
        st.info("No destinations available yet.")
        return

    options = {d["id"]: f"{d['name']} ({d.get('city')}, {d.get('country')})" for d in rows}
    selected = st.selectbox("Choose a destination", list(options.keys()), format_func=lambda i: options[i])

    destination = _load("destination", destinations.get_destination_by_id, selected)
    if destination:
        _destination_card(destination)
        if user is not None and st.button("Book treatment here"):
            st.session_state.booking_form = BookingFormState(destination_id=selected)
            st.session_state.pending_nav = "Book"
            st.rerun()
        _render_reviews(user, "destination", reviews.get_destination_reviews, "destination_id", selected)


def render_treatments(user: AuthUser | None):
    st.title("🩺 Treatments")
    rows = _load("treatments", treatments.get_treatments)
    if rows is None:
        return
    if not rows:
        st.info("No treatments available yet.")
        return

    categories = sorted({t["category"] for t in rows if t.get("category")})
    category = st.selectbox("Category", ["All"] + categories)
    if category != "All":
        rows = _load("treatments", treatments.get_treatments_by_category, category) or []

    for t in rows:
        _treatment_card(t)

    if not rows:
        return
    options = {t["id"]: t["name"] for t in rows}
    selected = st.selectbox("Treatment details", list(options.keys()), format_func=lambda i: options[i])
    treatment = _load("treatment", treatments.get_treatment_by_id, selected)
    if treatment:
        _render_reviews(user, "treatment", reviews.get_treatment_reviews, "treatment_id", selected)


# ---------------- SEARCH ----------------

def _search_controller(cfg: AppConfig) -> SearchController:
    if "search" not in st.session_state:
        ctx = get_script_run_ctx()

        def _attach_ctx():
            add_script_run_ctx(threading.current_thread(), ctx)

        st.session_state.search = SearchController(
            min_query_length=cfg.app.search_min_length,
            debounce_seconds=cfg.app.search_debounce_ms / 1000,
            thread_initializer=_attach_ctx,
        )
    return st.session_state.search


def render_search(cfg: AppConfig):
    st.title("🔎 Search")
    controller = _search_controller(cfg)

    query = st.text_input("Search destinations or treatments...", value=controller.query)
    controller.update_query(query)

    with st.spinner("Searching..."):
        controller.run()

    if not controller.query_is_searchable():
        st.caption(f"Type at least {controller.min_query_length} characters to search.")
        return

    if controller.error:
        st.error(controller.error)

    counts = controller.results.counts()
    labels = {
        "all": f"All ({counts['all']})",
        "destinations": f"Destinations ({counts['destinations']})",
        "treatments": f"Treatments ({counts['treatments']})",
    }
    tab = st.radio("Show", TABS, format_func=lambda t: labels[t], horizontal=True, index=TABS.index(controller.active_tab))
    controller.set_tab(tab)

    visible = controller.visible_results()
    if counts["all"] == 0:
        st.info(f'No results found for "{controller.query}"')
        return

    if visible.destinations:
        st.caption("DESTINATIONS")
        for d in visible.destinations:
            st.markdown(f"📍 **{d['name']}** · {d.get('city', '')}, {d.get('country', '')}")
    if visible.treatments:
        st.caption("TREATMENTS")
        for t in visible.treatments:
            st.markdown(f"🩺 **{t['name']}** · {t.get('category', '')}")


# ---------------- BOOKINGS ----------------

def render_booking_form(user: AuthUser | None):
    st.title("📅 Book a Treatment")
    if not _require_user(user):
        return

    destination_rows = _load("destinations", destinations.get_destinations)
    treatment_rows = _load("treatments", treatments.get_treatments)
    if destination_rows is None or treatment_rows is None:
        st.error("Failed to load form data")
        return

    state: BookingFormState = st.session_state.setdefault("booking_form", BookingFormState())

    dest_options = {d["id"]: f"{d['name']} ({d.get('city')}, {d.get('country')})" for d in destination_rows}
    treat_options = {t["id"]: f"{t['name']} ({t.get('category')})" for t in treatment_rows}

    with st.form("booking"):
        dest_ids = list(dest_options.keys())
        treat_ids = list(treat_options.keys())
        state.destination_id = st.selectbox(
            "Destination",
            dest_ids,
            index=dest_ids.index(state.destination_id) if state.destination_id in dest_ids else None,
            format_func=lambda i: dest_options[i],
        )
        state.treatment_id = st.selectbox(
            "Treatment",
            treat_ids,
            index=treat_ids.index(state.treatment_id) if state.treatment_id in treat_ids else None,
            format_func=lambda i: treat_options[i],
        )
        state.booking_date = st.date_input("Preferred date", value=state.booking_date)
        state.notes = st.text_area("Notes", value=state.notes)
        submitted = st.form_submit_button("Request booking", disabled=state.submitting)

    if submitted:
        booking = submit_booking(state, user.id)
        if booking:
            st.success("🎉 Booking requested! We'll confirm shortly.")
            st.markdown(generate_confirmation_text(state, destination_rows, treatment_rows))
            st.session_state.booking_form = BookingFormState()
        elif state.error:
            st.error(state.error)


STATUS_BADGES = {
    "pending": "🕒 Pending",
    "confirmed": "✅ Confirmed",
    "completed": "🏁 Completed",
    "cancelled": "🚫 Cancelled",
}


def render_my_bookings(user: AuthUser | None):
    st.title("🧾 My Bookings")
    if not _require_user(user):
        return

    rows = _load("bookings", bookings.get_user_bookings, user.id)
    if rows is None:
        return
    if not rows:
        st.info("You have no bookings yet.")
        return

    for b in rows:
        destination = b.get("destination") or {}
        treatment = b.get("treatment") or {}
        with st.container(border=True):
            st.subheader(f"{treatment.get('name', 'Treatment')} in {destination.get('name', 'destination')}")
            st.caption(f"{STATUS_BADGES.get(b['status'], b['status'])} · {b.get('booking_date')}")
            if b.get("notes"):
                st.write(b["notes"])

            if b["status"] in ("pending", "confirmed"):
                if st.button("Cancel booking", key=f"cancel-{b['id']}"):
                    try:
                        bookings.update_booking_status(b["id"], "cancelled")
                        logger.info(f"Booking {b['id']} cancelled by user {user.id}")
                        st.rerun()
                    except Exception as e:
                        st.error(f"Failed to update booking status: {describe_error(e)}")
            elif st.button("Remove", key=f"delete-{b['id']}"):
                try:
                    bookings.delete_booking(b["id"])
                    logger.info(f"Booking {b['id']} removed by user {user.id}")
                    st.rerun()
                except Exception as e:
                    st.error(f"Failed to delete booking: {describe_error(e)}")


# ---------------- JOURNEY ----------------

def render_journey(journey: JourneySession | None):
    st.title("🧭 My Patient Journey")
    if journey is None or not journey.active:
        st.info("Please sign in from the sidebar to see your journey.")
        return

    if journey.error:
        st.error(journey.error)
    if journey.current_journey is None:
        if st.button("Retry"):
            journey.refresh()
            st.rerun()
        return

    stage = journey.current_stage_info()
    pct = journey.progress_percentage()
    st.progress(pct / 100, text=f"Step {journey.current_journey['current_step']} of "
                                f"{journey.current_journey['total_steps']} · {pct}%")

    if stage:
        st.subheader(f"{stage.icon} {stage.title}")
        st.write(stage.description)

    current_index = stage_index(journey.current_journey.get("journey_stage"))
    with st.expander("All stages"):
        for i, s in enumerate(JOURNEY_STAGES):
            marker = "✅" if i < current_index else ("➡️" if i == current_index else "⬜")
            st.write(f"{marker} {s.icon} **{s.title}** · {s.description}")

    next_stage = journey.next_stage()
    if next_stage and st.button(f"Continue to {next_stage.title}"):
        if journey.advance(next_stage.id):
            st.rerun()

    st.header("Milestones")
    st.caption(f"{journey.completed_milestone_count()} of {len(journey.milestones)} completed")
    for m in journey.milestones:
        with st.container(border=True):
            c1, c2 = st.columns([4, 1])
            c1.markdown(f"{'✅' if m.get('completed') else '⬜'} **{m.get('milestone_title')}**")
            if m.get("milestone_description"):
                c1.caption(m["milestone_description"])
            if not m.get("completed") and c2.button("Done", key=f"milestone-{m['id']}"):
                if journey.complete_milestone(m["id"]):
                    st.rerun()


def render_medical_history(user: AuthUser | None, journey: JourneySession | None):
    st.title("📄 Medical History")
    if not _require_user(user):
        return

    if "medical_form" not in st.session_state:
        record = _load("medical history", get_medical_history, user.id)
        st.session_state.medical_form = MedicalHistoryForm.from_record(record)
    form: MedicalHistoryForm = st.session_state.medical_form

    with st.form("medical-history"):
        for name in LIST_FIELDS:
            text = st.text_area(
                name.replace("_", " ").capitalize(),
                value="\n".join(getattr(form, name)),
                help="One entry per line",
            )
            setattr(form, name, parse_list_text(text))

        st.subheader("Lifestyle")
        c1, c2 = st.columns(2)
        form.lifestyle_factors["smoking"] = c1.checkbox("Smoking", value=form.lifestyle_factors.get("smoking", False))
        form.lifestyle_factors["alcohol"] = c2.checkbox("Alcohol", value=form.lifestyle_factors.get("alcohol", False))
        form.lifestyle_factors["exercise"] = st.text_input("Exercise", value=form.lifestyle_factors.get("exercise", ""))
        form.lifestyle_factors["diet"] = st.text_input("Diet", value=form.lifestyle_factors.get("diet", ""))

        st.subheader("Emergency contacts")
        for which in ("primary", "secondary"):
            contact = form.emergency_contacts[which]
            c1, c2, c3 = st.columns(3)
            contact["name"] = c1.text_input(f"{which.capitalize()} name", value=contact.get("name", ""))
            contact["phone"] = c2.text_input(f"{which.capitalize()} phone", value=contact.get("phone", ""))
            contact["relationship"] = c3.text_input(
                f"{which.capitalize()} relationship", value=contact.get("relationship", "")
            )

        st.subheader("Insurance")
        ins = form.insurance_information
        c1, c2, c3 = st.columns(3)
        ins["provider"] = c1.text_input("Provider", value=ins.get("provider", ""))
        ins["policy_number"] = c2.text_input("Policy number", value=ins.get("policy_number", ""))
        ins["group_number"] = c3.text_input("Group number", value=ins.get("group_number", ""))

        submitted = st.form_submit_button("Save medical history")

    if submitted:
        if journey is None or not journey.active:
            st.error("Please sign in again to save your medical history.")
            return
        try:
            submit_medical_history(journey, form)
            st.success("Medical history saved.")
        except Exception as e:
            st.error(describe_error(e))


def render_support(user: AuthUser | None):
    st.title("🛟 Support")
    if not _require_user(user):
        return

    with st.form("support-ticket", clear_on_submit=True):
        subject = st.text_input("Subject")
        c1, c2 = st.columns(2)
        category = c1.selectbox("Category", list(support.CATEGORIES), format_func=support.CATEGORIES.get)
        priority = c2.selectbox(
            "Priority", list(support.PRIORITIES), index=1, format_func=support.PRIORITIES.get
        )
        description = st.text_area("Description")
        submitted = st.form_submit_button("Submit ticket")

    if submitted:
        errors = support.validate_ticket(subject, description, priority, category)
        if errors:
            st.error(next(iter(errors.values())))
            return
        try:
            ticket = support.create_support_ticket(user.id, subject, description, priority, category)
            st.success(f"Ticket `{ticket.get('id')}` created. Our team will get back to you.")
        except Exception as e:
            st.error(f"Failed to create ticket: {describe_error(e)}")


def _render_password_form():
    with st.form("update-password", clear_on_submit=True):
        password = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Update password")

    if submitted:
        try:
            auth.update_password(password, confirm)
            st.session_state.pop("password_recovery", None)
            st.success("Password updated successfully.")
        except AuthError as e:
            st.error(str(e))


def render_profile(user: AuthUser | None, journey: JourneySession | None):
    st.title("👤 My Profile")
    if not _require_user(user):
        return

    if st.session_state.get("password_recovery"):
        st.info("Choose a new password to finish resetting your account.")
        _render_password_form()

    profile = _load("profile", profiles.get_user_profile, user.id, user.email)
    if profile is None:
        return

    c1, c2 = st.columns([1, 3])
    with c1:
        if profile.get("avatar_url"):
            st.image(profile["avatar_url"], width=120)
        upload = st.file_uploader("Profile photo", type=["png", "jpg", "jpeg", "gif"])
        if upload is not None and st.button("Upload photo"):
            try:
                profiles.upload_avatar(user.id, upload.name, upload.getvalue(), upload.type)
                st.rerun()
            except Exception as e:
                st.error(f"Failed to upload photo: {describe_error(e)}")
    with c2:
        st.caption(profile.get("email") or "")

    with st.form("profile"):
        c1, c2 = st.columns(2)
        data = {
            "first_name": c1.text_input("First name", value=profile.get("first_name") or ""),
            "last_name": c2.text_input("Last name", value=profile.get("last_name") or ""),
            "date_of_birth": st.text_input(
                "Date of birth", value=profile.get("date_of_birth") or "", placeholder="YYYY-MM-DD"
            ),
            "phone_number": c1.text_input("Phone number", value=profile.get("phone_number") or ""),
            "address": st.text_input("Address", value=profile.get("address") or ""),
            "city": c1.text_input("City", value=profile.get("city") or ""),
            "country": c2.text_input("Country", value=profile.get("country") or ""),
            "medical_history": st.text_area(
                "Medical notes", value=profile.get("medical_history") or "",
                help="Anything a clinic should know before you travel",
            ),
        }
        submitted = st.form_submit_button("Save profile")

    if submitted:
        errors = profiles.validate_profile(data)
        if errors:
            st.error(next(iter(errors.values())))
            return
        try:
            if journey is not None and journey.active:
                profiles.submit_profile(journey, data)
            else:
                profiles.save_profile(user.id, data)
            st.success("Profile saved.")
        except Exception as e:
            st.error(f"Failed to save profile: {describe_error(e)}")

    if not st.session_state.get("password_recovery"):
        with st.expander("Change password"):
            _render_password_form()
