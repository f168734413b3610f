from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from meditravel import bookings
from meditravel.logging_config import get_logger

logger = get_logger(__name__)


BOOKING_FIELDS = [
    "destination_id",
    "treatment_id",
    "booking_date",
]

DEFAULT_LEAD_DAYS = 7


def default_booking_date(today: Optional[date] = None) -> date:
    return (today or date.today()) + timedelta(days=DEFAULT_LEAD_DAYS)


@dataclass
class BookingFormState:
    destination_id: Optional[Any] = None
    treatment_id: Optional[Any] = None
    booking_date: Optional[date] = field(default_factory=default_booking_date)
    notes: str = ""

    submitting: bool = False
    error: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "destination_id": self.destination_id,
            "treatment_id": self.treatment_id,
            "booking_date": self.booking_date.isoformat() if self.booking_date else None,
            "notes": self.notes.strip(),
        }


# ----------------- VALIDATORS ------------------------

def parse_date_str(val: str) -> Optional[date]:
    try:
        return datetime.strptime(val.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        return None


def get_missing_fields(state: BookingFormState) -> List[str]:
    missing = []
    for f in BOOKING_FIELDS:
        value = getattr(state, f, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(f)
    return missing


MISSING_FIELD_MESSAGES = {
    "destination_id": "Please select a destination.",
    "treatment_id": "Please select a treatment.",
    "booking_date": "Please choose a preferred date.",
}


def validate(state: BookingFormState, today: Optional[date] = None) -> Dict[str, str]:
    state.errors.clear()
    today = today or date.today()

    for f in get_missing_fields(state):
        state.errors[f] = MISSING_FIELD_MESSAGES[f]

    # an empty string is already reported as missing
    if isinstance(state.booking_date, str) and state.booking_date.strip():
        parsed = parse_date_str(state.booking_date)
        if parsed is None:
            state.errors["booking_date"] = "Invalid date format. Please use YYYY-MM-DD."
        else:
            state.booking_date = parsed

    if isinstance(state.booking_date, date) and state.booking_date < today:
        state.errors["booking_date"] = "Invalid date (past). Please choose an upcoming date."

    return state.errors


# ----------------- SUMMARY ------------------------

def _label(rows: List[Dict[str, Any]], row_id, fmt) -> str:
    for row in rows:
        if row.get("id") == row_id:
            return fmt(row)
    return "N/A"


def generate_confirmation_text(
    state: BookingFormState,
    destinations: List[Dict[str, Any]],
    treatments: List[Dict[str, Any]],
) -> str:
    destination = _label(destinations, state.destination_id, lambda d: f"{d['name']} ({d['city']}, {d['country']})")
    treatment = _label(treatments, state.treatment_id, lambda t: f"{t['name']} ({t['category']})")
    # Use Markdown bullet points to force new lines
    return (
        f"- **Destination:** {destination}\n"
        f"- **Treatment:** {treatment}\n"
        f"- **Date:** {state.booking_date}\n"
        f"- **Notes:** {state.notes or 'N/A'}"
    )


# ----------------- SUBMIT ------------------------

def submit_booking(state: BookingFormState, user_id: str) -> Optional[Dict[str, Any]]:
    """Validate and create the booking. Returns the new row, or None with state.error set."""
    state.error = None
    if validate(state):
        state.error = next(iter(state.errors.values()))
        return None

    state.submitting = True
    try:
        booking = bookings.create_booking(user_id, state.to_payload())
        logger.info(f"Booking {booking.get('id')} created for user {user_id}")
        return booking
    except Exception as e:
        state.error = "Failed to create booking"
        logger.error(f"Booking submit failed: {e}")
        return None
    finally:
        state.submitting = False
