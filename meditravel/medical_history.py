from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from meditravel.db.database import get_supabase_client
from meditravel.db.models import MEDICAL_HISTORY_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

LIST_FIELDS = [
    "medical_conditions",
    "current_medications",
    "allergies",
    "previous_surgeries",
    "family_history",
]

# Stage the journey moves to once a medical history has been submitted
NEXT_STAGE_AFTER_HISTORY = "preliminary_assessment"
HISTORY_MILESTONE = "medical_history"


def _empty_contact() -> Dict[str, str]:
    return {"name": "", "phone": "", "relationship": ""}


@dataclass
class MedicalHistoryForm:
    medical_conditions: List[str] = field(default_factory=list)
    current_medications: List[str] = field(default_factory=list)
    allergies: List[str] = field(default_factory=list)
    previous_surgeries: List[str] = field(default_factory=list)
    family_history: List[str] = field(default_factory=list)
    lifestyle_factors: Dict[str, Any] = field(
        default_factory=lambda: {"smoking": False, "alcohol": False, "exercise": "", "diet": ""}
    )
    emergency_contacts: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {"primary": _empty_contact(), "secondary": _empty_contact()}
    )
    insurance_information: Dict[str, str] = field(
        default_factory=lambda: {"provider": "", "policy_number": "", "group_number": ""}
    )

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> "MedicalHistoryForm":
        form = cls()
        if not record:
            return form
        for name in LIST_FIELDS:
            setattr(form, name, list(record.get(name) or []))
        if record.get("lifestyle_factors"):
            form.lifestyle_factors = {**form.lifestyle_factors, **record["lifestyle_factors"]}
        if record.get("emergency_contacts"):
            form.emergency_contacts = {**form.emergency_contacts, **record["emergency_contacts"]}
        if record.get("insurance_information"):
            form.insurance_information = {**form.insurance_information, **record["insurance_information"]}
        return form

    def add_item(self, field_name: str, value: str) -> None:
        if field_name not in LIST_FIELDS:
            raise ValueError(f"{field_name} is not a list field")
        value = (value or "").strip()
        if value:
            getattr(self, field_name).append(value)

    def remove_item(self, field_name: str, index: int) -> None:
        items = getattr(self, field_name)
        if 0 <= index < len(items):
            del items[index]

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


def parse_list_text(text: str) -> List[str]:
    """One entry per line or comma, blanks dropped."""
    parts = []
    for line in (text or "").splitlines():
        parts.extend(p.strip() for p in line.split(","))
    return [p for p in parts if p]


def get_medical_history(user_id: str) -> Optional[Dict[str, Any]]:
    """The user's saved medical history, or None when nothing is saved yet."""
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(MEDICAL_HISTORY_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None
    except Exception as e:
        logger.error(f"Error fetching medical history: {e}")
        raise


def save_medical_history(user_id: str, form: MedicalHistoryForm) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        payload = {
            "user_id": user_id,
            **form.to_payload(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        response = (
            supabase.table(MEDICAL_HISTORY_TABLE)
            .upsert(payload, on_conflict="user_id")
            .execute()
        )
        if not response.data:
            raise Exception("Failed to save medical history. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error saving medical history: {e}")
        raise


def submit_medical_history(session, form: MedicalHistoryForm) -> Dict[str, Any]:
    """
    Save the form for the session's user, tick their medical history milestone
    and move their journey on. A journey that is already past the assessment
    stage keeps its stage.
    """
    record = save_medical_history(session.user_id, form)
    session.complete_milestone_of_type(HISTORY_MILESTONE)
    if session.can_advance_to(NEXT_STAGE_AFTER_HISTORY):
        session.advance(NEXT_STAGE_AFTER_HISTORY)
    return record
