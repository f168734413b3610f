# meditravel/profiles.py

import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from meditravel.db.database import get_supabase_client
from meditravel.db.models import AVATAR_BUCKET, PROFILES_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

PROFILE_FIELDS = [
    "first_name",
    "last_name",
    "date_of_birth",
    "phone_number",
    "address",
    "city",
    "country",
    "avatar_url",
    "medical_history",
]

# Journey milestone a saved profile completes
PROFILE_MILESTONE = "profile_setup"


def default_profile(user_id: str, email: str = "") -> Dict[str, Any]:
    return {"id": user_id, "email": email, **{f: "" for f in PROFILE_FIELDS}, "avatar_url": None}


# ----------------- VALIDATORS ------------------------

def validate_profile(data: Dict[str, Any], today: Optional[date] = None) -> Dict[str, str]:
    errors = {}
    if not (data.get("first_name") or "").strip():
        errors["first_name"] = "Please enter your first name."
    if not (data.get("last_name") or "").strip():
        errors["last_name"] = "Please enter your last name."

    dob = data.get("date_of_birth")
    if isinstance(dob, str) and dob.strip():
        try:
            dob = datetime.strptime(dob.strip(), "%Y-%m-%d").date()
        except ValueError:
            errors["date_of_birth"] = "Invalid date format. Please use YYYY-MM-DD."
            dob = None
    if isinstance(dob, date) and dob > (today or date.today()):
        errors["date_of_birth"] = "Date of birth cannot be in the future."
    return errors


def _to_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    payload = {}
    for f in PROFILE_FIELDS:
        if f not in data:
            continue
        value = data[f]
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, str):
            value = value.strip()
        # an empty date is not a valid date column value
        if f == "date_of_birth" and not value:
            value = None
        payload[f] = value
    return payload


# ----------------- PERSISTENCE ------------------------

def get_user_profile(user_id: str, email: str = "") -> Dict[str, Any]:
    """The saved profile with the account email, or an empty profile when none is saved yet."""
    try:
        if not user_id:
            raise Exception("User not authenticated")

        supabase = get_supabase_client()
        response = (
            supabase.table(PROFILES_TABLE)
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return default_profile(user_id, email)
        return {**response.data[0], "email": email}
    except Exception as e:
        logger.error(f"Error fetching user profile: {e}")
        raise


def save_profile(user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Create the profile on first save, update it afterwards."""
    try:
        if not user_id:
            raise Exception("User not authenticated")

        errors = validate_profile(data)
        if errors:
            raise ValueError(next(iter(errors.values())))

        supabase = get_supabase_client()
        response = (
            supabase.table(PROFILES_TABLE)
            .upsert(
                {"id": user_id, **_to_payload(data), "updated_at": datetime.now(timezone.utc).isoformat()},
                on_conflict="id",
            )
            .execute()
        )
        if not response.data:
            raise Exception("Failed to save profile. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error saving user profile: {e}")
        raise


def upload_avatar(user_id: str, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
    """Store the image in the avatar bucket, point the profile at it and return its public URL."""
    try:
        if not user_id:
            raise Exception("User not authenticated")

        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "png"
        path = f"avatars/{user_id}-{uuid.uuid4().hex[:10]}.{ext}"

        supabase = get_supabase_client()
        bucket = supabase.storage.from_(AVATAR_BUCKET)
        bucket.upload(path, content, {"content-type": content_type or f"image/{ext}"})
        url = bucket.get_public_url(path)

        supabase.table(PROFILES_TABLE).upsert(
            {"id": user_id, "avatar_url": url, "updated_at": datetime.now(timezone.utc).isoformat()},
            on_conflict="id",
        ).execute()
        logger.info(f"Avatar uploaded for user {user_id}")
        return url
    except Exception as e:
        logger.error(f"Error uploading avatar: {e}")
        raise


def submit_profile(session, data: Dict[str, Any]) -> Dict[str, Any]:
    """Save the profile for the session's user and tick the profile milestone of their journey."""
    record = save_profile(session.user_id, data)
    if session.active:
        session.complete_milestone_of_type(PROFILE_MILESTONE)
    return record
