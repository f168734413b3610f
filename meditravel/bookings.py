# meditravel/bookings.py

from typing import Any, Dict, List

from meditravel.db.database import get_supabase_client
from meditravel.db.models import BOOKINGS_TABLE, BOOKING_STATUSES
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

# Embeds the booked destination and treatment through their foreign keys
BOOKING_WITH_RELATIONS = (
    "*, "
    "destination:destination_id(id, name, city, country, image_url), "
    "treatment:treatment_id(id, name, category, icon_name, color)"
)


def create_booking(user_id: str, booking_data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a new booking for the signed-in user. Bookings start as pending."""
    try:
        if not user_id:
            raise Exception("User not authenticated")

        supabase = get_supabase_client()
        response = (
            supabase.table(BOOKINGS_TABLE)
            .insert({**booking_data, "user_id": user_id, "status": "pending"})
            .execute()
        )
        if not response.data:
            raise Exception("Failed to insert booking. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error creating booking: {e}")
        raise


def get_user_bookings(user_id: str) -> List[Dict[str, Any]]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(BOOKINGS_TABLE)
            .select(BOOKING_WITH_RELATIONS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching user bookings: {e}")
        raise


def get_booking_by_id(booking_id) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(BOOKINGS_TABLE)
            .select(BOOKING_WITH_RELATIONS)
            .eq("id", booking_id)
            .single()
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching booking details: {e}")
        raise


def update_booking_status(booking_id, status: str) -> Dict[str, Any]:
    try:
        if status not in BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {status}")

        supabase = get_supabase_client()
        response = (
            supabase.table(BOOKINGS_TABLE)
            .update({"status": status})
            .eq("id", booking_id)
            .execute()
        )
        if not response.data:
            raise Exception(f"Booking {booking_id} not found.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error updating booking status: {e}")
        raise


def update_booking_details(booking_id, booking_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(BOOKINGS_TABLE)
            .update(booking_data)
            .eq("id", booking_id)
            .execute()
        )
        if not response.data:
            raise Exception(f"Booking {booking_id} not found.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error updating booking details: {e}")
        raise


def delete_booking(booking_id) -> bool:
    try:
        supabase = get_supabase_client()
        supabase.table(BOOKINGS_TABLE).delete().eq("id", booking_id).execute()
        return True
    except Exception as e:
        logger.error(f"Error deleting booking: {e}")
        raise


def get_all_bookings() -> List[Dict[str, Any]]:
    """Every booking with its relations, for the admin dashboard."""
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(BOOKINGS_TABLE)
            .select(BOOKING_WITH_RELATIONS)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching bookings: {e}")
        raise
