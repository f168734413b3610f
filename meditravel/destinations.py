# meditravel/destinations.py

from typing import Any, Dict, List

from meditravel.db.database import clean_search_term, get_supabase_client, ilike_any
from meditravel.db.models import DESTINATIONS_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

SEARCH_COLUMNS = ("name", "city", "country")


def get_destinations() -> List[Dict[str, Any]]:
    """All destinations, best rated first."""
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(DESTINATIONS_TABLE)
            .select("*")
            .order("rating", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching destinations: {e}")
        raise


def get_featured_destinations(limit: int = 2) -> List[Dict[str, Any]]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(DESTINATIONS_TABLE)
            .select("*")
            .eq("featured", True)
            .order("rating", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching featured destinations: {e}")
        raise


def get_destination_by_id(destination_id) -> Dict[str, Any]:
    """Single destination; a missing row raises the PostgREST error."""
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(DESTINATIONS_TABLE)
            .select("*")
            .eq("id", destination_id)
            .single()
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching destination {destination_id}: {e}")
        raise


def search_destinations(search_term: str) -> List[Dict[str, Any]]:
    # a term made only of filter syntax would match every row
    if not clean_search_term(search_term):
        return []
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(DESTINATIONS_TABLE)
            .select("*")
            .or_(ilike_any(SEARCH_COLUMNS, search_term))
            .order("rating", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error searching destinations: {e}")
        raise


def create_destination(destination_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = supabase.table(DESTINATIONS_TABLE).insert(destination_data).execute()
        if not response.data:
            raise Exception("Failed to insert destination. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error creating destination: {e}")
        raise


def update_destination(destination_id, destination_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(DESTINATIONS_TABLE)
            .update(destination_data)
            .eq("id", destination_id)
            .execute()
        )
        if not response.data:
            raise Exception(f"Destination {destination_id} not found.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error updating destination: {e}")
        raise


def delete_destination(destination_id) -> bool:
    try:
        supabase = get_supabase_client()
        supabase.table(DESTINATIONS_TABLE).delete().eq("id", destination_id).execute()
        return True
    except Exception as e:
        logger.error(f"Error deleting destination: {e}")
        raise
