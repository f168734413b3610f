# meditravel/treatments.py

from typing import Any, Dict, List

from meditravel.db.database import clean_search_term, get_supabase_client, ilike_any
from meditravel.db.models import TREATMENTS_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

SEARCH_COLUMNS = ("name", "category", "description")


def get_treatments() -> List[Dict[str, Any]]:
    """All treatments, most performed first."""
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(TREATMENTS_TABLE)
            .select("*")
            .order("procedure_count", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching treatments: {e}")
        raise


def get_treatment_by_id(treatment_id) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(TREATMENTS_TABLE)
            .select("*")
            .eq("id", treatment_id)
            .single()
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching treatment {treatment_id}: {e}")
        raise


def get_treatments_by_category(category: str) -> List[Dict[str, Any]]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(TREATMENTS_TABLE)
            .select("*")
            .eq("category", category)
            .order("procedure_count", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error fetching treatments by category: {e}")
        raise


def search_treatments(search_term: str) -> List[Dict[str, Any]]:
    # a term made only of filter syntax would match every row
    if not clean_search_term(search_term):
        return []
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(TREATMENTS_TABLE)
            .select("*")
            .or_(ilike_any(SEARCH_COLUMNS, search_term))
            .order("procedure_count", desc=True)
            .execute()
        )
        return response.data
    except Exception as e:
        logger.error(f"Error searching treatments: {e}")
        raise


def create_treatment(treatment_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = supabase.table(TREATMENTS_TABLE).insert(treatment_data).execute()
        if not response.data:
            raise Exception("Failed to insert treatment. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error creating treatment: {e}")
        raise


def update_treatment(treatment_id, treatment_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        supabase = get_supabase_client()
        response = (
            supabase.table(TREATMENTS_TABLE)
            .update(treatment_data)
            .eq("id", treatment_id)
            .execute()
        )
        if not response.data:
            raise Exception(f"Treatment {treatment_id} not found.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error updating treatment: {e}")
        raise


def delete_treatment(treatment_id) -> bool:
    try:
        supabase = get_supabase_client()
        supabase.table(TREATMENTS_TABLE).delete().eq("id", treatment_id).execute()
        return True
    except Exception as e:
        logger.error(f"Error deleting treatment: {e}")
        raise
