# meditravel/reviews.py

from typing import Any, Dict, List

from meditravel.db.database import get_supabase_client
from meditravel.db.models import REVIEWS_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

RATING_ERROR = "Rating must be between 1 and 5."


def _rating_is_valid(rating) -> bool:
    try:
        return 1 <= int(rating) <= 5
    except (TypeError, ValueError):
        return False


def validate_review(review_data: Dict[str, Any]) -> Dict[str, str]:
    errors = {}
    if not _rating_is_valid(review_data.get("rating")):
        errors["rating"] = RATING_ERROR

    if not review_data.get("destination_id") and not review_data.get("treatment_id"):
        errors["target"] = "A review needs a destination or a treatment."
    return errors


def create_review(user_id: str, review_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        if not user_id:
            raise Exception("User not authenticated")

        supabase = get_supabase_client()
        response = (
            supabase.table(REVIEWS_TABLE)
            .insert({**review_data, "user_id": user_id})
            .execute()
        )
        if not response.data:
            raise Exception("Failed to insert review. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error creating review: {e}")
        raise


def update_review(review_id, review_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        if "rating" in review_data and not _rating_is_valid(review_data["rating"]):
            raise ValueError(RATING_ERROR)

        supabase = get_supabase_client()
        response = (
            supabase.table(REVIEWS_TABLE)
            .update(review_data)
            .eq("id", review_id)
            .execute()
        )
        if not response.data:
            raise Exception(f"Review {review_id} not found.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error updating review: {e}")
        raise


def delete_review(review_id) -> bool:
    try:
        supabase = get_supabase_client()
        supabase.table(REVIEWS_TABLE).delete().eq("id", review_id).execute()
        return True
    except Exception as e:
        logger.error(f"Error deleting review: {e}")
        raise


def _reviews_where(column: str, value) -> List[Dict[str, Any]]:
    supabase = get_supabase_client()
    response = (
        supabase.table(REVIEWS_TABLE)
        .select("*")
        .eq(column, value)
        .order("created_at", desc=True)
        .execute()
    )
    return response.data


def get_destination_reviews(destination_id) -> List[Dict[str, Any]]:
    try:
        return _reviews_where("destination_id", destination_id)
    except Exception as e:
        logger.error(f"Error fetching destination reviews: {e}")
        raise


def get_treatment_reviews(treatment_id) -> List[Dict[str, Any]]:
    try:
        return _reviews_where("treatment_id", treatment_id)
    except Exception as e:
        logger.error(f"Error fetching treatment reviews: {e}")
        raise


def get_user_reviews(user_id: str) -> List[Dict[str, Any]]:
    try:
        return _reviews_where("user_id", user_id)
    except Exception as e:
        logger.error(f"Error fetching user reviews: {e}")
        raise


def average_rating(reviews: List[Dict[str, Any]]) -> float:
    ratings = [r["rating"] for r in reviews if r.get("rating") is not None]
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 1)
