# meditravel/support.py

from typing import Any, Dict

from meditravel.db.database import get_supabase_client
from meditravel.db.models import SUPPORT_TICKETS_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

CATEGORIES = {
    "general": "General Inquiry",
    "medical": "Medical Question",
    "payment": "Payment Issue",
    "travel": "Travel Coordination",
    "technical": "Technical Support",
    "complaint": "Complaint",
    "emergency": "Emergency",
}

PRIORITIES = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "urgent": "Urgent",
}


def validate_ticket(subject: str, description: str, priority: str, category: str) -> Dict[str, str]:
    errors = {}
    if not (subject or "").strip():
        errors["subject"] = "Please enter a subject."
    if not (description or "").strip():
        errors["description"] = "Please describe your issue."
    if priority not in PRIORITIES:
        errors["priority"] = f"Unknown priority: {priority}"
    if category not in CATEGORIES:
        errors["category"] = f"Unknown category: {category}"
    return errors


def create_support_ticket(
    user_id: str,
    subject: str,
    description: str,
    priority: str = "medium",
    category: str = "general",
) -> Dict[str, Any]:
    try:
        if not user_id:
            raise Exception("User not authenticated")

        errors = validate_ticket(subject, description, priority, category)
        if errors:
            raise ValueError(next(iter(errors.values())))

        supabase = get_supabase_client()
        response = (
            supabase.table(SUPPORT_TICKETS_TABLE)
            .insert(
                {
                    "user_id": user_id,
                    "subject": subject.strip(),
                    "description": description.strip(),
                    "priority": priority,
                    "category": category,
                    "status": "open",
                }
            )
            .execute()
        )
        if not response.data:
            raise Exception("Failed to create support ticket. No data returned.")
        return response.data[0]
    except Exception as e:
        logger.error(f"Error creating support ticket: {e}")
        raise
