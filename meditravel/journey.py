"""
Patient journey tracking.

A journey is one row per user in the journeys table plus its milestones.
The stage transition rule itself lives in the database procedure
``advance_patient_journey``; this module only mirrors what the store returns.

``JourneySession`` is created when a user signs in (``start``) and torn down
when they sign out (``close``). The UI keeps one per browser session.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from meditravel.db.database import describe_error
from meditravel.db.models import ADVANCE_JOURNEY_RPC, JOURNEYS_TABLE, MILESTONES_TABLE
from meditravel.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class JourneyStage:
    id: str
    title: str
    description: str
    icon: str


JOURNEY_STAGES = (
    JourneyStage("initial_inquiry", "Initial Inquiry", "Welcome! Let's start your healthcare journey", "💬"),
    JourneyStage("medical_history_collection", "Medical History", "Provide your medical background and history", "📄"),
    JourneyStage("preliminary_assessment", "Health Assessment", "Initial evaluation of your health needs", "🩺"),
    JourneyStage("treatment_selection", "Treatment Selection", "Choose the best treatment option for you", "❤️"),
    JourneyStage("provider_matching", "Provider Matching", "Find the right healthcare provider", "👥"),
    JourneyStage("payment_processing", "Payment Processing", "Secure payment for your treatment", "💳"),
    JourneyStage("appointment_booking", "Appointment Booking", "Schedule your medical appointments", "📅"),
    JourneyStage("pre_travel_preparation", "Travel Preparation", "Prepare for your medical journey", "🧳"),
    JourneyStage("visa_accommodation", "Visa & Accommodation", "Arrange travel documents and lodging", "🛂"),
    JourneyStage("arrival_orientation", "Arrival & Orientation", "Welcome to your destination", "📍"),
    JourneyStage("treatment_execution", "Treatment Execution", "Receive your medical treatment", "🏥"),
    JourneyStage("recovery_monitoring", "Recovery Monitoring", "Track your recovery progress", "📈"),
    JourneyStage("discharge_planning", "Discharge Planning", "Prepare for discharge and next steps", "✅"),
    JourneyStage("return_travel", "Return Travel", "Safe journey back home", "🏠"),
    JourneyStage("follow_up_care", "Follow-up Care", "Continued care and monitoring", "🔄"),
    JourneyStage("outcome_assessment", "Outcome Assessment", "Evaluate treatment success", "🏆"),
)

STAGE_IDS = [stage.id for stage in JOURNEY_STAGES]
INITIAL_STAGE = JOURNEY_STAGES[0].id


def stage_index(stage_id: Optional[str]) -> int:
    """Position of a stage in the journey, -1 when unknown."""
    try:
        return STAGE_IDS.index(stage_id)
    except ValueError:
        return -1


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def initial_milestones(journey_id) -> List[Dict[str, Any]]:
    """The three milestones every new journey starts with; welcome is already done."""
    return [
        {
            "journey_id": journey_id,
            "milestone_type": "welcome",
            "milestone_title": "Welcome to MediTravel",
            "milestone_description": "Your healthcare journey begins here",
            "completed": True,
            "completed_at": _now_iso(),
        },
        {
            "journey_id": journey_id,
            "milestone_type": "profile_setup",
            "milestone_title": "Complete Your Profile",
            "milestone_description": "Provide basic information about yourself",
            "completed": False,
        },
        {
            "journey_id": journey_id,
            "milestone_type": "medical_history",
            "milestone_title": "Medical History Form",
            "milestone_description": "Share your medical background with us",
            "completed": False,
        },
    ]


class JourneySession:
    """Journey state for one signed-in user."""

    def __init__(self, client):
        self.client = client
        self.user_id: Optional[str] = None
        self.current_journey: Optional[Dict[str, Any]] = None
        self.milestones: List[Dict[str, Any]] = []
        self.loading = False
        self.error: Optional[str] = None

    # ---------------- LIFECYCLE ----------------

    @property
    def active(self) -> bool:
        return self.user_id is not None

    def start(self, user_id: str) -> None:
        """Bind the session to a signed-in user and load their journey."""
        self.close()
        self.user_id = user_id
        logger.info(f"Journey session started for user {user_id}")
        self.refresh()

    def close(self) -> None:
        if self.user_id is not None:
            logger.info(f"Journey session closed for user {self.user_id}")
        self.user_id = None
        self.current_journey = None
        self.milestones = []
        self.loading = False
        self.error = None

    # ---------------- LOADING ----------------

    def refresh(self) -> None:
        """Fetch the user's journey and milestones, creating the journey on first use."""
        if not self.active:
            self.error = "Not signed in"
            return

        self.loading = True
        try:
            response = (
                self.client.table(JOURNEYS_TABLE)
                .select("*")
                .eq("user_id", self.user_id)
                .limit(1)
                .execute()
            )

            if response.data:
                self.current_journey = response.data[0]
                milestones_response = (
                    self.client.table(MILESTONES_TABLE)
                    .select("*")
                    .eq("journey_id", self.current_journey["id"])
                    .order("created_at")
                    .execute()
                )
                self.milestones = milestones_response.data or []
            else:
                self._create_initial_journey()
        except Exception as e:
            self.error = describe_error(e)
            logger.error(f"Error fetching journey: {e}")
        finally:
            self.loading = False

    def _create_initial_journey(self) -> None:
        try:
            response = (
                self.client.table(JOURNEYS_TABLE)
                .insert(
                    {
                        "user_id": self.user_id,
                        "journey_stage": INITIAL_STAGE,
                        "current_step": 1,
                        "total_steps": len(JOURNEY_STAGES),
                    }
                )
                .execute()
            )
            if not response.data:
                raise Exception("Failed to create journey. No data returned.")

            self.current_journey = response.data[0]
            logger.info(f"Created journey {self.current_journey['id']} for user {self.user_id}")
        except Exception as e:
            self.error = describe_error(e)
            logger.error(f"Error creating initial journey: {e}")
            return

        self._create_initial_milestones(self.current_journey["id"])

    def _create_initial_milestones(self, journey_id) -> None:
        # A journey without its seed milestones is still usable
        try:
            response = (
                self.client.table(MILESTONES_TABLE)
                .insert(initial_milestones(journey_id))
                .execute()
            )
            self.milestones = response.data or []
        except Exception as e:
            logger.error(f"Error creating initial milestones: {e}")

    # ---------------- MUTATIONS ----------------

    def can_advance_to(self, new_stage: str) -> bool:
        """Only known stages strictly ahead of the current one are accepted."""
        target = stage_index(new_stage)
        if target < 0 or self.current_journey is None:
            return False
        return target > stage_index(self.current_journey.get("journey_stage"))

    def advance(self, new_stage: str) -> bool:
        """Ask the server to move the journey to new_stage, then reload it."""
        if not self.active:
            self.error = "Not signed in"
            return False

        if not self.can_advance_to(new_stage):
            current = self.current_journey.get("journey_stage") if self.current_journey else None
            self.error = f"Cannot move journey from {current} to {new_stage}"
            logger.warning(self.error)
            return False

        try:
            self.client.rpc(
                ADVANCE_JOURNEY_RPC,
                {"p_user_id": self.user_id, "p_new_stage": new_stage},
            ).execute()
        except Exception as e:
            self.error = describe_error(e)
            logger.error(f"Error advancing journey: {e}")
            return False

        logger.info(f"Advanced journey for user {self.user_id} to {new_stage}")
        self.error = None
        self.refresh()
        return self.error is None

    def complete_milestone(self, milestone_id) -> bool:
        try:
            response = (
                self.client.table(MILESTONES_TABLE)
                .update({"completed": True, "completed_at": _now_iso()})
                .eq("id", milestone_id)
                .execute()
            )
            if not response.data:
                raise Exception(f"Milestone {milestone_id} not found.")
            completed_at = response.data[0].get("completed_at")
        except Exception as e:
            self.error = describe_error(e)
            logger.error(f"Error completing milestone: {e}")
            return False

        self.milestones = [
            {**m, "completed": True, "completed_at": completed_at} if m.get("id") == milestone_id else m
            for m in self.milestones
        ]
        return True

    def complete_milestone_of_type(self, milestone_type: str) -> bool:
        """Complete the first open milestone of this type. True when none is left open."""
        for m in self.milestones:
            if m.get("milestone_type") == milestone_type and not m.get("completed"):
                return self.complete_milestone(m["id"])
        return True

    def add_milestone(self, milestone_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.current_journey is None:
            self.error = "No journey loaded"
            return None

        try:
            response = (
                self.client.table(MILESTONES_TABLE)
                .insert({**milestone_data, "journey_id": self.current_journey["id"]})
                .execute()
            )
            if not response.data:
                raise Exception("Failed to insert milestone. No data returned.")
        except Exception as e:
            self.error = describe_error(e)
            logger.error(f"Error adding milestone: {e}")
            return None

        milestone = response.data[0]
        self.milestones = self.milestones + [milestone]
        return milestone

    # ---------------- DERIVED VALUES ----------------

    def current_stage_info(self) -> Optional[JourneyStage]:
        if self.current_journey is None:
            return None
        index = stage_index(self.current_journey.get("journey_stage"))
        return JOURNEY_STAGES[index] if index >= 0 else None

    def progress_percentage(self) -> int:
        if self.current_journey is None:
            return 0
        total = self.current_journey.get("total_steps") or 0
        if total <= 0:
            return 0
        pct = (self.current_journey.get("current_step") or 0) / total * 100
        # half-up, so 2 of 16 shows 13% rather than banker's 12%
        return int(math.floor(pct + 0.5))

    def next_stage(self) -> Optional[JourneyStage]:
        if self.current_journey is None:
            return None
        index = stage_index(self.current_journey.get("journey_stage"))
        if index < 0 or index >= len(JOURNEY_STAGES) - 1:
            return None
        return JOURNEY_STAGES[index + 1]

    def completed_milestone_count(self) -> int:
        return sum(1 for m in self.milestones if m.get("completed"))
