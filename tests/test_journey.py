import pytest

from meditravel.db.models import JOURNEYS_TABLE, MILESTONES_TABLE
from meditravel.journey import (
    INITIAL_STAGE,
    JOURNEY_STAGES,
    STAGE_IDS,
    JourneySession,
    stage_index,
)

USER_ID = "user-1"


def advance_procedure(db, params):
    """Stand-in for the advance_patient_journey stored procedure."""
    for row in db.tables[JOURNEYS_TABLE]:
        if row["user_id"] == params["p_user_id"]:
            row["journey_stage"] = params["p_new_stage"]
            row["current_step"] = STAGE_IDS.index(params["p_new_stage"]) + 1
    return None


@pytest.fixture
def session(fake_db):
    fake_db.procedures["advance_patient_journey"] = advance_procedure
    s = JourneySession(fake_db)
    s.start(USER_ID)
    return s


def journey_at(fake_db, stage_id, step=None, total=16):
    fake_db.seed(
        JOURNEYS_TABLE,
        [{"user_id": USER_ID, "journey_stage": stage_id,
          "current_step": step if step is not None else STAGE_IDS.index(stage_id) + 1,
          "total_steps": total}],
    )
    s = JourneySession(fake_db)
    fake_db.procedures["advance_patient_journey"] = advance_procedure
    s.start(USER_ID)
    return s


class TestStages:
    def test_sixteen_ordered_stages(self):
        assert len(JOURNEY_STAGES) == 16
        assert STAGE_IDS[0] == "initial_inquiry"
        assert STAGE_IDS[-1] == "outcome_assessment"
        assert len(set(STAGE_IDS)) == 16

    def test_stage_index_unknown(self):
        assert stage_index("not_a_stage") == -1
        assert stage_index(None) == -1


class TestInitialJourney:
    def test_new_user_gets_one_journey_and_three_milestones(self, fake_db, session):
        journeys = fake_db.tables[JOURNEYS_TABLE]
        assert len(journeys) == 1
        assert journeys[0]["user_id"] == USER_ID
        assert journeys[0]["journey_stage"] == INITIAL_STAGE
        assert journeys[0]["current_step"] == 1
        assert journeys[0]["total_steps"] == 16

        milestones = fake_db.tables[MILESTONES_TABLE]
        assert len(milestones) == 3
        assert all(m["journey_id"] == journeys[0]["id"] for m in milestones)
        completed = [m for m in milestones if m["completed"]]
        assert len(completed) == 1
        assert completed[0]["milestone_type"] == "welcome"
        assert completed[0]["completed_at"]

        assert session.current_journey["id"] == journeys[0]["id"]
        assert len(session.milestones) == 3
        assert session.error is None
        assert session.loading is False

    def test_second_fetch_does_not_create_again(self, fake_db, session):
        session.refresh()
        assert len(fake_db.tables[JOURNEYS_TABLE]) == 1
        assert len(fake_db.tables[MILESTONES_TABLE]) == 3
        assert len(session.milestones) == 3

    def test_existing_journey_is_loaded(self, fake_db):
        s = journey_at(fake_db, "treatment_selection")
        assert s.current_journey["journey_stage"] == "treatment_selection"
        assert ("patient_journeys_emirafrik", "insert") not in fake_db.calls

    def test_fetch_failure_sets_error(self, fake_db):
        fake_db.fail_on(JOURNEYS_TABLE, "select")
        s = JourneySession(fake_db)
        s.start(USER_ID)
        assert s.current_journey is None
        assert s.error
        assert s.loading is False

    def test_milestone_seed_failure_keeps_journey(self, fake_db):
        fake_db.fail_on(MILESTONES_TABLE, "insert")
        s = JourneySession(fake_db)
        s.start(USER_ID)
        assert s.current_journey is not None
        assert s.milestones == []


class TestDerivedValues:
    def test_progress_step_4_of_16(self, fake_db):
        s = journey_at(fake_db, "treatment_selection", step=4)
        assert s.progress_percentage() == 25

    def test_progress_rounds_half_up(self, fake_db):
        s = journey_at(fake_db, "medical_history_collection", step=2)
        assert s.progress_percentage() == 13

    def test_progress_without_journey(self, fake_db):
        assert JourneySession(fake_db).progress_percentage() == 0

    def test_progress_with_zero_total(self, fake_db):
        s = journey_at(fake_db, "initial_inquiry", step=1, total=0)
        assert s.progress_percentage() == 0

    def test_progress_with_null_step(self, fake_db):
        fake_db.seed(JOURNEYS_TABLE, [{"user_id": USER_ID, "journey_stage": "initial_inquiry",
                                       "current_step": None, "total_steps": 16}])
        s = JourneySession(fake_db)
        s.start(USER_ID)
        assert s.progress_percentage() == 0

    @pytest.mark.parametrize("index", [0, 7, 14])
    def test_next_stage(self, fake_db, index):
        s = journey_at(fake_db, STAGE_IDS[index])
        assert s.next_stage().id == STAGE_IDS[index + 1]

    def test_next_stage_at_terminal_is_none(self, fake_db):
        s = journey_at(fake_db, "outcome_assessment")
        assert s.next_stage() is None

    def test_current_stage_info(self, session):
        info = session.current_stage_info()
        assert info.id == "initial_inquiry"
        assert info.title == "Initial Inquiry"


class TestAdvance:
    def test_advance_calls_procedure_and_refetches(self, fake_db, session):
        assert session.advance("medical_history_collection") is True
        assert fake_db.rpc_calls == [
            ("advance_patient_journey", {"p_user_id": USER_ID, "p_new_stage": "medical_history_collection"})
        ]
        assert session.current_journey["journey_stage"] == "medical_history_collection"
        assert session.current_journey["current_step"] == 2

    def test_forward_skip_allowed(self, session):
        assert session.advance("preliminary_assessment") is True
        assert session.current_journey["journey_stage"] == "preliminary_assessment"

    def test_unknown_stage_rejected_without_remote_call(self, fake_db, session):
        assert session.advance("teleport") is False
        assert fake_db.rpc_calls == []
        assert session.error

    def test_backward_move_rejected(self, fake_db):
        s = journey_at(fake_db, "treatment_selection")
        assert s.advance("initial_inquiry") is False
        assert s.advance("treatment_selection") is False
        assert fake_db.rpc_calls == []

    def test_procedure_failure(self, fake_db, session):
        fake_db.fail_on("rpc", "advance_patient_journey")
        assert session.advance("medical_history_collection") is False
        assert session.current_journey["journey_stage"] == "initial_inquiry"
        assert "advance_patient_journey failed" in session.error


class TestMilestones:
    def test_complete_milestone(self, fake_db, session):
        pending = [m for m in session.milestones if not m["completed"]]
        target, other = pending[0], pending[1]

        assert session.complete_milestone(target["id"]) is True

        by_id = {m["id"]: m for m in session.milestones}
        assert by_id[target["id"]]["completed"] is True
        assert by_id[target["id"]]["completed_at"]
        assert by_id[other["id"]]["completed"] is False
        assert by_id[other["id"]].get("completed_at") is None

    def test_complete_milestone_does_not_refetch(self, fake_db, session):
        selects_before = fake_db.calls.count((MILESTONES_TABLE, "select"))
        session.complete_milestone(session.milestones[1]["id"])
        assert fake_db.calls.count((MILESTONES_TABLE, "select")) == selects_before

    def test_complete_milestone_failure_keeps_state(self, fake_db, session):
        before = [dict(m) for m in session.milestones]
        fake_db.fail_on(MILESTONES_TABLE, "update")
        assert session.complete_milestone(session.milestones[1]["id"]) is False
        assert session.milestones == before
        assert session.error

    def test_complete_unknown_milestone(self, session):
        before = [dict(m) for m in session.milestones]
        assert session.complete_milestone(9999) is False
        assert session.milestones == before

    def test_complete_milestone_of_type(self, fake_db, session):
        assert session.complete_milestone_of_type("medical_history") is True
        done = {m["milestone_type"]: m["completed"] for m in session.milestones}
        assert done == {"welcome": True, "profile_setup": False, "medical_history": True}

        updates = fake_db.calls.count((MILESTONES_TABLE, "update"))
        assert session.complete_milestone_of_type("medical_history") is True
        assert session.complete_milestone_of_type("visa") is True
        assert fake_db.calls.count((MILESTONES_TABLE, "update")) == updates

    def test_add_milestone(self, fake_db, session):
        row = session.add_milestone({"milestone_type": "visa", "milestone_title": "Apply for visa", "completed": False})
        assert row["journey_id"] == session.current_journey["id"]
        assert session.milestones[-1]["id"] == row["id"]
        assert len(fake_db.tables[MILESTONES_TABLE]) == 4


class TestLifecycle:
    def test_close_clears_state(self, session):
        session.close()
        assert not session.active
        assert session.current_journey is None
        assert session.milestones == []
        assert session.error is None

    def test_advance_after_close(self, fake_db, session):
        session.close()
        assert session.advance("medical_history_collection") is False
        assert fake_db.rpc_calls == []

    def test_start_for_another_user_replaces_state(self, fake_db, session):
        first_journey = session.current_journey["id"]
        session.start("user-2")
        assert session.user_id == "user-2"
        assert session.current_journey["id"] != first_journey
        assert len(fake_db.tables[JOURNEYS_TABLE]) == 2
