"""
Quest session flow: start, advance, finalize, rate.
"""
import pytest

from backend.app.core.errors import (
    FinalizationFailed,
    InvalidSessionState,
    NetworkError,
    ServerError,
    StartFailed,
)
from backend.app.schemas import Coordinates, RatingSubmission, StepState, StepSubmission
from backend.app.services.quest_detail import QuestDetailResolver
from backend.app.services.quest_session import QuestSession, SessionState

HERE = Coordinates(latitude=52.521, longitude=13.405)


@pytest.mark.asyncio
async def test_start_marks_active_and_asks_for_refresh(quest_server):
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()

    event = await session.start()

    assert event.kind == "started"
    assert session.state == SessionState.ACTIVE
    assert session.needs_refresh is True
    assert quest_server.calls_to("start_quest") == [{"quest_id": "quest-1"}]

    await session.refresh()
    assert session.needs_refresh is False
    assert session.current_step().step_number == 1


@pytest.mark.asyncio
async def test_start_failure_leaves_state_unchanged(quest_server):
    quest_server.fail("start_quest", ServerError("Quest is full"))
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()

    with pytest.raises(StartFailed) as exc_info:
        await session.start()

    assert exc_info.value.reason == "Quest is full"
    assert session.state == SessionState.AVAILABLE
    assert session.events == []


@pytest.mark.asyncio
async def test_scenario_first_step_makes_second_current(quest_server):
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()
    await session.start()
    await session.refresh()

    outcome = await session.advance(session.current_step(), StepSubmission(location=HERE))
    await session.refresh()

    assert outcome.quest_completed is False
    assert session.resolved.progress.current_step_number == 1
    states = {step.step_number: state for step, state in session.step_states()}
    assert states == {1: StepState.COMPLETED, 2: StepState.CURRENT, 3: StepState.LOCKED}


@pytest.mark.asyncio
async def test_scenario_last_step_finalizes_quest(quest_server):
    quest_server.status = "active"
    quest_server.current_step_number = 2
    seen = []
    session = QuestSession(quest_server, "quest-1", listener=seen.append)
    await session.refresh()

    outcome = await session.advance(session.current_step(), StepSubmission(location=HERE))

    assert outcome.quest_completed is True
    assert quest_server.call_names[-2:] == ["complete_step", "complete_quest"]
    assert session.state == SessionState.COMPLETED
    assert session.rewards.xp == 150
    assert session.rewards.level_up is True
    assert session.rewards.rank_name == "Junior Journeyman"
    assert [event.kind for event in seen] == ["step_completed", "quest_completed"]
    assert seen == session.events


@pytest.mark.asyncio
async def test_scenario_finalization_failure_keeps_active_and_allows_retry(quest_server):
    quest_server.status = "active"
    quest_server.current_step_number = 2
    quest_server.fail("complete_quest", NetworkError())
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()

    with pytest.raises(FinalizationFailed):
        await session.advance(session.current_step(), StepSubmission(location=HERE))

    assert session.state == SessionState.ACTIVE
    assert session.pending_finalization is True
    assert session.events[-1].kind == "finalization_failed"

    await session.refresh()
    assert session.state == SessionState.ACTIVE

    with pytest.raises(InvalidSessionState):
        await session.advance(session.resolved.quest.steps[2], StepSubmission(location=HERE))

    rewards = await session.finalize()

    assert rewards.xp == 150
    assert session.state == SessionState.COMPLETED
    assert quest_server.call_names.count("complete_quest") == 2
    assert quest_server.call_names.count("complete_step") == 1


@pytest.mark.asyncio
async def test_scenario_detail_failure_still_resolves(quest_server):
    quest_server.fail("get_quest_detail", ServerError("rpc not found"))
    session = QuestSession(quest_server, "quest-1")

    resolved = await session.refresh()

    assert resolved.source == "list"
    assert resolved.quest.steps == []
    assert session.current_step() is None


@pytest.mark.asyncio
async def test_finalize_before_last_step_is_rejected(quest_server):
    session = QuestSession(quest_server, "quest-1")

    with pytest.raises(InvalidSessionState):
        await session.finalize()

    assert quest_server.calls == []


@pytest.mark.asyncio
async def test_rate_requires_completed_quest(quest_server):
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()

    with pytest.raises(InvalidSessionState):
        await session.rate(RatingSubmission(overall_rating=4))

    assert "submit_rating" not in quest_server.call_names


@pytest.mark.asyncio
async def test_rate_after_completion(quest_server):
    quest_server.status = "completed"
    quest_server.current_step_number = 3
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()
    assert session.state == SessionState.COMPLETED

    await session.rate(RatingSubmission(overall_rating=4, fun_rating=5, feedback_text="Great walk"))

    assert session.state == SessionState.RATED
    assert quest_server.calls_to("submit_rating") == [
        {
            "questId": "quest-1",
            "overallRating": 4,
            "difficultyRating": 4,
            "funRating": 5,
            "feedbackText": "Great walk",
        }
    ]

    await session.refresh()
    assert session.state == SessionState.RATED


@pytest.mark.asyncio
async def test_duplicate_rating_surfaces_server_error(quest_server):
    quest_server.status = "completed"
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()
    await session.rate(RatingSubmission(overall_rating=3))

    with pytest.raises(ServerError):
        await session.rate(RatingSubmission(overall_rating=3))

    assert quest_server.call_names.count("submit_rating") == 2


@pytest.mark.asyncio
async def test_full_walkthrough(quest_server):
    session = QuestSession(quest_server, "quest-1")
    await session.refresh()
    await session.start()
    await session.refresh()

    while session.state == SessionState.ACTIVE:
        await session.advance(session.current_step(), StepSubmission(location=HERE, photo=b"img"))
        if session.state == SessionState.ACTIVE:
            await session.refresh()

    await session.rate(RatingSubmission(overall_rating=5))

    assert [event.kind for event in session.events] == [
        "started",
        "step_completed",
        "step_completed",
        "step_completed",
        "quest_completed",
        "rated",
    ]
    assert quest_server.call_names.count("upload_photo") == 3
    assert session.state == SessionState.RATED


@pytest.mark.asyncio
async def test_finalization_failure_without_refresh_keeps_session_active(quest_server):
    quest_server.status = "active"
    quest_server.current_step_number = 2
    quest_server.fail("complete_quest", NetworkError())
    last_step = (await QuestDetailResolver(quest_server).resolve("quest-1")).quest.steps[2]
    session = QuestSession(quest_server, "quest-1")
    assert session.state == SessionState.AVAILABLE

    with pytest.raises(FinalizationFailed):
        await session.advance(last_step, StepSubmission(location=HERE))

    assert session.state == SessionState.ACTIVE
    assert session.pending_finalization is True
