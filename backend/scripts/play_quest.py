"""
Walk one quest end to end against a live Nakama server.

Usage:
    python backend/scripts/play_quest.py <email> <password> <quest_id> [latitude longitude]

Every step is completed from the given coordinates, or from the step's own
target location when it has one.
"""

import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(project_root))

from backend.app.core.errors import WayfarerError
from backend.app.schemas import Coordinates, QuestEvent, RatingSubmission, StepSubmission
from backend.app.services.nakama import NakamaClient, connect
from backend.app.services.quest_session import QuestSession, SessionState


def _print_event(event: QuestEvent) -> None:
    print(f"  [event] {event.kind} {event.step_id or ''} {event.reason or ''}".rstrip())


async def play_quest(email: str, password: str, quest_id: str, fallback: Coordinates | None = None):
    client = NakamaClient()
    try:
        print("=" * 50)
        print("1. Authenticate")
        print("=" * 50)
        gateway = await connect(client, email, password)
        print(f"  ✓ user {gateway.session.user_id}")

        session = QuestSession(gateway, quest_id, listener=_print_event)

        print("\n" + "=" * 50)
        print("2. Resolve quest")
        print("=" * 50)
        resolved = await session.refresh()
        print(f"  ✓ {resolved.quest.title} ({resolved.quest.total_steps} steps, via {resolved.source})")
        print(f"  status={resolved.progress.status.value} step={resolved.progress.current_step_number}")

        if session.state == SessionState.AVAILABLE:
            await session.start()
            resolved = await session.refresh()

        print("\n" + "=" * 50)
        print("3. Complete steps")
        print("=" * 50)
        while session.state == SessionState.ACTIVE and not session.pending_finalization:
            step = session.current_step()
            if step is None:
                print("  ✗ no current step; the quest list fallback carries no steps")
                return
            location = step.location or fallback
            if location is None:
                print(f"  ✗ step {step.step_number} has no location and none was given")
                return
            outcome = await session.advance(step, StepSubmission(location=location, text="manual walkthrough"))
            print(f"  ✓ step {outcome.step_number} done (quest_completed={outcome.quest_completed})")
            if session.state == SessionState.ACTIVE:
                await session.refresh()

        if session.pending_finalization:
            await session.finalize()

        print("\n" + "=" * 50)
        print("4. Rewards and rating")
        print("=" * 50)
        if session.rewards is not None:
            print(f"  ✓ +{session.rewards.xp} XP, level_up={session.rewards.level_up}, rank={session.rewards.rank_name}")
        await session.rate(RatingSubmission(overall_rating=5, feedback_text="Played from the walkthrough script"))
        print("  ✓ rating submitted")
    except WayfarerError as exc:
        print(f"  ✗ {type(exc).__name__}: {exc.detail}")
    finally:
        await client.aclose()


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print(__doc__)
        raise SystemExit(1)

    fallback_location = None
    if len(sys.argv) > 5:
        fallback_location = Coordinates(latitude=float(sys.argv[4]), longitude=float(sys.argv[5]))

    asyncio.run(play_quest(sys.argv[1], sys.argv[2], sys.argv[3], fallback_location))
