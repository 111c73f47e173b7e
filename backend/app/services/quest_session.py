"""
Top-level coordinator for one player's run through one quest.

Every mutating call goes to the server. Cached definition and progress are
refreshed by re-resolving the quest; they are never edited locally.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from ..core.errors import FinalizationFailed, GatewayError, InvalidSessionState, StartFailed
from ..schemas.quests import (
    CompletionRewards,
    QuestEvent,
    QuestStatus,
    QuestStep,
    RatingSubmission,
    ResolvedQuest,
    StepOutcome,
    StepState,
    StepSubmission,
)
from .nakama import RpcGateway
from .progression import annotate_rewards
from .quest_detail import QuestDetailResolver
from .step_progression import StepProgressionEngine, current_step, step_state

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    AVAILABLE = "available"
    ACTIVE = "active"
    COMPLETED = "completed"
    RATED = "rated"
    ABANDONED = "abandoned"


_STATE_BY_STATUS = {
    QuestStatus.AVAILABLE: SessionState.AVAILABLE,
    QuestStatus.ACTIVE: SessionState.ACTIVE,
    QuestStatus.COMPLETED: SessionState.COMPLETED,
    QuestStatus.ABANDONED: SessionState.ABANDONED,
}


class QuestSession:
    def __init__(
        self,
        gateway: RpcGateway,
        quest_id: str,
        *,
        resolver: QuestDetailResolver | None = None,
        engine: StepProgressionEngine | None = None,
        listener: Callable[[QuestEvent], None] | None = None,
    ) -> None:
        self.gateway = gateway
        self.quest_id = quest_id
        self.resolver = resolver or QuestDetailResolver(gateway)
        self.engine = engine or StepProgressionEngine(gateway)
        self.listener = listener

        self.state = SessionState.AVAILABLE
        self.resolved: ResolvedQuest | None = None
        self.rewards: CompletionRewards | None = None
        self.last_outcome: StepOutcome | None = None
        self.events: list[QuestEvent] = []
        self.needs_refresh = True
        self.pending_finalization = False

    def _emit(self, event: QuestEvent) -> None:
        self.events.append(event)
        if self.listener is not None:
            self.listener(event)

    async def refresh(self) -> ResolvedQuest:
        resolved = await self.resolver.resolve(self.quest_id)
        self.resolved = resolved
        self.needs_refresh = False

        server_state = _STATE_BY_STATUS[resolved.progress.status]
        if server_state == SessionState.COMPLETED:
            self.pending_finalization = False
            if self.state != SessionState.RATED:
                self.state = SessionState.COMPLETED
        elif not self.pending_finalization:
            self.state = server_state
        return resolved

    def step_states(self) -> list[tuple[QuestStep, StepState]]:
        if self.resolved is None:
            return []
        return [(step, step_state(self.resolved.progress, step.step_number)) for step in self.resolved.quest.steps]

    def current_step(self) -> QuestStep | None:
        if self.resolved is None:
            return None
        return current_step(self.resolved.quest, self.resolved.progress)

    async def start(self) -> QuestEvent:
        """
        Start the quest on the server.

        The start response carries no steps, so `needs_refresh` is set and the
        caller should `refresh()` before driving steps.
        """
        try:
            await self.gateway.call("start_quest", {"quest_id": self.quest_id})
        except GatewayError as exc:
            raise StartFailed(exc.detail or "start_quest failed") from exc

        self.state = SessionState.ACTIVE
        self.needs_refresh = True
        event = QuestEvent(kind="started", quest_id=self.quest_id)
        self._emit(event)
        logger.info("Started quest %s", self.quest_id)
        return event

    async def advance(self, step: QuestStep, submission: StepSubmission) -> StepOutcome:
        if self.state in (SessionState.COMPLETED, SessionState.RATED):
            raise InvalidSessionState(f"Quest {self.quest_id} is already completed.")
        if self.pending_finalization:
            raise InvalidSessionState("All steps are done; call finalize() to complete the quest.")

        progress = self.resolved.progress if self.resolved is not None else None
        outcome = await self.engine.complete_step(self.quest_id, step, submission, progress=progress)
        # The server accepted the step, so it holds the quest as active
        self.state = SessionState.ACTIVE
        self.last_outcome = outcome
        self.needs_refresh = True
        self._emit(QuestEvent(kind="step_completed", quest_id=self.quest_id, step_id=step.id))

        if outcome.quest_completed:
            self.pending_finalization = True
            await self.finalize()
        return outcome

    async def finalize(self) -> CompletionRewards:
        if not self.pending_finalization:
            raise InvalidSessionState("The last step has not been completed yet.")

        try:
            result = await self.gateway.call("complete_quest", {"quest_id": self.quest_id})
        except GatewayError as exc:
            reason = exc.detail or "complete_quest failed"
            logger.warning("Finalizing quest %s failed: %s", self.quest_id, reason)
            self._emit(QuestEvent(kind="finalization_failed", quest_id=self.quest_id, reason=reason))
            raise FinalizationFailed(reason) from exc

        rewards = annotate_rewards(CompletionRewards.from_rpc(result))
        self.rewards = rewards
        self.pending_finalization = False
        self.state = SessionState.COMPLETED
        self.needs_refresh = True
        self._emit(QuestEvent(kind="quest_completed", quest_id=self.quest_id, rewards=rewards))
        logger.info("Completed quest %s (+%s XP)", self.quest_id, rewards.xp)
        return rewards

    async def rate(self, submission: RatingSubmission) -> None:
        # A repeated rating is sent as-is; the server decides on duplicates
        if self.state not in (SessionState.COMPLETED, SessionState.RATED):
            raise InvalidSessionState("Only a completed quest can be rated.")

        await self.gateway.call("submit_rating", submission.to_payload(self.quest_id))
        self.state = SessionState.RATED
        self._emit(QuestEvent(kind="rated", quest_id=self.quest_id))
