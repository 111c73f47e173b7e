from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path

from ..core.errors import GatewayError, LocationRequired, StepCompletionFailed
from ..schemas.quests import (
    Attached,
    QuestDefinition,
    QuestStatus,
    QuestStep,
    Skipped,
    StepOutcome,
    StepState,
    StepSubmission,
    UserQuestProgress,
)
from .nakama import RpcGateway

logger = logging.getLogger(__name__)


def step_state(progress: UserQuestProgress, step_number: int) -> StepState:
    """Display state of a step, derived from the cached progress."""
    if progress.status == QuestStatus.COMPLETED:
        return StepState.COMPLETED
    if progress.status != QuestStatus.ACTIVE:
        return StepState.LOCKED
    if step_number <= progress.current_step_number:
        return StepState.COMPLETED
    if step_number == progress.current_step_number + 1:
        return StepState.CURRENT
    return StepState.LOCKED


def current_step(quest: QuestDefinition, progress: UserQuestProgress) -> QuestStep | None:
    for step in quest.steps:
        if step_state(progress, step.step_number) == StepState.CURRENT:
            return step
    return None


def missing_requirements(step: QuestStep, submission: StepSubmission) -> list[str]:
    """Inputs the step asks for that the submission does not carry yet."""
    missing = []
    if step.requires_photo and not submission.photo:
        missing.append("photo")
    if step.requires_text and not (submission.text or "").strip():
        missing.append("text")
    return missing


def _is_remote_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


class StepProgressionEngine:
    """
    Advances one quest instance step by step.

    Photo upload and media submission are best-effort: their failures come
    back as `Skipped` values and never stop the step from being completed.
    """

    def __init__(self, gateway: RpcGateway) -> None:
        self.gateway = gateway

    async def upload_photo(self, quest_id: str, step: QuestStep, photo: bytes | str) -> Attached | Skipped:
        if isinstance(photo, str) and _is_remote_url(photo):
            return Attached(url=photo)
        try:
            raw = photo if isinstance(photo, bytes) else await asyncio.to_thread(Path(photo).read_bytes)
        except OSError as exc:
            logger.warning("Could not read photo for step %s: %s", step.id, exc)
            return Skipped(reason=f"photo unreadable: {exc}")

        payload = {
            "imageBase64": base64.b64encode(raw).decode("ascii"),
            "questId": quest_id,
            "stepId": step.id,
        }
        try:
            result = await self.gateway.call("upload_photo", payload)
        except GatewayError as exc:
            logger.warning("Photo upload failed for step %s: %s", step.id, exc)
            return Skipped(reason=exc.detail or "upload failed")

        url = result.get("url")
        if not url:
            logger.warning("Photo upload for step %s returned no url", step.id)
            return Skipped(reason="upload returned no url")
        return Attached(url=str(url))

    async def submit_media(
        self, quest_id: str, step: QuestStep, media_url: str | None, text: str | None
    ) -> Attached | Skipped:
        payload = {
            "questId": quest_id,
            "stepId": step.id,
            "mediaType": "photo" if media_url else "text",
            "mediaUrl": media_url,
            "textContent": text,
        }
        try:
            await self.gateway.call("submit_step_media", payload)
        except GatewayError as exc:
            logger.warning("Media submission failed for step %s: %s", step.id, exc)
            return Skipped(reason=exc.detail or "media submission failed")
        return Attached(url=media_url)

    async def complete_step(
        self,
        quest_id: str,
        step: QuestStep,
        submission: StepSubmission,
        progress: UserQuestProgress | None = None,
    ) -> StepOutcome:
        if submission.location is None:
            raise LocationRequired()

        if progress is not None and step_state(progress, step.step_number) != StepState.CURRENT:
            # The server enforces ordering, the cached state may be stale
            logger.debug(
                "Step %s is not current locally (current_step_number=%s), forwarding anyway",
                step.step_number,
                progress.current_step_number,
            )

        photo_result: Attached | Skipped | None = None
        media_url: str | None = None
        if submission.photo:
            photo_result = await self.upload_photo(quest_id, step, submission.photo)
            if isinstance(photo_result, Attached):
                media_url = photo_result.url

        text = (submission.text or "").strip() or None
        media_result: Attached | Skipped | None = None
        if media_url or text:
            media_result = await self.submit_media(quest_id, step, media_url, text)

        payload = {
            "questId": quest_id,
            "stepId": step.id,
            "latitude": submission.location.latitude,
            "longitude": submission.location.longitude,
        }
        try:
            result = await self.gateway.call("complete_step", payload)
        except GatewayError as exc:
            raise StepCompletionFailed(exc.detail or "complete_step failed") from exc

        outcome = StepOutcome(
            quest_id=quest_id,
            step_id=step.id,
            step_number=step.step_number,
            quest_completed=bool(result.get("questCompleted", False)),
            photo=photo_result,
            media=media_result,
        )
        logger.info(
            "Completed step %s of quest %s (quest_completed=%s)", step.step_number, quest_id, outcome.quest_completed
        )
        return outcome
