from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class QuestStatus(str, Enum):
    AVAILABLE = "available"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class StepState(str, Enum):
    LOCKED = "locked"
    CURRENT = "current"
    COMPLETED = "completed"


class Coordinates(BaseModel):
    latitude: float
    longitude: float

    @classmethod
    def from_rpc(cls, doc: dict[str, Any] | None) -> Coordinates | None:
        """Read coordinates from any of the shapes the server uses for a point."""
        if not doc:
            return None
        for key in ("coordinates", "location"):
            nested = doc.get(key)
            if isinstance(nested, dict):
                return cls.from_rpc(nested)
        lat = doc.get("latitude", doc.get("lat", doc.get("location_lat")))
        lng = doc.get("longitude", doc.get("lng", doc.get("lon", doc.get("location_lng"))))
        if lat is None or lng is None:
            return None
        return cls(latitude=float(lat), longitude=float(lng))


class QuestLocation(Coordinates):
    radius_meters: float = 50.0


class QuestStep(BaseModel):
    id: str
    step_number: int = Field(..., ge=1)
    title: str = ""
    description: str = ""
    success_criteria: str | None = None
    hint: str | None = None
    location: Coordinates | None = None
    requires_photo: bool = False
    requires_text: bool = False

    @classmethod
    def from_rpc(cls, doc: dict[str, Any], quest_id: str, index: int) -> QuestStep:
        step_number = int(doc.get("step_number") or doc.get("stepNumber") or index + 1)
        step_id = doc.get("id") or doc.get("step_id") or f"step-{quest_id}-{index}"
        return cls(
            id=str(step_id),
            step_number=step_number,
            title=doc.get("title", ""),
            description=doc.get("description") or doc.get("instructions") or "",
            success_criteria=doc.get("success_criteria") or doc.get("successCriteria"),
            hint=doc.get("hint"),
            location=Coordinates.from_rpc(doc),
            requires_photo=bool(doc.get("requires_photo", doc.get("requiresPhoto", False))),
            requires_text=bool(doc.get("requires_text", doc.get("requiresText", False))),
        )


class QuestDefinition(BaseModel):
    id: str
    title: str
    description: str = ""
    location: QuestLocation | None = None
    difficulty: int = Field(default=1, ge=1, le=3)
    xp_reward: int = 0
    coin_reward: int | None = None
    item_rewards: list[str] = Field(default_factory=list)
    estimated_duration_minutes: int | None = None
    steps: list[QuestStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_step_numbers(self) -> QuestDefinition:
        self.steps.sort(key=lambda step: step.step_number)
        numbers = [step.step_number for step in self.steps]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"step numbers must be unique, 1-based and contiguous: {numbers}")
        return self

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step_by_number(self, step_number: int) -> QuestStep | None:
        for step in self.steps:
            if step.step_number == step_number:
                return step
        return None

    @classmethod
    def from_rpc(cls, doc: dict[str, Any], steps: list[dict[str, Any]] | None = None) -> QuestDefinition:
        quest_id = str(doc.get("id") or doc.get("quest_id") or "")
        raw_steps = steps if steps is not None else doc.get("steps") or []
        point = Coordinates.from_rpc(doc)
        location = None
        if point is not None:
            location = QuestLocation(
                latitude=point.latitude,
                longitude=point.longitude,
                radius_meters=float(doc.get("radius_meters") or doc.get("radiusMeters") or 50.0),
            )
        difficulty = int(doc.get("difficulty") or 1)
        return cls(
            id=quest_id,
            title=doc.get("title", ""),
            description=doc.get("description", ""),
            location=location,
            difficulty=min(max(difficulty, 1), 3),
            xp_reward=int(doc.get("xp_reward") or doc.get("xpReward") or 0),
            coin_reward=doc.get("coin_reward") or doc.get("coinReward"),
            item_rewards=[str(item) for item in doc.get("item_rewards") or doc.get("itemRewards") or []],
            estimated_duration_minutes=doc.get("estimated_duration") or doc.get("estimatedDuration"),
            steps=[QuestStep.from_rpc(step, quest_id, i) for i, step in enumerate(raw_steps)],
        )


class UserQuestProgress(BaseModel):
    quest_id: str
    status: QuestStatus = QuestStatus.AVAILABLE
    current_step_number: int = Field(default=0, ge=0)
    progress_percent: int = Field(default=0, ge=0, le=100)

    @classmethod
    def derive(
        cls,
        quest_id: str,
        status: QuestStatus,
        current_step_number: int,
        total_steps: int,
        progress_percent: float | None = None,
    ) -> UserQuestProgress:
        if progress_percent is None:
            if status == QuestStatus.COMPLETED:
                progress_percent = 100
            elif total_steps:
                progress_percent = current_step_number / total_steps * 100
            else:
                progress_percent = 0
        return cls(
            quest_id=quest_id,
            status=status,
            current_step_number=current_step_number,
            progress_percent=min(max(round(progress_percent), 0), 100),
        )

    @classmethod
    def from_rpc(cls, quest_id: str, doc: dict[str, Any] | None, total_steps: int) -> UserQuestProgress:
        doc = doc or {}
        raw_status = doc.get("status") or doc.get("user_status") or QuestStatus.AVAILABLE.value
        try:
            status = QuestStatus(raw_status)
        except ValueError:
            status = QuestStatus.AVAILABLE
        current = int(doc.get("current_step_number") or doc.get("currentStep") or 0)
        percent = doc.get("progress_percent", doc.get("progress"))
        return cls.derive(quest_id, status, current, total_steps, percent)


class ResolvedQuest(BaseModel):
    quest: QuestDefinition
    progress: UserQuestProgress
    source: Literal["detail", "list"]


class StepSubmission(BaseModel):
    location: Coordinates | None = None
    photo: bytes | str | None = None
    text: str | None = None


class Attached(BaseModel):
    kind: Literal["attached"] = "attached"
    url: str | None = None


class Skipped(BaseModel):
    kind: Literal["skipped"] = "skipped"
    reason: str


class StepOutcome(BaseModel):
    quest_id: str
    step_id: str
    step_number: int
    quest_completed: bool = False
    photo: Attached | Skipped | None = None
    media: Attached | Skipped | None = None


class CompletionRewards(BaseModel):
    xp: int = 0
    coins: int | None = None
    level_up: bool = False
    new_level: int | None = None
    rank_up: bool = False
    new_rank: int | None = None
    rank_name: str | None = None
    badges: list[str] = Field(default_factory=list)

    @classmethod
    def from_rpc(cls, doc: dict[str, Any]) -> CompletionRewards:
        return cls(
            xp=int(doc.get("xp_reward") or doc.get("xp") or 0),
            coins=doc.get("coins") or doc.get("coin_reward"),
            level_up=bool(doc.get("level_up", False)),
            new_level=doc.get("new_level"),
            rank_up=bool(doc.get("rank_up", False)),
            new_rank=doc.get("new_rank"),
            badges=[str(badge) for badge in doc.get("badges") or []],
        )


class RatingSubmission(BaseModel):
    overall_rating: int = Field(..., ge=1, le=5)
    difficulty_rating: int | None = Field(default=None, ge=1, le=5)
    fun_rating: int | None = Field(default=None, ge=1, le=5)
    feedback_text: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _default_to_overall(self) -> RatingSubmission:
        if self.difficulty_rating is None:
            self.difficulty_rating = self.overall_rating
        if self.fun_rating is None:
            self.fun_rating = self.overall_rating
        if self.feedback_text is not None:
            self.feedback_text = self.feedback_text.strip() or None
        return self

    def to_payload(self, quest_id: str) -> dict[str, Any]:
        return {
            "questId": quest_id,
            "overallRating": self.overall_rating,
            "difficultyRating": self.difficulty_rating,
            "funRating": self.fun_rating,
            "feedbackText": self.feedback_text,
        }


class QuestEvent(BaseModel):
    kind: Literal["started", "step_completed", "quest_completed", "finalization_failed", "rated"]
    quest_id: str
    step_id: str | None = None
    rewards: CompletionRewards | None = None
    reason: str | None = None
