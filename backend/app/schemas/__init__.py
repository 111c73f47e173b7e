from .quests import (
    Attached,
    CompletionRewards,
    Coordinates,
    QuestDefinition,
    QuestEvent,
    QuestLocation,
    QuestStatus,
    QuestStep,
    RatingSubmission,
    ResolvedQuest,
    Skipped,
    StepOutcome,
    StepState,
    StepSubmission,
    UserQuestProgress,
)
from .sessions import NakamaSession

__all__ = [
    "Attached",
    "CompletionRewards",
    "Coordinates",
    "NakamaSession",
    "QuestDefinition",
    "QuestEvent",
    "QuestLocation",
    "QuestStatus",
    "QuestStep",
    "RatingSubmission",
    "ResolvedQuest",
    "Skipped",
    "StepOutcome",
    "StepState",
    "StepSubmission",
    "UserQuestProgress",
]
