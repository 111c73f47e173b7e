from __future__ import annotations

from ..schemas.quests import CompletionRewards

# (minimum total XP, rank, rank name), highest first
RANK_THRESHOLDS = [
    (2000, 5, "Renowned Trailblazer"),
    (1000, 4, "Expert Explorer"),
    (500, 3, "Adept Adventurer"),
    (200, 2, "Junior Journeyman"),
    (0, 1, "New Wayfarer"),
]


def calculate_rank(total_xp: int) -> int:
    for minimum, rank, _name in RANK_THRESHOLDS:
        if total_xp >= minimum:
            return rank
    return 1


def get_rank_name(rank: int) -> str:
    for _minimum, candidate, name in RANK_THRESHOLDS:
        if candidate == rank:
            return name
    return RANK_THRESHOLDS[-1][2]


def check_rank_up(current_rank: int, new_total_xp: int) -> bool:
    return calculate_rank(new_total_xp) > current_rank


def annotate_rewards(rewards: CompletionRewards) -> CompletionRewards:
    """Fill in the display name of a newly reached rank."""
    if rewards.rank_up and rewards.new_rank is not None and rewards.rank_name is None:
        return rewards.model_copy(update={"rank_name": get_rank_name(rewards.new_rank)})
    return rewards
