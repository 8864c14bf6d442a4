"""
Stage unlock and completion rules
"""

from typing import Dict, List, Optional

from quest_academy import config
from quest_academy.questions.question_rules import correct_rate

# Legacy subject codes as they appear in subject display names
SUBJECT_DISPLAY_NAMES = {
    "math": "數學",
    "chinese": "國語",
    "english": "英語",
    "science": "自然",
}


def required_level(value) -> int:
    """Stored level conditions may predate validation; unreadable values mean level 1"""
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return 1


def is_stage_unlocked(
    stages: List[dict],
    index: int,
    progress_map: Dict[str, dict],
    player_level: int
) -> bool:
    """
    stages are ordered; progress_map is keyed by str(stage _id)
    A stored is_unlocked flag always wins over the condition.
    """
    stage = stages[index]
    progress = progress_map.get(str(stage["_id"])) or {}
    if progress.get("is_unlocked"):
        return True

    condition = stage.get("unlock_condition") or {}
    kind = condition.get("type")

    if kind == "none":
        return True
    if kind == "previous":
        if index == 0:
            return True
        previous = progress_map.get(str(stages[index - 1]["_id"])) or {}
        return bool(previous.get("is_completed"))
    if kind == "level":
        return player_level >= required_level(condition.get("value"))
    if kind == "stage":
        required = progress_map.get(str(condition.get("value"))) or {}
        return bool(required.get("is_completed"))
    return index == 0


def evaluate_completion(correct: int, total: int, already_completed: bool, rewards: Optional[dict]) -> dict:
    if total < 1:
        raise ValueError("total must be at least 1")

    rewards = rewards or {}
    passed = correct / total >= config.STAGE_PASS_RATE
    first_clear = passed and not already_completed

    bonus_exp = 0
    bonus_gold = 0
    if passed:
        bonus_exp += rewards.get("bonus_exp", 0)
        bonus_gold += rewards.get("bonus_gold", 0)
        first_clear_bonus = rewards.get("first_clear_bonus")
        if first_clear and first_clear_bonus:
            bonus_exp += first_clear_bonus.get("exp", 0)
            bonus_gold += first_clear_bonus.get("gold", 0)

    return {
        "is_passed": passed,
        "is_first_clear": first_clear,
        "correct_rate": correct_rate(correct, total),
        "bonus_exp": bonus_exp,
        "bonus_gold": bonus_gold,
    }


def stage_matches_subject(units: List[dict], subject: str) -> bool:
    """units carry their joined subject under `subject`"""
    target_name = SUBJECT_DISPLAY_NAMES.get(subject, subject)
    for unit in units:
        info = unit.get("subject") or {}
        if info.get("name") == target_name or info.get("code") == subject:
            return True
    return False
