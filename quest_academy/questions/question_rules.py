"""
Answer checking and per-question reward/stat arithmetic
"""

import math
from typing import List, Tuple, Union

# Rewards when a question has no explicit base_exp / base_gold
DIFFICULTY_REWARDS = {
    "easy": {"exp": 10, "gold": 5},
    "medium": {"exp": 20, "gold": 10},
    "hard": {"exp": 30, "gold": 15},
}


def _normalize(value) -> str:
    return str(value).strip().lower()


def _as_list(value: Union[str, List[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return [_normalize(value)]


def check_answer(question_type: str, correct, submitted) -> bool:
    """
    Compare a submitted answer with the stored one (trimmed, case-insensitive)

    multiple_choice: the sets of chosen options must match exactly (order ignored)
    everything else: first submitted value vs first correct value
    """
    correct_list = _as_list(correct)
    submitted_list = _as_list(submitted)

    if question_type == "multiple_choice":
        return sorted(correct_list) == sorted(submitted_list)

    if not correct_list or not submitted_list:
        return False
    return submitted_list[0] == correct_list[0]


def base_rewards(question: dict) -> Tuple[int, int]:
    defaults = DIFFICULTY_REWARDS.get(question.get("difficulty"), DIFFICULTY_REWARDS["easy"])
    exp = question.get("base_exp")
    gold = question.get("base_gold")
    return (
        exp if exp is not None else defaults["exp"],
        gold if gold is not None else defaults["gold"],
    )


def updated_stats(stats: dict, is_correct: bool, time_spent_seconds: float) -> dict:
    """Running totals plus a running mean of answer time"""
    old_total = stats.get("total_attempts", 0)
    old_avg = stats.get("avg_time_seconds", 0)
    total = old_total + 1
    return {
        "total_attempts": total,
        "correct_count": stats.get("correct_count", 0) + (1 if is_correct else 0),
        "avg_time_seconds": (old_avg * old_total + (time_spent_seconds or 0)) / total,
    }


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def correct_rate(correct: int, total: int) -> int:
    if not total:
        return 0
    return round_half_up(correct / total * 100)

