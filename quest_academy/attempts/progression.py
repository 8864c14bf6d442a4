"""
Student progression rules: daily practice limit, reward boosts, level-ups
All functions are pure and operate on plain profile dicts.
"""

import math
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from quest_academy import config

LEVEL_UP_MULTIPLIER = 1.2
SUBJECT_STAT_STEP = 2
SUBJECT_STAT_MAX = 100
SUBJECT_STAT_DEFAULT = 50


def is_same_day(a: Optional[datetime], b: datetime) -> bool:
    return a is not None and a.date() == b.date()


def current_daily_practice(profile: dict, now: datetime) -> dict:
    """Today's practice counters; a fresh record when the stored one is from another day"""
    daily = profile.get("daily_practice") or {}
    if not is_same_day(daily.get("date"), now):
        return {"date": now, "questions_answered": 0, "rewarded_questions": 0}
    return {
        "date": daily["date"],
        "questions_answered": daily.get("questions_answered", 0),
        "rewarded_questions": daily.get("rewarded_questions", 0),
    }


def can_earn_rewards(daily: dict, limit: int = None) -> bool:
    limit = config.DAILY_PRACTICE_REWARD_LIMIT if limit is None else limit
    return daily.get("rewarded_questions", 0) < limit


def apply_boosts(exp: int, gold: int, effects: Iterable[dict]) -> Tuple[int, int]:
    for effect in effects:
        if effect.get("effect_type") == "exp_boost":
            exp = math.floor(exp * effect.get("value", 1))
        elif effect.get("effect_type") == "gold_boost":
            gold = math.floor(gold * effect.get("value", 1))
    return exp, gold


def apply_level_ups(level: int, exp: int, exp_to_next: int) -> Tuple[int, int, int, List[int]]:
    """
    Consume exp into levels
    Returns (level, exp, exp_to_next_level, levels_gained)
    """
    gained = []
    while exp >= exp_to_next:
        exp -= exp_to_next
        level += 1
        exp_to_next = math.floor(exp_to_next * LEVEL_UP_MULTIPLIER)
        gained.append(level)
    return level, exp, exp_to_next, gained


def bump_subject_stat(stats: dict, subject: Optional[str]) -> dict:
    if not subject:
        return stats
    updated = dict(stats)
    updated[subject] = min(SUBJECT_STAT_MAX, updated.get(subject, SUBJECT_STAT_DEFAULT) + SUBJECT_STAT_STEP)
    return updated


def progress_profile(
    profile: dict,
    *,
    exp: int,
    gold: int,
    rewarded: bool,
    subject: Optional[str],
    practice: bool,
    now: datetime
) -> Tuple[dict, List[int]]:
    """
    Apply one answer submission to a student profile
    Returns the updated profile and the list of levels reached.
    """
    updated = dict(profile)
    updated["total_questions_answered"] = profile.get("total_questions_answered", 0) + 1

    if practice:
        daily = current_daily_practice(profile, now)
        daily["questions_answered"] += 1
        if rewarded:
            daily["rewarded_questions"] += 1
        updated["daily_practice"] = daily

    levels = []
    if rewarded:
        updated["exp"] = profile.get("exp", 0) + exp
        updated["gold"] = profile.get("gold", 0) + gold
        updated["stats"] = bump_subject_stat(profile.get("stats") or {}, subject)
        level, new_exp, to_next, levels = apply_level_ups(
            profile.get("level", 1), updated["exp"], profile.get("exp_to_next_level", 100)
        )
        updated.update({"level": level, "exp": new_exp, "exp_to_next_level": to_next})

    return updated, levels
