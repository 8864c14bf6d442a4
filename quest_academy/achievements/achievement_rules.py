"""
Achievement unlock rules and the default catalogue
Progress values are totals recomputed from attempts and the player profile.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional

from quest_academy.questions.question_rules import round_half_up


class RequirementType(str, Enum):
    QUESTIONS_ANSWERED = "questions_answered"
    CORRECT_ANSWERS = "correct_answers"
    CORRECT_STREAK = "correct_streak"
    LEVEL_REACHED = "level_reached"
    EXP_EARNED = "exp_earned"
    GOLD_EARNED = "gold_earned"
    ITEMS_PURCHASED = "items_purchased"
    DAILY_QUESTIONS = "daily_questions"
    SUBJECT_MASTERY = "subject_mastery"


CATEGORIES = ("learning", "adventure", "social", "special")

# Every answer can move these; correct answers additionally move CORRECT_TRIGGERS
ANSWER_TRIGGERS = [RequirementType.QUESTIONS_ANSWERED.value, RequirementType.DAILY_QUESTIONS.value]
CORRECT_TRIGGERS = [
    RequirementType.CORRECT_ANSWERS.value,
    RequirementType.CORRECT_STREAK.value,
    RequirementType.EXP_EARNED.value,
    RequirementType.GOLD_EARNED.value,
    RequirementType.LEVEL_REACHED.value,
    RequirementType.SUBJECT_MASTERY.value,
]
PURCHASE_TRIGGERS = [RequirementType.ITEMS_PURCHASED.value]

HIDDEN_NAME = "???"
HIDDEN_DESCRIPTION = "完成神秘條件解鎖此成就"
HIDDEN_ICON = "❓"


def answer_triggers(is_correct: bool) -> List[str]:
    return ANSWER_TRIGGERS + (CORRECT_TRIGGERS if is_correct else [])


def current_value(achievement: dict, progress: Dict[str, int], subject_stats: Optional[dict] = None) -> int:
    kind = achievement.get("requirement_type")
    if kind == RequirementType.SUBJECT_MASTERY.value:
        subject = achievement.get("requirement_subject")
        return (subject_stats or {}).get(subject, 0) if subject else 0
    return progress.get(kind, 0)


def is_met(achievement: dict, progress: Dict[str, int], subject_stats: Optional[dict] = None) -> bool:
    return current_value(achievement, progress, subject_stats) >= achievement.get("requirement_value", 1)


def player_view(
    achievement: dict,
    unlocked: Optional[dict],
    progress: Dict[str, int],
    subject_stats: Optional[dict] = None
) -> dict:
    """
    One catalogue entry as the player sees it
    Hidden entries stay masked until unlocked; progress is capped at the target.
    """
    target = achievement.get("requirement_value", 1)
    if achievement.get("is_hidden") and not unlocked:
        return {
            "_id": achievement["_id"],
            "code": achievement["code"],
            "name": HIDDEN_NAME,
            "description": HIDDEN_DESCRIPTION,
            "icon": HIDDEN_ICON,
            "category": achievement.get("category"),
            "rarity": achievement.get("rarity"),
            "is_unlocked": False,
            "is_hidden": True,
            "progress": 0,
            "requirement_value": target,
        }

    shown = target if unlocked else min(current_value(achievement, progress, subject_stats), target)
    return {
        "_id": achievement["_id"],
        "code": achievement["code"],
        "name": achievement["name"],
        "description": achievement.get("description"),
        "icon": achievement.get("icon"),
        "category": achievement.get("category"),
        "rarity": achievement.get("rarity"),
        "requirement_type": achievement.get("requirement_type"),
        "requirement_value": target,
        "exp_reward": achievement.get("exp_reward", 0),
        "gold_reward": achievement.get("gold_reward", 0),
        "is_unlocked": bool(unlocked),
        "is_hidden": achievement.get("is_hidden", False),
        "unlocked_at": (unlocked or {}).get("unlocked_at"),
        "is_new": (unlocked or {}).get("is_new", False),
        "progress": shown,
    }


def group_by_category(entries: Iterable[dict]) -> Dict[str, List[dict]]:
    grouped = {category: [] for category in CATEGORIES}
    for entry in entries:
        grouped.setdefault(entry.get("category") or "learning", []).append(entry)
    return grouped


def unlocked_percentage(unlocked: int, total: int) -> int:
    return round_half_up(unlocked / total * 100) if total else 0


def _achievement(code, name, description, icon, category, rarity, kind, value, exp, gold, order):
    return {
        "code": code, "name": name, "description": description, "icon": icon,
        "category": category, "rarity": rarity,
        "requirement_type": kind, "requirement_value": value,
        "exp_reward": exp, "gold_reward": gold, "order": order,
    }


DEFAULT_ACHIEVEMENTS = [
    # Learning
    _achievement("FIRST_QUESTION", "初次挑戰", "回答第一道題目", "🎯", "learning", "common", "questions_answered", 1, 10, 5, 1),
    _achievement("QUESTION_10", "小試身手", "累計回答 10 道題目", "📝", "learning", "common", "questions_answered", 10, 30, 15, 2),
    _achievement("QUESTION_50", "勤奮學者", "累計回答 50 道題目", "📚", "learning", "rare", "questions_answered", 50, 100, 50, 3),
    _achievement("QUESTION_100", "學習達人", "累計回答 100 道題目", "🎓", "learning", "epic", "questions_answered", 100, 200, 100, 4),
    _achievement("QUESTION_500", "知識巨人", "累計回答 500 道題目", "🏛️", "learning", "legendary", "questions_answered", 500, 500, 250, 5),
    _achievement("CORRECT_10", "正確起步", "累計答對 10 道題目", "✅", "learning", "common", "correct_answers", 10, 30, 15, 10),
    _achievement("CORRECT_50", "答題高手", "累計答對 50 道題目", "🌟", "learning", "rare", "correct_answers", 50, 100, 50, 11),
    _achievement("CORRECT_100", "學霸", "累計答對 100 道題目", "💯", "learning", "epic", "correct_answers", 100, 200, 100, 12),
    _achievement("STREAK_5", "連勝開始", "連續答對 5 題", "🔥", "learning", "common", "correct_streak", 5, 25, 10, 20),
    _achievement("STREAK_10", "火力全開", "連續答對 10 題", "🔥", "learning", "rare", "correct_streak", 10, 75, 30, 21),
    _achievement("STREAK_20", "完美連擊", "連續答對 20 題", "💥", "learning", "epic", "correct_streak", 20, 150, 75, 22),
    # Adventure
    _achievement("LEVEL_5", "冒險者", "達到等級 5", "⚔️", "adventure", "common", "level_reached", 5, 50, 25, 1),
    _achievement("LEVEL_10", "資深冒險者", "達到等級 10", "🗡️", "adventure", "rare", "level_reached", 10, 100, 50, 2),
    _achievement("LEVEL_20", "傳奇勇者", "達到等級 20", "👑", "adventure", "epic", "level_reached", 20, 200, 100, 3),
    _achievement("GOLD_100", "存錢罐", "累計獲得 100 金幣", "💰", "adventure", "common", "gold_earned", 100, 20, 10, 10),
    _achievement("GOLD_500", "小富翁", "累計獲得 500 金幣", "💎", "adventure", "rare", "gold_earned", 500, 50, 25, 11),
    _achievement("GOLD_1000", "財富大亨", "累計獲得 1000 金幣", "🏆", "adventure", "epic", "gold_earned", 1000, 100, 50, 12),
    _achievement("SHOPPER_1", "初次購物", "購買第一個道具", "🛒", "adventure", "common", "items_purchased", 1, 15, 0, 20),
    _achievement("SHOPPER_10", "購物達人", "購買 10 個道具", "🛍️", "adventure", "rare", "items_purchased", 10, 50, 20, 21),
    # Special
    _achievement("DAILY_10", "今日之星", "單日完成 10 道題目", "⭐", "special", "rare", "daily_questions", 10, 50, 25, 1),
    _achievement("DAILY_20", "學習狂人", "單日完成 20 道題目", "🌟", "special", "epic", "daily_questions", 20, 100, 50, 2),
]
