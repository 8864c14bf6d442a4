"""
Daily task progress rules
Progress is always recomputed from today's attempts, never accumulated.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

TASK_TYPES = (
    "questions_answered",
    "correct_answers",
    "correct_streak",
    "subject_questions",
    "perfect_answers",
)


def start_of_day(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def leading_streak(results_newest_first: Iterable[bool]) -> int:
    """Run of correct answers counting back from the most recent attempt"""
    streak = 0
    for is_correct in results_newest_first:
        if not is_correct:
            break
        streak += 1
    return streak


def progress_by_type(attempts_newest_first: List[dict]) -> Dict[str, int]:
    total = len(attempts_newest_first)
    correct = sum(1 for a in attempts_newest_first if a.get("is_correct"))
    return {
        "questions_answered": total,
        "correct_answers": correct,
        "correct_streak": leading_streak(a.get("is_correct", False) for a in attempts_newest_first),
        "perfect_answers": 1 if total > 0 and correct == total else 0,
    }


def task_progress(task: dict, progress: Dict[str, int], subject_counts: Dict[str, int]) -> int:
    if task.get("task_type") == "subject_questions":
        return subject_counts.get(task.get("target_subject") or "", 0)
    return progress.get(task.get("task_type"), 0)


DEFAULT_TASKS = [
    {"code": "DAILY_Q3", "name": "初次挑戰", "description": "今日完成 3 道題目", "icon": "📝",
     "task_type": "questions_answered", "target_value": 3, "exp_reward": 15, "gold_reward": 5,
     "difficulty": "easy", "order": 1},
    {"code": "DAILY_CORRECT_3", "name": "小試身手", "description": "今日答對 3 道題目", "icon": "✅",
     "task_type": "correct_answers", "target_value": 3, "exp_reward": 20, "gold_reward": 8,
     "difficulty": "easy", "order": 2},
    {"code": "DAILY_Q5", "name": "勤奮學習", "description": "今日完成 5 道題目", "icon": "📚",
     "task_type": "questions_answered", "target_value": 5, "exp_reward": 25, "gold_reward": 10,
     "difficulty": "medium", "order": 3},
    {"code": "DAILY_CORRECT_5", "name": "答題高手", "description": "今日答對 5 道題目", "icon": "🌟",
     "task_type": "correct_answers", "target_value": 5, "exp_reward": 30, "gold_reward": 12,
     "difficulty": "medium", "order": 4},
    {"code": "DAILY_STREAK_3", "name": "連勝開始", "description": "今日連續答對 3 題", "icon": "🔥",
     "task_type": "correct_streak", "target_value": 3, "exp_reward": 25, "gold_reward": 10,
     "difficulty": "medium", "order": 5},
    {"code": "DAILY_Q10", "name": "學習達人", "description": "今日完成 10 道題目", "icon": "🎯",
     "task_type": "questions_answered", "target_value": 10, "exp_reward": 50, "gold_reward": 20,
     "difficulty": "hard", "order": 6},
    {"code": "DAILY_CORRECT_10", "name": "學霸", "description": "今日答對 10 道題目", "icon": "💯",
     "task_type": "correct_answers", "target_value": 10, "exp_reward": 60, "gold_reward": 25,
     "difficulty": "hard", "order": 7},
    {"code": "DAILY_STREAK_5", "name": "火力全開", "description": "今日連續答對 5 題", "icon": "💥",
     "task_type": "correct_streak", "target_value": 5, "exp_reward": 50, "gold_reward": 20,
     "difficulty": "hard", "order": 8},
]
