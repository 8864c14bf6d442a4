import pytest

from quest_academy.questions.question_rules import (
    base_rewards, check_answer, correct_rate, round_half_up, updated_stats
)


@pytest.mark.parametrize("question_type, correct, submitted, expected", [
    ("single_choice", "A", " a ", True),
    ("single_choice", "A", "B", False),
    ("true_false", "true", ["TRUE"], True),
    ("fill_blank", ["貓"], "貓", True),
    ("fill_blank", "12", "", False),
    ("multiple_choice", ["a", "c"], ["C", "A"], True),
    ("multiple_choice", ["a", "c"], ["a"], False),
    ("multiple_choice", ["a", "c"], ["a", "b", "c"], False),
])
def test_check_answer(question_type, correct, submitted, expected):
    assert check_answer(question_type, correct, submitted) is expected


def test_base_rewards_fall_back_to_difficulty():
    assert base_rewards({"difficulty": "hard"}) == (30, 15)
    assert base_rewards({"difficulty": "medium", "base_exp": 12}) == (12, 10)
    assert base_rewards({}) == (10, 5)


def test_updated_stats_running_average():
    stats = updated_stats({"total_attempts": 2, "correct_count": 1, "avg_time_seconds": 10}, True, 16)
    assert stats == {"total_attempts": 3, "correct_count": 2, "avg_time_seconds": 12}


def test_correct_rate_rounds_half_up():
    assert correct_rate(1, 8) == 13
    assert correct_rate(0, 0) == 0
    assert correct_rate(2, 3) == 67
    assert round_half_up(2.5) == 3
