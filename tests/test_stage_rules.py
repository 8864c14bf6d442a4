import pytest

from quest_academy.stages.stage_rules import evaluate_completion, is_stage_unlocked, stage_matches_subject

STAGES = [
    {"_id": "s1", "unlock_condition": {"type": "none"}},
    {"_id": "s2", "unlock_condition": {"type": "previous"}},
    {"_id": "s3", "unlock_condition": {"type": "level", "value": 5}},
    {"_id": "s4", "unlock_condition": {"type": "stage", "value": "s2"}},
]


def test_none_always_unlocked():
    assert is_stage_unlocked(STAGES, 0, {}, 1)


def test_previous_requires_completion():
    assert not is_stage_unlocked(STAGES, 1, {}, 1)
    assert is_stage_unlocked(STAGES, 1, {"s1": {"is_completed": True}}, 1)


def test_level_condition():
    assert not is_stage_unlocked(STAGES, 2, {}, 4)
    assert is_stage_unlocked(STAGES, 2, {}, 5)


def test_stage_condition():
    assert not is_stage_unlocked(STAGES, 3, {"s1": {"is_completed": True}}, 1)
    assert is_stage_unlocked(STAGES, 3, {"s2": {"is_completed": True}}, 1)


def test_stored_unlock_wins():
    assert is_stage_unlocked(STAGES, 2, {"s3": {"is_unlocked": True}}, 1)


def test_level_condition_tolerates_stored_text_values():
    stages = [{"_id": "s1", "unlock_condition": {"type": "level", "value": "3"}}]
    assert is_stage_unlocked(stages, 0, {}, 3)
    assert not is_stage_unlocked(stages, 0, {}, 2)

    broken = [{"_id": "s1", "unlock_condition": {"type": "level", "value": "abc"}}]
    assert is_stage_unlocked(broken, 0, {}, 1)


def test_first_clear_bonus():
    rewards = {"bonus_exp": 10, "bonus_gold": 5, "first_clear_bonus": {"exp": 50, "gold": 25}}
    result = evaluate_completion(6, 10, False, rewards)
    assert result == {
        "is_passed": True,
        "is_first_clear": True,
        "correct_rate": 60,
        "bonus_exp": 60,
        "bonus_gold": 30,
    }


def test_repeat_clear_gets_bonus_only():
    rewards = {"bonus_exp": 10, "bonus_gold": 5, "first_clear_bonus": {"exp": 50, "gold": 25}}
    result = evaluate_completion(10, 10, True, rewards)
    assert result["is_first_clear"] is False
    assert (result["bonus_exp"], result["bonus_gold"]) == (10, 5)


def test_failed_attempt_has_no_bonus():
    result = evaluate_completion(5, 10, False, {"bonus_exp": 10})
    assert result["is_passed"] is False
    assert result["bonus_exp"] == 0


def test_zero_total_rejected():
    with pytest.raises(ValueError):
        evaluate_completion(0, 0, False, None)


def test_subject_matching_by_name_or_code():
    units = [{"subject": {"name": "數學", "code": "math_g1"}}]
    assert stage_matches_subject(units, "math")
    assert stage_matches_subject(units, "math_g1")
    assert not stage_matches_subject(units, "chinese")
