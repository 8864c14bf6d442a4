from quest_academy.achievements.achievement_rules import (
    DEFAULT_ACHIEVEMENTS, answer_triggers, group_by_category, is_met, player_view, unlocked_percentage
)


def achievement(**fields):
    return {
        "_id": "a1", "code": "QUESTION_10", "name": "小試身手", "description": "累計回答 10 道題目",
        "icon": "📝", "category": "learning", "rarity": "common",
        "requirement_type": "questions_answered", "requirement_value": 10,
        **fields,
    }


def test_default_catalogue_codes_are_unique():
    codes = [a["code"] for a in DEFAULT_ACHIEVEMENTS]
    assert len(codes) == 21
    assert len(set(codes)) == len(codes)


def test_wrong_answers_only_trigger_answer_counts():
    assert answer_triggers(False) == ["questions_answered", "daily_questions"]
    assert "correct_streak" in answer_triggers(True)
    assert "level_reached" in answer_triggers(True)


def test_is_met():
    assert is_met(achievement(), {"questions_answered": 10})
    assert not is_met(achievement(), {"questions_answered": 9})
    assert not is_met(achievement(), {})


def test_subject_mastery_reads_profile_stats():
    mastery = achievement(requirement_type="subject_mastery", requirement_subject="math", requirement_value=80)
    assert is_met(mastery, {}, {"math": 80})
    assert not is_met(mastery, {}, {"math": 79, "chinese": 95})
    assert not is_met(achievement(requirement_type="subject_mastery", requirement_value=1), {}, {"math": 99})


def test_progress_capped_and_filled_on_unlock():
    assert player_view(achievement(), None, {"questions_answered": 25})["progress"] == 10
    assert player_view(achievement(), None, {"questions_answered": 4})["progress"] == 4
    unlocked = player_view(achievement(), {"unlocked_at": "2024-03-01", "is_new": True}, {})
    assert unlocked["progress"] == 10
    assert unlocked["is_new"] is True


def test_hidden_view_masks_details():
    view = player_view(achievement(is_hidden=True), None, {"questions_answered": 7})
    assert (view["name"], view["icon"], view["progress"]) == ("???", "❓", 0)
    assert "exp_reward" not in view

    shown = player_view(achievement(is_hidden=True), {"unlocked_at": "2024-03-01"}, {})
    assert shown["name"] == "小試身手"


def test_group_by_category_keeps_empty_groups():
    grouped = group_by_category([{"category": "special"}, {"category": "learning"}])
    assert list(grouped) == ["learning", "adventure", "social", "special"]
    assert grouped["social"] == []


def test_unlocked_percentage():
    assert unlocked_percentage(1, 21) == 5
    assert unlocked_percentage(0, 0) == 0
