from datetime import datetime, timedelta

from quest_academy.attempts import progression

NOW = datetime(2024, 5, 20, 10, 30)


def test_daily_practice_resets_on_new_day():
    profile = {"daily_practice": {"date": NOW - timedelta(days=1), "questions_answered": 7, "rewarded_questions": 7}}
    daily = progression.current_daily_practice(profile, NOW)
    assert daily == {"date": NOW, "questions_answered": 0, "rewarded_questions": 0}


def test_daily_practice_kept_same_day():
    earlier = NOW.replace(hour=1)
    profile = {"daily_practice": {"date": earlier, "questions_answered": 3, "rewarded_questions": 2}}
    daily = progression.current_daily_practice(profile, NOW)
    assert daily["questions_answered"] == 3
    assert daily["rewarded_questions"] == 2


def test_reward_limit():
    assert progression.can_earn_rewards({"rewarded_questions": 19}, limit=20)
    assert not progression.can_earn_rewards({"rewarded_questions": 20}, limit=20)


def test_boosts_floor_and_stack():
    effects = [
        {"effect_type": "exp_boost", "value": 1.5},
        {"effect_type": "gold_boost", "value": 2},
        {"effect_type": "exp_boost", "value": 1.5},
    ]
    # 15 -> 22 -> 33
    assert progression.apply_boosts(15, 5, effects) == (33, 10)


def test_level_up_consumes_exp_repeatedly():
    level, exp, to_next, gained = progression.apply_level_ups(1, 230, 100)
    assert (level, exp, to_next) == (3, 10, 144)
    assert gained == [2, 3]


def test_no_level_up_below_threshold():
    assert progression.apply_level_ups(4, 99, 100) == (4, 99, 100, [])


def test_subject_stat_capped():
    stats = progression.bump_subject_stat({"math": 99}, "math")
    assert stats["math"] == 100
    assert progression.bump_subject_stat({}, "chinese") == {"chinese": 52}
    assert progression.bump_subject_stat({"math": 60}, None) == {"math": 60}


def test_progress_profile_rewarded_practice():
    profile = {
        "level": 1, "exp": 95, "exp_to_next_level": 100, "gold": 3,
        "total_questions_answered": 4, "stats": {"math": 50},
        "daily_practice": {"date": NOW, "questions_answered": 4, "rewarded_questions": 4},
    }
    updated, levels = progression.progress_profile(
        profile, exp=10, gold=5, rewarded=True, subject="math", practice=True, now=NOW
    )
    assert levels == [2]
    assert updated["level"] == 2
    assert updated["exp"] == 5
    assert updated["exp_to_next_level"] == 120
    assert updated["gold"] == 8
    assert updated["stats"]["math"] == 52
    assert updated["total_questions_answered"] == 5
    assert updated["daily_practice"]["questions_answered"] == 5
    assert updated["daily_practice"]["rewarded_questions"] == 5


def test_progress_profile_unrewarded_only_counts():
    profile = {"level": 2, "exp": 10, "gold": 0, "total_questions_answered": 20}
    updated, levels = progression.progress_profile(
        profile, exp=10, gold=5, rewarded=False, subject="math", practice=False, now=NOW
    )
    assert levels == []
    assert updated["exp"] == 10
    assert updated["gold"] == 0
    assert updated["total_questions_answered"] == 21
    assert "daily_practice" not in updated
