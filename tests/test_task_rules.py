from datetime import datetime

from quest_academy.daily_tasks.task_rules import leading_streak, progress_by_type, start_of_day, task_progress


def test_start_of_day():
    assert start_of_day(datetime(2024, 3, 1, 17, 45, 3, 12)) == datetime(2024, 3, 1)


def test_streak_counts_from_newest():
    assert leading_streak([True, True, False, True]) == 2
    assert leading_streak([False, True]) == 0
    assert leading_streak([]) == 0


def test_progress_by_type():
    attempts = [{"is_correct": True}, {"is_correct": True}, {"is_correct": False}]
    assert progress_by_type(attempts) == {
        "questions_answered": 3,
        "correct_answers": 2,
        "correct_streak": 2,
        "perfect_answers": 0,
    }


def test_perfect_answers():
    assert progress_by_type([{"is_correct": True}])["perfect_answers"] == 1
    assert progress_by_type([])["perfect_answers"] == 0


def test_subject_task_uses_subject_counts():
    task = {"task_type": "subject_questions", "target_subject": "math"}
    assert task_progress(task, {}, {"math": 4}) == 4
    assert task_progress({"task_type": "correct_answers"}, {"correct_answers": 2}, {}) == 2
