from datetime import datetime, timedelta, timezone

from models.mastery import MasteryRecord
from models.session import AnswerTrailEntry
from utils.analytics import pearson, time_insights
from utils.difficulty import AdaptationThresholds
from utils.mastery import effective_accuracy, get_mastery, mastery_label, record_attempt

CONFIG = {"analytics": {"fatigue_min_answers": 8, "fatigue_accuracy_drop": 15.0, "fatigue_time_increase": 0.2}}


def _entry(position, is_correct, time_spent, difficulty=3):
    return AnswerTrailEntry(
        position=position,
        question_id=f"q{position}",
        micro_skill_id=1,
        difficulty=difficulty,
        is_correct=is_correct,
        time_spent_seconds=time_spent,
        expected_time_seconds=30,
        confidence_score=70.0,
        answered_at="2026-01-01T00:00:00+00:00",
    )


def test_unpracticed_skill_has_default_mastery(conn):
    record = get_mastery(conn, "nobody", 1)
    assert record.current_difficulty == 1
    assert record.rolling_accuracy is None
    assert record.total_attempts == 0
    assert mastery_label(record.rolling_accuracy) == "new"


def test_first_attempt_anchors_at_served_difficulty(conn):
    record = record_attempt(conn, "ada", 1, False, 6)
    assert record.current_difficulty == 5
    assert record.rolling_accuracy == 0.0
    assert record.total_attempts == 1


def test_window_is_bounded_and_difficulty_rises(conn):
    thresholds = AdaptationThresholds(window_size=4, min_samples=3)
    for _ in range(6):
        record = record_attempt(conn, "ada", 2, True, 2, time_spent_seconds=10, thresholds=thresholds)
    assert record.recent_results == [1, 1, 1, 1]
    assert record.rolling_accuracy == 1.0
    assert record.total_attempts == 6
    assert record.correct_attempts == 6
    assert record.avg_time_seconds == 10.0
    # rises from the third attempt on: 2 -> 3 -> 4 -> 5 -> 6
    assert record.current_difficulty == 6
    assert get_mastery(conn, "ada", 2).current_difficulty == 6


def test_mastery_labels():
    assert mastery_label(0.2) == "weak"
    assert mastery_label(0.6) == "moderate"
    assert mastery_label(0.9) == "strong"


def test_effective_accuracy_decays_with_idle_days():
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    fresh = MasteryRecord(user_id="u", micro_skill_id=1, rolling_accuracy=0.8, last_practiced_at=now.isoformat())
    stale = MasteryRecord(
        user_id="u", micro_skill_id=1, rolling_accuracy=0.8, last_practiced_at=(now - timedelta(days=20)).isoformat()
    )
    assert effective_accuracy(fresh, now) == 0.8
    assert 0.29 < effective_accuracy(stale, now) < 0.3
    assert effective_accuracy(MasteryRecord(user_id="u", micro_skill_id=1), now) is None


def test_pearson_handles_zero_variance():
    assert pearson([1, 2, 3], [2, 4, 6]) == 1.0
    assert pearson([1, 2, 3], [5, 5, 5]) is None
    assert pearson([1], [1]) is None


def test_fatigue_detected_when_late_answers_slow_down():
    entries = [_entry(i, True, 20) for i in range(6)] + [_entry(i, True, 30) for i in range(6, 8)]
    insights = time_insights(entries, CONFIG)
    assert insights.early_quartile.avg_time_seconds == 20
    assert insights.late_quartile.avg_time_seconds == 30
    assert insights.time_increase == 0.5
    assert insights.fatigue_detected is True


def test_fatigue_detected_when_late_accuracy_drops():
    entries = [_entry(i, True, 20) for i in range(6)] + [_entry(i, False, 20) for i in range(6, 8)]
    insights = time_insights(entries, CONFIG)
    assert insights.accuracy_drop == 100.0
    assert insights.fatigue_detected is True


def test_short_sessions_skip_fatigue():
    entries = [_entry(i, i < 2, 20 + i * 10) for i in range(5)]
    insights = time_insights(entries, CONFIG)
    assert insights.fatigue_detected is False
    assert insights.early_quartile is None
    assert insights.time_accuracy_correlation is not None
    assert insights.time_difficulty_correlation is None
    assert [s.difficulty for s in insights.difficulty_breakdown] == [3]
