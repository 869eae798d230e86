import pytest

from utils.difficulty import AdaptationThresholds, describe_adjustment, next_difficulty


def test_high_accuracy_raises_only_with_enough_samples():
    assert next_difficulty(3, 0.9, 3) == 4
    assert next_difficulty(3, 1.0, 2) == 3


def test_low_accuracy_lowers_without_sample_gate():
    assert next_difficulty(5, 0.0, 1) == 4
    assert next_difficulty(5, 0.4, 10) == 4


def test_middle_band_and_no_data_keep_difficulty():
    assert next_difficulty(5, 0.6, 10) == 5
    assert next_difficulty(5, None, 0) == 5


def test_difficulty_stays_within_bounds():
    assert next_difficulty(10, 1.0, 10) == 10
    assert next_difficulty(1, 0.0, 10) == 1
    assert next_difficulty(42, 0.6, 10) == 10
    assert next_difficulty(-3, 0.6, 10) == 1


def test_thresholds_come_from_config():
    thresholds = AdaptationThresholds.from_config({"adaptation": {"high_accuracy": 0.9, "min_samples": 5}})
    assert next_difficulty(3, 0.85, 10, thresholds) == 3
    assert next_difficulty(3, 0.95, 4, thresholds) == 3
    assert next_difficulty(3, 0.95, 5, thresholds) == 4


def test_inconsistent_thresholds_are_rejected():
    with pytest.raises(ValueError):
        AdaptationThresholds.from_config({"adaptation": {"high_accuracy": 0.3, "low_accuracy": 0.5}})


def test_describe_adjustment():
    assert describe_adjustment(3, 4) == "increased from 3 to 4"
    assert describe_adjustment(4, 3) == "decreased from 4 to 3"
    assert describe_adjustment(4, 4) == "unchanged at 4"
