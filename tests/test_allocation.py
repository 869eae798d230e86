import pytest

from utils.allocation import allocate, weight_for_accuracy
from utils.errors import InsufficientQuestionsError, NoEligibleSkillsError


def test_weight_bands_favour_weak_skills():
    assert weight_for_accuracy(None) == 1.0
    assert weight_for_accuracy(0.3) == 1.5
    assert weight_for_accuracy(0.6) == 1.0
    assert weight_for_accuracy(0.8) == 0.6
    assert weight_for_accuracy(0.95) == 0.3


@pytest.mark.parametrize("size", [1, 2, 3, 7, 10, 20])
def test_allocation_sums_to_session_size(size):
    weights = {1: 1.5, 2: 1.0, 3: 0.6, 4: 0.3}
    counts = allocate(size, [1, 2, 3, 4], weights)
    assert sum(counts.values()) == size


def test_every_skill_gets_one_before_weighting():
    counts = allocate(10, [1, 2, 3], {1: 1.5, 2: 1.0, 3: 0.3})
    assert all(count >= 1 for count in counts.values())
    assert counts[1] > counts[2] > counts[3]


def test_fewer_questions_than_skills_picks_highest_weights():
    counts = allocate(2, ["a", "b", "c"], {"a": 0.3, "b": 1.5, "c": 1.0})
    assert counts == {"a": 0, "b": 1, "c": 1}


def test_ties_follow_input_order():
    counts = allocate(2, ["x", "y", "z"], {"x": 1.0, "y": 1.0, "z": 1.0})
    assert counts == {"x": 1, "y": 1, "z": 0}


def test_zero_weight_skill_gets_nothing():
    counts = allocate(6, [1, 2], {1: 1.0, 2: 0.0})
    assert counts == {1: 6, 2: 0}


def test_capacity_surplus_moves_to_other_skills():
    counts = allocate(10, [1, 2, 3], {1: 1.5, 2: 1.0, 3: 1.0}, capacities={1: 2, 2: 20, 3: 20})
    assert counts[1] == 2
    assert counts[2] + counts[3] == 8


def test_insufficient_capacity_raises():
    with pytest.raises(InsufficientQuestionsError) as excinfo:
        allocate(10, [1, 2], {1: 1.0, 2: 1.0}, capacities={1: 3, 2: 4})
    assert excinfo.value.data == {"requested": 10, "available": 7}


def test_no_eligible_skills_raises():
    with pytest.raises(NoEligibleSkillsError):
        allocate(5, [], {})


def test_all_zero_weights_is_rejected():
    with pytest.raises(ValueError):
        allocate(5, [1, 2], {1: 0.0, 2: 0.0})
