"""Split a session's question budget across micro-skills.

Every skill with a positive weight gets at least one question (when the
budget allows), the rest is shared in proportion to weight using the
largest-remainder method so the counts always add up to the session size.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Hashable, List, Mapping, Optional, Sequence

from utils.errors import InsufficientQuestionsError, NoEligibleSkillsError

logger = logging.getLogger(__name__)

UNSTARTED_WEIGHT = 1.0
# (upper accuracy bound, weight): weaker skills get a bigger share
ACCURACY_WEIGHT_BANDS = (
    (0.5, 1.5),
    (0.75, 1.0),
    (0.9, 0.6),
)
MASTERED_WEIGHT = 0.3


def weight_for_accuracy(accuracy: Optional[float]) -> float:
    """Map an (effective) accuracy in 0-1 to an allocation weight."""
    if accuracy is None:
        return UNSTARTED_WEIGHT
    for upper, weight in ACCURACY_WEIGHT_BANDS:
        if accuracy < upper:
            return weight
    return MASTERED_WEIGHT


def _weighted_split(total: int, skills: List[Hashable], weights: Mapping[Hashable, float]) -> Dict[Hashable, int]:
    by_weight = sorted(range(len(skills)), key=lambda i: (-weights[skills[i]], i))
    if len(skills) >= total:
        return {skills[i]: 1 for i in by_weight[:total]}

    shares = {skill: 1 for skill in skills}
    rest = total - len(skills)
    weight_sum = sum(weights[skill] for skill in skills)
    quotas = {skill: rest * weights[skill] / weight_sum for skill in skills}
    floors = {skill: int(math.floor(quota)) for skill, quota in quotas.items()}
    for skill, value in floors.items():
        shares[skill] += value
    leftover = rest - sum(floors.values())
    by_remainder = sorted(
        range(len(skills)),
        key=lambda i: (
            -(quotas[skills[i]] - floors[skills[i]]),
            -weights[skills[i]],
            i,
        ),
    )
    for i in by_remainder[:leftover]:
        shares[skills[i]] += 1
    return shares


def allocate(
    session_size: int,
    eligible_skills: Sequence[Hashable],
    weights: Mapping[Hashable, float],
    capacities: Optional[Mapping[Hashable, int]] = None,
) -> Dict[Hashable, int]:
    """Return how many questions to draw from each skill.

    ``capacities`` optionally caps a skill at the number of questions it can
    actually supply; any surplus is handed to the skills that still have room.
    The returned counts always sum to ``session_size``.
    """
    if not eligible_skills:
        raise NoEligibleSkillsError()
    if session_size < 1:
        raise ValueError("session_size must be at least 1")

    skills = list(dict.fromkeys(eligible_skills))
    positive = [skill for skill in skills if weights.get(skill, 0) > 0]
    if not positive:
        raise ValueError("weights of eligible skills must sum to a positive value")

    caps: Optional[Dict[Hashable, int]] = None
    if capacities is not None:
        caps = {skill: max(0, int(capacities.get(skill, 0))) for skill in skills}
        available = sum(caps[skill] for skill in positive)
        if available < session_size:
            raise InsufficientQuestionsError(session_size, available)

    counts: Dict[Hashable, int] = {skill: 0 for skill in skills}
    open_skills = [skill for skill in positive if caps is None or caps[skill] > 0]
    remaining = session_size
    while remaining > 0:
        for skill, share in _weighted_split(remaining, open_skills, weights).items():
            if caps is not None:
                share = min(share, caps[skill] - counts[skill])
            counts[skill] += share
            remaining -= share
        if caps is not None:
            open_skills = [skill for skill in open_skills if counts[skill] < caps[skill]]

    logger.debug("Allocated %s questions across %s skills: %s", session_size, len(skills), counts)
    return counts
