from Levenshtein import ratio as lev_ratio
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple
from config import load_config

DEFAULT_NEAR_MISS_THRESHOLD = 0.85


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _as_decimal(value: Any) -> Optional[Decimal]:
    text = _clean(value).replace(",", "")
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def grade_mcq(correct_answer: Any, user_answer: Any) -> bool:
    """Exact option match after trimming; multi-select answers compare as sets."""
    if isinstance(correct_answer, list):
        if not isinstance(user_answer, list):
            user_answer = [user_answer]
        return {_clean(v) for v in correct_answer} == {_clean(v) for v in user_answer}
    if isinstance(user_answer, list):
        return False
    return _clean(correct_answer) == _clean(user_answer)


def grade_numeric(correct_answer: Any, user_answer: Any) -> bool:
    """Exact decimal equality ("0.50" == "0.5"), else exact string match."""
    expected = _as_decimal(correct_answer)
    actual = _as_decimal(user_answer)
    if expected is not None and actual is not None:
        return expected == actual
    return _clean(correct_answer) == _clean(user_answer) != ""


def grade_text(correct_answer: Any, user_answer: Any, near_miss_threshold: float = DEFAULT_NEAR_MISS_THRESHOLD) -> Tuple[bool, bool]:
    """Case-insensitive trimmed equality. Returns (is_correct, near_miss)."""
    expected = _clean(correct_answer).casefold()
    actual = _clean(user_answer).casefold()
    if not actual:
        return False, False
    if expected == actual:
        return True, False
    return False, lev_ratio(expected, actual) >= near_miss_threshold


def grade_answer(question_type: str, correct_answer: Any, user_answer: Any, config: Dict[str, Any] = None) -> Tuple[bool, bool]:
    """Grade a submitted answer by question type. Returns (is_correct, near_miss)."""
    if not config:
        config = load_config()
    threshold = config.get('grading', {}).get('near_miss_threshold', DEFAULT_NEAR_MISS_THRESHOLD)
    question_type = getattr(question_type, "value", question_type)
    if question_type == "mcq":
        return grade_mcq(correct_answer, user_answer), False
    if question_type == "numeric":
        return grade_numeric(correct_answer, user_answer), False
    if question_type == "text":
        return grade_text(correct_answer, user_answer, threshold)
    raise ValueError(f"Unknown question type: {question_type}")
