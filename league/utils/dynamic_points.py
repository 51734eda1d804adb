"""
Season questionnaire (dynamic points) scoring

Each season question has a set of valid answers (team or player ids). Ties
are represented by several ids in the set, and a prediction that matches any
of them earns the points for that question. Answers stored before multi-answer
support are plain scalars and are accepted as one-element sets.
"""

import logging
import math
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

LEAGUE_WINNER = "league_winner"
TOP_SCORER = "top_scorer"
BEST_GOAL_DIFFERENCE = "best_goal_difference"
LAST_PLACE = "last_place"
QUESTION_TYPES = (LEAGUE_WINNER, TOP_SCORER, BEST_GOAL_DIFFERENCE, LAST_PLACE)

MIN_ANSWER_ID = 1
MAX_ANSWER_ID = 10_000_000


_DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_PREFIXED_PATTERN = re.compile(r"0([xXoObB])([0-9a-fA-F]+)")
_PREFIX_BASES = {"x": 16, "o": 8, "b": 2}


def _parse_numeric_string(text):
    """Plain decimal or 0x/0o/0b prefixed text, None for anything else"""
    prefixed = _PREFIXED_PATTERN.fullmatch(text)
    if prefixed:
        try:
            return int(prefixed.group(2), _PREFIX_BASES[prefixed.group(1).lower()])
        except ValueError:
            return None

    if _DECIMAL_PATTERN.fullmatch(text):
        return float(text)
    return None


def normalize_numeric_answer(raw):
    """
    Normalize a single answer id.

    Strings are trimmed and must be plain ASCII decimals (exponent allowed)
    or 0x/0o/0b prefixed integers; numbers are taken as-is. Negative values
    are sign-flipped and fractions truncated (floor of the absolute value).
    Returns None for anything else, for non-finite values and for ids outside
    1..10,000,000, so zero is never a valid answer.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, str):
        trimmed = raw.strip()
        if not trimmed:
            return None
        value = _parse_numeric_string(trimmed)
        if value is None:
            return None
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        value = raw
    else:
        return None

    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        value = math.floor(abs(value))
    else:
        value = abs(value)

    if value < MIN_ANSWER_ID or value > MAX_ANSWER_ID:
        return None

    return int(value)


def normalize_answer(raw):
    """
    Normalize a scalar (legacy) or list of answer ids.

    Always returns a list: order-stable, deduplicated, invalid entries dropped.
    """
    if raw is None:
        return []

    if isinstance(raw, (list, tuple)):
        normalized = []
        for index, item in enumerate(raw):
            value = normalize_numeric_answer(item)
            if value is None:
                logger.debug(f"Dropping invalid answer at index {index}: {item!r}")
                continue
            if value not in normalized:
                normalized.append(value)
        return normalized

    value = normalize_numeric_answer(raw)
    return [value] if value is not None else []


def does_prediction_match(user_prediction, valid_answers):
    """True when the normalized prediction is one of the valid answers"""
    prediction = normalize_numeric_answer(user_prediction)
    if prediction is None:
        return False

    normalized_valid = normalize_answer(valid_answers)
    if not normalized_valid:
        return False

    return prediction in normalized_valid


@dataclass
class DynamicPointsResult:
    total_points: int = 0
    correct_by_question: dict = field(default_factory=dict)

    def is_correct(self, question_type):
        return self.correct_by_question.get(question_type, False)


class DynamicPointsCalculator:
    """Awards a fixed number of points per correctly answered season question"""

    def __init__(self, points_per_question=3):
        self.points_per_question = points_per_question

    def calculate(self, answers, valid_answers_by_question):
        """
        Args:
            answers: mapping of question_type to the user's raw answer id
            valid_answers_by_question: mapping of question_type to the raw
                valid answer set (scalar or list)
        """
        result = DynamicPointsResult(
            correct_by_question={question: False for question in QUESTION_TYPES}
        )

        for question_type in QUESTION_TYPES:
            if question_type not in answers:
                continue
            if question_type not in valid_answers_by_question:
                continue

            if does_prediction_match(
                answers[question_type], valid_answers_by_question[question_type]
            ):
                result.correct_by_question[question_type] = True
                result.total_points += self.points_per_question

        return result
