"""
core/rating_projector.py — Grade → simulator rating projection
================================================================
Maps the 60–99 "grade" slider scale onto the Versus simulator's internal
rating scale. No API calls, no UI, no file I/O.

The projection is a single-point linear interpolation anchored at the
baseline (grade, rating) pair returned by the remote simulation:

    rating = (grade - baseline_grade) * scale_range / GRADE_SPAN + baseline_rating

Moving a slider by one grade point moves the rating by scale_range / 39.
scale_range comes from the API (offensiveRange / defensiveRange, default 20).

Usage:
    from core.rating_projector import project_rating
    rating = project_rating(90, baseline_grade=80, baseline_rating=10.0, scale_range=20.0)
    # → 15.13
"""

import math

GRADE_MIN: int = 60
GRADE_MAX: int = 99
GRADE_SPAN: int = GRADE_MAX - GRADE_MIN   # 39
DEFAULT_GRADE: int = 75                   # slider value when no pair selected

RATING_DECIMALS: int = 2


def round_half_up(value: float, decimals: int = 0) -> float:
    """
    Round half away from -inf, matching JS Math.round semantics.

    Python's round() is banker's rounding (round(2.5) == 2), which would
    shift scores on exact .5 boundaries.

    >>> round_half_up(2.5)
    3.0
    >>> round_half_up(15.125, 2)
    15.13
    """
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def clamp_grade(value: float) -> float:
    """Clamp a raw slider value into [GRADE_MIN, GRADE_MAX]."""
    return max(GRADE_MIN, min(GRADE_MAX, value))


def project_rating(
    grade: float,
    baseline_grade: float,
    baseline_rating: float,
    scale_range: float,
    grade_span: float = GRADE_SPAN,
) -> float:
    """
    Project a grade onto the simulator rating scale.

    Args:
        grade:           Current slider grade (pre-clamped to 60–99 by caller).
        baseline_grade:  Grade returned by the baseline simulation.
        baseline_rating: Rating paired with baseline_grade.
        scale_range:     Rating span matching the full grade range.
        grade_span:      Width of the grade scale (99 - 60).

    Returns:
        Projected rating rounded to 2 decimal places.

    >>> project_rating(80, 80, 10.0, 20.0)
    10.0
    >>> project_rating(90, 80, 10.0, 20.0)
    15.13
    """
    raw = (grade - baseline_grade) * scale_range / grade_span + baseline_rating
    return round_half_up(raw, RATING_DECIMALS)
