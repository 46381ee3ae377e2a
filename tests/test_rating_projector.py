"""
tests/test_rating_projector.py — Versus Matchup Simulator
==========================================================
Unit tests for core/rating_projector.py.

Run: pytest tests/test_rating_projector.py -v
"""

import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.rating_projector import (
    DEFAULT_GRADE,
    GRADE_MAX,
    GRADE_MIN,
    GRADE_SPAN,
    clamp_grade,
    project_rating,
    round_half_up,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

class TestGradeScale:
    def test_span_is_39(self):
        assert GRADE_SPAN == 39
        assert GRADE_MAX - GRADE_MIN == GRADE_SPAN

    def test_default_grade_inside_scale(self):
        assert GRADE_MIN <= DEFAULT_GRADE <= GRADE_MAX


# ---------------------------------------------------------------------------
# round_half_up
# ---------------------------------------------------------------------------

class TestRoundHalfUp:
    def test_half_rounds_up(self):
        """Python's round(2.5) == 2; scores must follow half-up instead."""
        assert round_half_up(2.5) == 3.0

    def test_negative_half_rounds_toward_positive(self):
        assert round_half_up(-2.5) == -2.0

    def test_two_decimals(self):
        assert round_half_up(15.128205, 2) == pytest.approx(15.13)

    def test_already_rounded_unchanged(self):
        assert round_half_up(8.0, 2) == 8.0


# ---------------------------------------------------------------------------
# clamp_grade
# ---------------------------------------------------------------------------

class TestClampGrade:
    def test_below_floor(self):
        assert clamp_grade(55) == GRADE_MIN

    def test_above_ceiling(self):
        assert clamp_grade(120) == GRADE_MAX

    def test_inside_range_unchanged(self):
        assert clamp_grade(75) == 75

    def test_bounds_inclusive(self):
        assert clamp_grade(60) == 60
        assert clamp_grade(99) == 99


# ---------------------------------------------------------------------------
# project_rating
# ---------------------------------------------------------------------------

class TestProjectRating:
    def test_baseline_grade_returns_baseline_rating(self):
        assert project_rating(80, 80, 10.0, 20.0) == pytest.approx(10.0)

    def test_ten_grade_points_up(self):
        """(90 - 80) * 20 / 39 + 10 = 15.128... → 15.13"""
        assert project_rating(90, 80, 10.0, 20.0) == pytest.approx(15.13)

    def test_ten_grade_points_down(self):
        """(70 - 80) * 20 / 39 + 10 = 4.871... → 4.87"""
        assert project_rating(70, 80, 10.0, 20.0) == pytest.approx(4.87)

    def test_full_span_moves_full_range(self):
        """Moving from 60 to 99 spans exactly scale_range."""
        low = project_rating(60, 60, 0.0, 20.0)
        high = project_rating(99, 60, 0.0, 20.0)
        assert high - low == pytest.approx(20.0)

    def test_scale_range_controls_slope(self):
        narrow = project_rating(85, 75, 0.0, 10.0)
        wide = project_rating(85, 75, 0.0, 30.0)
        assert wide == pytest.approx(narrow * 3, abs=0.02)

    def test_result_has_two_decimals(self):
        rating = project_rating(77, 75, 3.333, 20.0)
        assert rating == round(rating, 2)

    def test_custom_grade_span(self):
        assert project_rating(85, 75, 0.0, 20.0, grade_span=20) == pytest.approx(10.0)

    def test_monotone_in_grade(self):
        ratings = [project_rating(g, 75, 2.0, 20.0) for g in range(60, 100)]
        assert ratings == sorted(ratings)
