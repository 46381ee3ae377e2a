"""
core/resim_engine.py — Local delta re-simulation of a Versus baseline
=======================================================================
Recomputes score / spread / total / win probability from a captured baseline
plus the four live grade sliders, without another call to the remote engine.

Model (delta, not absolute):
    team_score_formula = off_rating - opp_def_rating + home_field_advantage
    new_score          = baseline_score + (formula(current) - formula(baseline))

The remote engine's absolute calibration is kept; only the relative effect
of a slider move is applied. Each slider affects exactly one side's score:

    away offense  → away score      home offense  → home score
    away defense  → home score      home defense  → away score

Changed sliders are turned into tagged Axis events, applied in AXIS_ORDER,
each yielding an explicit ScoreUpdate(side, score). A side with no changed
axis keeps its exact baseline score (no float drift on reset).

Usage:
    from core.resim_engine import recompute, SliderState
    result = recompute(baseline, SliderState.from_baseline(baseline).with_grade(Axis.AWAY_OFFENSE, 90))
    result.away_score, result.home_win_probability

DO NOT add API calls, Streamlit calls, or file I/O to this file.
Baselines are read-only here; never mutate them.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from core.rating_projector import (
    DEFAULT_GRADE,
    GRADE_MAX,
    GRADE_MIN,
    clamp_grade,
    project_rating,
    round_half_up,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_HOME_FIELD_ADVANTAGE: float = 1.25
DEFAULT_RATING_RANGE: float = 20.0

FOOTBALL_SPORTS: frozenset = frozenset({"nfl", "college-football", "cfb"})
BASKETBALL_SPORTS: frozenset = frozenset({"nba", "college-basketball"})

# Logistic sensitivity k for the slider-adjusted path.
RESIM_WIN_PROB_K: dict[str, float] = {
    "basketball": 0.13,
    "football":   0.15,
}
_DEFAULT_RESIM_K: float = 0.13
# Sport codes the recompute k table applies to; aliases such as "cfb" take
# _DEFAULT_RESIM_K even though they round like football.
_RESIM_K_SPORTS: frozenset = frozenset({"nfl", "college-football", "nba", "college-basketball"})

# Logistic sensitivity k for the untouched baseline when the response carries
# no win probability. Differs from RESIM_WIN_PROB_K for basketball and other.
BASELINE_WIN_PROB_K: dict[str, float] = {
    "basketball": 0.10,
    "football":   0.15,
}
_DEFAULT_BASELINE_K: float = 0.12

WIN_PROB_FLOOR: float = 0.001
WIN_PROB_CEIL: float = 0.999

# Football snapping thresholds
_FOOTBALL_SAFETY_MAX: float = 2.0     # <= 2 → 0
_FOOTBALL_FIELD_GOAL_MAX: float = 4.5  # (2, 4.5) → 3
_FOOTBALL_TOUCHDOWN_MAX: float = 6.0   # [4.5, 6) → 6


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TeamRatingSnapshot:
    """One side's grades (UI scale) and ratings (simulator scale) at baseline."""
    offensive_grade: float
    offensive_rating: float
    defensive_grade: float
    defensive_rating: float


@dataclass(frozen=True)
class SimulationBaseline:
    """
    Authoritative remote simulation for one (sport, away, home) selection.

    Captured once, replaced (never mutated) when the selection changes.
    away/home win probabilities are 0–1, or None when the response had none.
    """
    away_score: float
    home_score: float
    away: TeamRatingSnapshot
    home: TeamRatingSnapshot
    offensive_rating_range: float = DEFAULT_RATING_RANGE
    defensive_rating_range: float = DEFAULT_RATING_RANGE
    home_field_advantage: float = DEFAULT_HOME_FIELD_ADVANTAGE
    sport: str = "nfl"
    away_win_probability: Optional[float] = None
    home_win_probability: Optional[float] = None
    # Display-only
    away_name: str = ""
    home_name: str = ""
    point_spread: Optional[float] = None
    total_points: Optional[float] = None


@dataclass(frozen=True)
class SimulationResult:
    away_score: float
    home_score: float
    spread: float                 # home - away
    total: float                  # away + home
    away_win_probability: float   # (0, 1)
    home_win_probability: float   # (0, 1), sums to 1 with away


class Axis(Enum):
    """Which slider moved. Values double as SliderState field names."""
    AWAY_OFFENSE = "away_off"
    HOME_OFFENSE = "home_off"
    AWAY_DEFENSE = "away_def"
    HOME_DEFENSE = "home_def"


# Fixed application order for axis events.
AXIS_ORDER: tuple = (
    Axis.AWAY_OFFENSE,
    Axis.HOME_OFFENSE,
    Axis.AWAY_DEFENSE,
    Axis.HOME_DEFENSE,
)

# Side whose score each axis moves.
AXIS_TARGET_SIDE: dict[Axis, str] = {
    Axis.AWAY_OFFENSE: "away",
    Axis.HOME_OFFENSE: "home",
    Axis.AWAY_DEFENSE: "home",
    Axis.HOME_DEFENSE: "away",
}


@dataclass(frozen=True)
class SliderState:
    """The four live grade sliders."""
    away_off: float = DEFAULT_GRADE
    away_def: float = DEFAULT_GRADE
    home_off: float = DEFAULT_GRADE
    home_def: float = DEFAULT_GRADE

    @classmethod
    def from_baseline(cls, baseline: SimulationBaseline) -> "SliderState":
        """Sliders positioned exactly on the baseline grades."""
        return cls(
            away_off=baseline.away.offensive_grade,
            away_def=baseline.away.defensive_grade,
            home_off=baseline.home.offensive_grade,
            home_def=baseline.home.defensive_grade,
        )

    def grade(self, axis: Axis) -> float:
        return getattr(self, axis.value)

    def with_grade(self, axis: Axis, value: float) -> "SliderState":
        """Copy with one slider moved; value is clamped to [60, 99]."""
        return replace(self, **{axis.value: clamp_grade(value)})


@dataclass(frozen=True)
class ProjectedRatings:
    """Current simulator ratings derived from the sliders."""
    away_off: float
    away_def: float
    home_off: float
    home_def: float


@dataclass(frozen=True)
class ScoreUpdate:
    """Output of one axis event: the new score for exactly one side."""
    axis: Axis
    side: str      # "away" | "home"
    score: float


# ---------------------------------------------------------------------------
# Sport policy helpers
# ---------------------------------------------------------------------------

def sport_family(sport: str) -> str:
    """
    >>> sport_family("college-football")
    'football'
    >>> sport_family("nba")
    'basketball'
    >>> sport_family("mlb")
    'other'
    """
    key = (sport or "").lower()
    if key in FOOTBALL_SPORTS:
        return "football"
    if key in BASKETBALL_SPORTS:
        return "basketball"
    return "other"


def round_score(score: float, sport: str) -> int:
    """
    Snap a raw score to a realistic value for the sport.

    Football: <=2 → 0, (2, 4.5) → 3, [4.5, 6) → 6, else nearest integer.
    Everything else: nearest integer (half-up).

    >>> round_score(1.9, "nfl")
    0
    >>> round_score(4.4, "nfl")
    3
    >>> round_score(5.9, "nfl")
    6
    >>> round_score(10.5, "nba")
    11
    """
    if sport_family(sport) == "football":
        if score <= _FOOTBALL_SAFETY_MAX:
            return 0
        if score < _FOOTBALL_FIELD_GOAL_MAX:
            return 3
        if score < _FOOTBALL_TOUCHDOWN_MAX:
            return 6
    return int(round_half_up(score))


def _logistic_home_probability(spread: float, k: float) -> float:
    # Clamp the exponent so extreme spreads cannot overflow math.exp
    exponent = max(-700.0, min(700.0, -k * spread))
    p = 1.0 / (1.0 + math.exp(exponent))
    return max(WIN_PROB_FLOOR, min(WIN_PROB_CEIL, p))


def win_probability(spread: float, sport: str) -> tuple[float, float]:
    """
    Logistic spread → (away_prob, home_prob) for the slider-adjusted path.

    >>> away, home = win_probability(0.0, "nfl")
    >>> home
    0.5
    """
    if (sport or "").lower() in _RESIM_K_SPORTS:
        k = RESIM_WIN_PROB_K.get(sport_family(sport), _DEFAULT_RESIM_K)
    else:
        k = _DEFAULT_RESIM_K
    home = _logistic_home_probability(spread, k)
    return 1.0 - home, home


def baseline_win_probability(spread: float, sport: str) -> tuple[float, float]:
    """Same transform with the baseline constant table."""
    k = BASELINE_WIN_PROB_K.get(sport_family(sport), _DEFAULT_BASELINE_K)
    home = _logistic_home_probability(spread, k)
    return 1.0 - home, home


# ---------------------------------------------------------------------------
# Re-simulation
# ---------------------------------------------------------------------------

def changed_axes(baseline: SimulationBaseline, sliders: SliderState) -> list[Axis]:
    """Axes whose slider differs from the baseline grade, in AXIS_ORDER."""
    grades = SliderState.from_baseline(baseline)
    return [axis for axis in AXIS_ORDER if sliders.grade(axis) != grades.grade(axis)]


def project_current_ratings(
    baseline: SimulationBaseline,
    sliders: SliderState,
) -> ProjectedRatings:
    """Project all four sliders onto the simulator scale."""
    off_range = baseline.offensive_rating_range
    def_range = baseline.defensive_rating_range
    return ProjectedRatings(
        away_off=project_rating(
            sliders.away_off, baseline.away.offensive_grade,
            baseline.away.offensive_rating, off_range,
        ),
        away_def=project_rating(
            sliders.away_def, baseline.away.defensive_grade,
            baseline.away.defensive_rating, def_range,
        ),
        home_off=project_rating(
            sliders.home_off, baseline.home.offensive_grade,
            baseline.home.offensive_rating, off_range,
        ),
        home_def=project_rating(
            sliders.home_def, baseline.home.defensive_grade,
            baseline.home.defensive_rating, def_range,
        ),
    )


def _apply_axis(
    axis: Axis,
    baseline: SimulationBaseline,
    current: ProjectedRatings,
) -> ScoreUpdate:
    hfa = baseline.home_field_advantage
    side = AXIS_TARGET_SIDE[axis]

    if side == "away":
        formula_now = current.away_off - current.home_def + hfa
        formula_base = baseline.away.offensive_rating - baseline.home.defensive_rating + hfa
        base_score = baseline.away_score
    else:
        formula_now = current.home_off - current.away_def + hfa
        formula_base = baseline.home.offensive_rating - baseline.away.defensive_rating + hfa
        base_score = baseline.home_score

    raw = base_score + (formula_now - formula_base)
    return ScoreUpdate(axis=axis, side=side, score=max(0, round_score(raw, baseline.sport)))


def axis_updates(baseline: SimulationBaseline, sliders: SliderState) -> list[ScoreUpdate]:
    """One ScoreUpdate per changed axis, in AXIS_ORDER."""
    axes = changed_axes(baseline, sliders)
    if not axes:
        return []
    current = project_current_ratings(baseline, sliders)
    return [_apply_axis(axis, baseline, current) for axis in axes]


def _result_from_scores(
    away_score: float,
    home_score: float,
    probabilities: tuple[float, float],
) -> SimulationResult:
    away_prob, home_prob = probabilities
    return SimulationResult(
        away_score=away_score,
        home_score=home_score,
        spread=home_score - away_score,
        total=away_score + home_score,
        away_win_probability=away_prob,
        home_win_probability=home_prob,
    )


def baseline_result(baseline: SimulationBaseline) -> SimulationResult:
    """
    Result for untouched sliders: the remote scores, verbatim.

    Uses the remote win probability when present, otherwise the baseline
    logistic table.
    """
    home_prob = baseline.home_win_probability
    if home_prob is not None and WIN_PROB_FLOOR <= home_prob <= WIN_PROB_CEIL:
        probabilities = (1.0 - home_prob, home_prob)
    else:
        probabilities = baseline_win_probability(
            baseline.home_score - baseline.away_score, baseline.sport,
        )
    return _result_from_scores(baseline.away_score, baseline.home_score, probabilities)


def recompute(baseline: SimulationBaseline, sliders: SliderState) -> SimulationResult:
    """
    Recompute the matchup for the current sliders.

    Returns the baseline scores exactly when all four sliders sit on their
    baseline grades. Otherwise applies one ScoreUpdate per changed axis; a
    side with no changed axis keeps its baseline score.

    >>> base = SimulationBaseline(
    ...     away_score=17, home_score=24,
    ...     away=TeamRatingSnapshot(80, 10.0, 75, 0.0),
    ...     home=TeamRatingSnapshot(75, 0.0, 78, 8.0),
    ... )
    >>> recompute(base, SliderState.from_baseline(base)).away_score
    17
    """
    updates = axis_updates(baseline, sliders)
    if not updates:
        return baseline_result(baseline)

    scores = {"away": baseline.away_score, "home": baseline.home_score}
    for update in updates:
        scores[update.side] = update.score

    spread = scores["home"] - scores["away"]
    return _result_from_scores(
        scores["away"], scores["home"], win_probability(spread, baseline.sport),
    )


def result_changed(previous: Optional[SimulationResult], current: SimulationResult) -> bool:
    """
    True if any published field differs; lets callers skip redundant publishes.

    Probabilities count too, so snapping back to the baseline republishes
    the remote win probability even when the scores already match.
    """
    if previous is None:
        return True
    return previous != current


def sweep_axis(
    baseline: SimulationBaseline,
    sliders: SliderState,
    axis: Axis,
    grades: Optional[Iterable[float]] = None,
) -> list[tuple[float, SimulationResult]]:
    """
    Recompute across a range of grades for one slider, others held fixed.

    Args:
        grades: Grades to evaluate. Defaults to every integer 60–99.

    Returns:
        [(grade, SimulationResult), ...] in input order.
    """
    if grades is None:
        grades = range(GRADE_MIN, GRADE_MAX + 1)
    return [(g, recompute(baseline, sliders.with_grade(axis, g))) for g in grades]
