"""
core/baseline_parser.py — Versus simulation response → SimulationBaseline

The upstream does not guarantee the order of the `team` array, so each
selected team is located with an explicit, ordered rule chain:

    1. exact name
    2. case-insensitive name
    3. exact abbreviation
    4. case-insensitive abbreviation
    5. venue field ("Away" / "Home")
    6. array position (away = 0, home = 1)

The first rule that hits wins. Abbreviation rules only run when the
selected team actually has an abbreviation.

Missing fields fall back to: grade 75, rating 0, range 20, HFA 1.25, score 0.
Zero grades / ranges / HFA count as missing, same as absent.
"""

import logging
import math
from typing import Callable, Optional

from core.rating_projector import DEFAULT_GRADE
from core.resim_engine import (
    DEFAULT_HOME_FIELD_ADVANTAGE,
    DEFAULT_RATING_RANGE,
    SimulationBaseline,
    TeamRatingSnapshot,
)

logger = logging.getLogger(__name__)


class BaselineParseError(ValueError):
    """Simulation response cannot produce a baseline."""


# ---------------------------------------------------------------------------
# Team matcher
# ---------------------------------------------------------------------------

def _lower(value) -> Optional[str]:
    return value.lower() if isinstance(value, str) else None


def _exact_name(entry: dict, selected: dict, venue: str) -> bool:
    return bool(selected.get("name")) and entry.get("name") == selected.get("name")


def _ci_name(entry: dict, selected: dict, venue: str) -> bool:
    wanted = _lower(selected.get("name"))
    return bool(wanted) and _lower(entry.get("name")) == wanted


def _exact_abbreviation(entry: dict, selected: dict, venue: str) -> bool:
    wanted = selected.get("abbreviation")
    return bool(wanted) and entry.get("abbreviation") == wanted


def _ci_abbreviation(entry: dict, selected: dict, venue: str) -> bool:
    wanted = _lower(selected.get("abbreviation"))
    return bool(wanted) and _lower(entry.get("abbreviation")) == wanted


def _venue(entry: dict, selected: dict, venue: str) -> bool:
    return entry.get("venue") == venue


MATCH_RULES: list[tuple[str, Callable[[dict, dict, str], bool]]] = [
    ("name", _exact_name),
    ("name_ci", _ci_name),
    ("abbreviation", _exact_abbreviation),
    ("abbreviation_ci", _ci_abbreviation),
    ("venue", _venue),
]


def match_team(
    teams: list[dict],
    selected: dict,
    venue: str,
    position: int,
) -> tuple[Optional[dict], str]:
    """
    Find the response entry for a selected team.

    Args:
        teams:    Response `team` array.
        selected: The user's selection, {id, name, abbreviation}.
        venue:    "Away" or "Home".
        position: Positional fallback index.

    Returns:
        (entry, rule_name), or (None, "") if nothing matched.

    >>> teams = [{"name": "Bears", "venue": "Home"}, {"name": "Lions", "venue": "Away"}]
    >>> match_team(teams, {"name": "lions"}, "Away", 0)[1]
    'name_ci'
    """
    for rule_name, rule in MATCH_RULES:
        for entry in teams:
            if isinstance(entry, dict) and rule(entry, selected, venue):
                return entry, rule_name
    if 0 <= position < len(teams) and isinstance(teams[position], dict):
        return teams[position], "position"
    return None, ""


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _number(value, default: float) -> float:
    """Numeric field or default. None, "", 0, NaN/inf and non-numeric are missing."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number if number else default


def _probability(value) -> Optional[float]:
    """0–100 percentage → 0–1, or None when absent."""
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(pct) or pct <= 0:
        return None
    return pct / 100.0


def _snapshot(entry: dict) -> TeamRatingSnapshot:
    return TeamRatingSnapshot(
        offensive_grade=_number(entry.get("offensiveNumericGrade"), DEFAULT_GRADE),
        offensive_rating=_number(entry.get("offensiveRating"), 0.0),
        defensive_grade=_number(entry.get("defensiveNumericGrade"), DEFAULT_GRADE),
        defensive_rating=_number(entry.get("defensiveRating"), 0.0),
    )


def _optional_number(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# ---------------------------------------------------------------------------
# Public parser
# ---------------------------------------------------------------------------

def parse_simulation_response(
    data: dict,
    sport: str,
    away: dict,
    home: dict,
) -> SimulationBaseline:
    """
    Build an immutable SimulationBaseline from a raw simulation response.

    Args:
        data:  Raw dict from core.versus_client.run_simulation().
        sport: Sport code the simulation was requested for.
        away:  Selected away team {id, name, abbreviation}.
        home:  Selected home team {id, name, abbreviation}.

    Raises:
        BaselineParseError: fewer than two team entries, or no match.
    """
    teams = data.get("team") if isinstance(data, dict) else None
    if not isinstance(teams, list) or len(teams) < 2:
        raise BaselineParseError("Simulation response is missing team data")

    away_entry, away_rule = match_team(teams, away, "Away", 0)
    home_entry, home_rule = match_team(teams, home, "Home", 1)
    if away_entry is None or home_entry is None:
        raise BaselineParseError("Could not match teams in simulation response")

    logger.info(
        "Team matching: away %r → %r (%s), home %r → %r (%s)",
        away.get("name"), away_entry.get("name"), away_rule,
        home.get("name"), home_entry.get("name"), home_rule,
    )

    outcome = data.get("outcome") or {}
    return SimulationBaseline(
        away_score=_number(away_entry.get("score"), 0.0),
        home_score=_number(home_entry.get("score"), 0.0),
        away=_snapshot(away_entry),
        home=_snapshot(home_entry),
        offensive_rating_range=_number(data.get("offensiveRange"), DEFAULT_RATING_RANGE),
        defensive_rating_range=_number(data.get("defensiveRange"), DEFAULT_RATING_RANGE),
        home_field_advantage=_number(
            home_entry.get("homeFieldAdvantage"), DEFAULT_HOME_FIELD_ADVANTAGE,
        ),
        sport=sport,
        away_win_probability=_probability(away_entry.get("winProbability")),
        home_win_probability=_probability(home_entry.get("winProbability")),
        away_name=str(away_entry.get("name") or away.get("name") or "Away"),
        home_name=str(home_entry.get("name") or home.get("name") or "Home"),
        point_spread=_optional_number(outcome.get("pointSpread")),
        total_points=_optional_number(outcome.get("totalPoints")),
    )
