"""
core/matchup_session.py — Session-scoped matchup state

Owns everything one user session knows about the current matchup:
sport, team catalog, away/home selection, the captured baseline, the four
sliders and the last published result. Lives in st.session_state so it is
never shared between sessions; nothing here imports streamlit.

Rules:
- The baseline is keyed by (sport, away_id, home_id). Any change to that
  tuple discards it; sliders fall back to 75 when the pair is incomplete.
- Baseline fetches are keyed too: begin_baseline_fetch() hands out the key,
  accept_baseline() drops any response whose key no longer matches.
- Failed fetches record last_error and change nothing else.

Usage in a page:
    session = get_session(st.session_state)
    key = session.begin_baseline_fetch()
    if key:
        data, err = run_simulation(*key)
        session.accept_baseline(key, data, err)
"""

import logging
from typing import MutableMapping, Optional

from core.baseline_parser import BaselineParseError, parse_simulation_response
from core.rating_projector import clamp_grade
from core.resim_engine import (
    Axis,
    SimulationBaseline,
    SimulationResult,
    SliderState,
    baseline_result,
    recompute,
    result_changed,
)

logger = logging.getLogger(__name__)

SESSION_STATE_KEY = "matchup_session"
DEFAULT_SPORT = "nfl"

MatchupKey = tuple[str, str, str]   # (sport, away_id, home_id)


class MatchupSession:
    """Mutable per-session holder; the baseline inside it is immutable."""

    def __init__(self, sport: str = DEFAULT_SPORT) -> None:
        self.sport: str = sport
        self.teams: list[dict] = []
        self.away: Optional[dict] = None
        self.home: Optional[dict] = None
        self.baseline: Optional[SimulationBaseline] = None
        self.sliders: SliderState = SliderState()
        self.result: Optional[SimulationResult] = None
        self.pending_key: Optional[MatchupKey] = None
        self.last_error: str = ""

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def key(self) -> Optional[MatchupKey]:
        if not self.away or not self.home:
            return None
        return (self.sport, self.away["id"], self.home["id"])

    @property
    def has_baseline(self) -> bool:
        return self.baseline is not None

    def _invalidate(self) -> None:
        self.baseline = None
        self.result = None
        self.pending_key = None
        if self.key is None:
            self.sliders = SliderState()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def load_teams(self, teams: Optional[list[dict]], error: str = "") -> bool:
        """
        Install a freshly fetched catalog. Clears the team selection.

        teams=None means the fetch failed: record the error, keep
        the previous catalog and selections.
        """
        if teams is None:
            self.last_error = error or "Error loading teams"
            logger.warning("Team fetch failed for %s: %s", self.sport, self.last_error)
            return False
        self.teams = list(teams)
        self.away = None
        self.home = None
        self.last_error = ""
        self._invalidate()
        return True

    def select_sport(self, sport: str) -> bool:
        """Switch sport. Returns True if it changed (catalog must be refetched)."""
        if sport == self.sport:
            return False
        self.sport = sport
        self.teams = []
        self.away = None
        self.home = None
        self._invalidate()
        return True

    @staticmethod
    def _same_team(a: Optional[dict], b: Optional[dict]) -> bool:
        if a is None or b is None:
            return a is b
        return a.get("id") == b.get("id")

    def select_away(self, team: Optional[dict]) -> None:
        if self._same_team(team, self.away):
            return
        self.away = team
        self._invalidate()

    def select_home(self, team: Optional[dict]) -> None:
        if self._same_team(team, self.home):
            return
        self.home = team
        self._invalidate()

    # ------------------------------------------------------------------
    # Baseline fetch
    # ------------------------------------------------------------------
    def begin_baseline_fetch(self) -> Optional[MatchupKey]:
        """
        Key for a new baseline fetch, or None when none should start.

        None when the pair is incomplete (last_error set) or a baseline
        for the current pair already exists.
        """
        key = self.key
        if key is None:
            self.last_error = "Please select both away and home teams"
            return None
        if self.baseline is not None:
            return None
        self.pending_key = key
        return key

    def accept_baseline(
        self,
        key: MatchupKey,
        data: Optional[dict],
        error: str = "",
    ) -> bool:
        """
        Install the response for `key` as the new baseline.

        Dropped (returns False, state untouched) when `key` is stale or
        the fetch failed. On success sliders move to the baseline grades.
        """
        if key != self.key or key != self.pending_key:
            logger.info("Dropping stale baseline for %s (current %s)", key, self.key)
            return False
        self.pending_key = None

        if data is None:
            self.last_error = error or "Simulation failed"
            logger.warning("Baseline fetch failed for %s: %s", key, self.last_error)
            return False

        try:
            baseline = parse_simulation_response(data, self.sport, self.away, self.home)
        except BaselineParseError as exc:
            self.last_error = str(exc)
            logger.warning("Baseline parse failed for %s: %s", key, exc)
            return False

        self.baseline = baseline
        self.sliders = SliderState.from_baseline(baseline)
        self.result = baseline_result(baseline)
        self.last_error = ""
        logger.info(
            "Baseline captured for %s: %s %.0f @ %s %.0f",
            key, baseline.away_name, baseline.away_score,
            baseline.home_name, baseline.home_score,
        )
        return True

    # ------------------------------------------------------------------
    # Sliders
    # ------------------------------------------------------------------
    def set_slider(self, axis: Axis, value: float) -> bool:
        """Move one slider (clamped 60–99). Returns True if the result changed."""
        self.sliders = self.sliders.with_grade(axis, value)
        return self.refresh()

    def slider_widget_value(self, axis: Axis) -> float:
        """Position to show on the slider widget; out-of-scale grades pin to 60 or 99."""
        return float(clamp_grade(self.sliders.grade(axis)))

    def apply_widget_value(self, axis: Axis, value: float) -> bool:
        """
        Feed a slider widget value back into the session.

        Ignored without a baseline or when the widget still shows the
        displayed position, so a pinned out-of-scale grade is not a move.
        """
        if self.baseline is None or value == self.slider_widget_value(axis):
            return False
        return self.set_slider(axis, value)

    def reset_sliders(self) -> bool:
        """Snap all sliders back to the baseline grades."""
        if self.baseline is None:
            self.sliders = SliderState()
            return False
        self.sliders = SliderState.from_baseline(self.baseline)
        return self.refresh()

    def refresh(self) -> bool:
        """
        Recompute from the live sliders. Gated on baseline presence.

        Publishes only when the recomputed result differs from the current one.
        """
        if self.baseline is None:
            return False
        current = recompute(self.baseline, self.sliders)
        if not result_changed(self.result, current):
            return False
        self.result = current
        return True


def get_session(state: MutableMapping) -> MatchupSession:
    """Fetch (or create) the MatchupSession stored in a session-state mapping."""
    session = state.get(SESSION_STATE_KEY)
    if not isinstance(session, MatchupSession):
        session = MatchupSession()
        state[SESSION_STATE_KEY] = session
    return session
