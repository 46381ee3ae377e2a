"""
pages/01_matchup_simulator.py — Versus Matchup Simulator

Pick a sport and two teams, run the remote Versus simulation once, then
drag the four offense/defense grade sliders to see the locally recomputed
score, spread, total and win probability.

Flow:
1. Sport change → fetch team catalog (failure keeps the previous catalog)
2. Team change  → baseline discarded, sliders wait for a new run
3. Run Simulation → baseline fetched for the current (sport, away, home)
4. Slider change → core.resim_engine.recompute() in-process
5. Team Details  → on-demand team lookups for the current pair

Design: dark terminal aesthetic, amber accent, no narrative.
"""

import sys
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

ROOT = Path(__file__).parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.matchup_session import MatchupSession, get_session
from core.rating_projector import GRADE_MAX, GRADE_MIN
from core.resim_engine import (
    Axis,
    SimulationBaseline,
    SimulationResult,
    SliderState,
    project_current_ratings,
    sweep_axis,
)
from core.versus_client import SPORTS, fetch_team_detail, fetch_teams, run_simulation

# ---------------------------------------------------------------------------
# Plotly layout defaults
# ---------------------------------------------------------------------------
PLOTLY_BASE = dict(
    paper_bgcolor="#0e1117",
    plot_bgcolor="#13161d",
    font=dict(color="#d1d5db", size=11, family="monospace"),
    margin=dict(l=45, r=20, t=35, b=40),
    xaxis=dict(gridcolor="#2d3139", linecolor="#2d3139"),
    yaxis=dict(gridcolor="#2d3139", linecolor="#2d3139"),
    hoverlabel=dict(bgcolor="#1a1d23", bordercolor="#2d3139", font_color="#f3f4f6"),
)

AXIS_LABELS = {
    Axis.AWAY_OFFENSE: "Away Offense",
    Axis.AWAY_DEFENSE: "Away Defense",
    Axis.HOME_OFFENSE: "Home Offense",
    Axis.HOME_DEFENSE: "Home Defense",
}

SLIDER_WIDGET_KEYS = {axis: f"vs_slider_{axis.value}" for axis in Axis}
TEAMS_LOADED_KEY = "vs_teams_loaded_for"
TEAM_DETAIL_KEY = "vs_team_detail"


# ---------------------------------------------------------------------------
# State helpers
# ---------------------------------------------------------------------------

def _sync_slider_widgets(session: MatchupSession) -> None:
    """Push session slider values into the widget state before rendering."""
    for axis, widget_key in SLIDER_WIDGET_KEYS.items():
        st.session_state[widget_key] = session.slider_widget_value(axis)


def _reset_sliders(session: MatchupSession) -> None:
    session.reset_sliders()
    _sync_slider_widgets(session)


def _load_teams(session: MatchupSession) -> None:
    with st.spinner("Loading teams..."):
        teams, error = fetch_teams(session.sport)
    if session.load_teams(teams, error):
        _sync_slider_widgets(session)
    st.session_state[TEAMS_LOADED_KEY] = session.sport


def _team_index(teams: list[dict], selected) -> int | None:
    if selected is None:
        return None
    for i, team in enumerate(teams):
        if team["id"] == selected["id"]:
            return i
    return None


def _team_label(team: dict) -> str:
    abbr = team.get("abbreviation")
    return f"{team['name']} ({abbr})" if abbr else team["name"]


# ---------------------------------------------------------------------------
# Chart / card builders
# ---------------------------------------------------------------------------

def _build_win_prob_bar(result: SimulationResult, away_name: str, home_name: str) -> go.Figure:
    """Horizontal stacked bar: away vs home win probability."""
    fig = go.Figure()
    for label, val, color in [
        (away_name, result.away_win_probability * 100, "#ef4444"),
        (home_name, result.home_win_probability * 100, "#22c55e"),
    ]:
        fig.add_trace(go.Bar(
            x=[val],
            y=["Win"],
            name=f"{label} {val:.1f}%",
            orientation="h",
            marker_color=color,
            text=f"{label}<br>{val:.1f}%",
            textposition="inside",
            insidetextanchor="middle",
            textfont=dict(size=11, color="#fff"),
        ))

    layout = dict(PLOTLY_BASE)
    layout["title"] = dict(
        text="Win Probability",
        font=dict(size=12, color="#9ca3af"),
        x=0,
    )
    layout["height"] = 110
    layout["barmode"] = "stack"
    layout["showlegend"] = False
    layout["margin"] = dict(l=45, r=20, t=35, b=10)
    layout["xaxis"] = dict(**PLOTLY_BASE["xaxis"], title="", range=[0, 100], ticksuffix="%")
    layout["yaxis"] = dict(**PLOTLY_BASE["yaxis"], title="", showticklabels=False)
    fig.update_layout(**layout)
    return fig


def _build_sensitivity_chart(
    baseline: SimulationBaseline,
    sliders: SliderState,
    axis: Axis,
) -> go.Figure:
    """Away/home score as one slider sweeps 60–99, others held fixed."""
    sweep = sweep_axis(baseline, sliders, axis)
    grades = [g for g, _ in sweep]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=grades,
        y=[r.away_score for _, r in sweep],
        mode="lines+markers",
        name=f"{baseline.away_name or 'Away'} score",
        line=dict(color="#ef4444", width=2, shape="hv"),
        marker=dict(size=5, color="#ef4444"),
        hovertemplate="Grade %{x}<br>Away: %{y}<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        x=grades,
        y=[r.home_score for _, r in sweep],
        mode="lines+markers",
        name=f"{baseline.home_name or 'Home'} score",
        line=dict(color="#22c55e", width=2, shape="hv"),
        marker=dict(size=5, color="#22c55e"),
        hovertemplate="Grade %{x}<br>Home: %{y}<extra></extra>",
    ))

    fig.add_vline(
        x=sliders.grade(axis),
        line_dash="dot",
        line_color="#f59e0b",
        line_width=1.5,
        annotation_text=f"Now: {sliders.grade(axis):.0f}",
        annotation_font_color="#f59e0b",
        annotation_font_size=10,
    )

    layout = dict(PLOTLY_BASE)
    layout["title"] = dict(
        text=f"Sensitivity — Score vs {AXIS_LABELS[axis]} Grade",
        font=dict(size=12, color="#9ca3af"),
        x=0,
    )
    layout["height"] = 280
    layout["xaxis"] = dict(**PLOTLY_BASE["xaxis"], title="Grade", range=[GRADE_MIN, GRADE_MAX])
    layout["yaxis"] = dict(**PLOTLY_BASE["yaxis"], title="Points")
    layout["showlegend"] = True
    layout["legend"] = dict(bgcolor="rgba(0,0,0,0)", font=dict(size=10, color="#9ca3af"))
    fig.update_layout(**layout)
    return fig


def _ratings_frame(baseline: SimulationBaseline, sliders: SliderState) -> pd.DataFrame:
    current = project_current_ratings(baseline, sliders)
    rows = [
        {
            "Team": baseline.away_name or "Away",
            "Off Grade": f"{baseline.away.offensive_grade:.0f} → {sliders.away_off:.0f}",
            "Off Rating": f"{baseline.away.offensive_rating:.2f} → {current.away_off:.2f}",
            "Def Grade": f"{baseline.away.defensive_grade:.0f} → {sliders.away_def:.0f}",
            "Def Rating": f"{baseline.away.defensive_rating:.2f} → {current.away_def:.2f}",
        },
        {
            "Team": baseline.home_name or "Home",
            "Off Grade": f"{baseline.home.offensive_grade:.0f} → {sliders.home_off:.0f}",
            "Off Rating": f"{baseline.home.offensive_rating:.2f} → {current.home_off:.2f}",
            "Def Grade": f"{baseline.home.defensive_grade:.0f} → {sliders.home_def:.0f}",
            "Def Rating": f"{baseline.home.defensive_rating:.2f} → {current.home_def:.2f}",
        },
    ]
    return pd.DataFrame(rows)


def _score_card(result: SimulationResult, baseline: SimulationBaseline) -> str:
    """HTML scoreboard card with baseline reference."""
    adjusted = (
        result.away_score != baseline.away_score
        or result.home_score != baseline.home_score
    )
    tag_color = "#f59e0b" if adjusted else "#6b7280"
    tag = "ADJUSTED" if adjusted else "BASELINE"
    return f"""
    <div style="
        background:#1a1d23; border:1px solid #2d3139;
        border-left:4px solid {tag_color}; border-radius:8px;
        padding:16px 20px;
    ">
        <div style="font-size:0.6rem; color:#6b7280; letter-spacing:0.1em; font-weight:600; margin-bottom:6px;">
            PROJECTED SCORE · <span style="color:{tag_color};">{tag}</span>
        </div>
        <div style="display:flex; gap:28px; align-items:flex-end;">
            <div>
                <div style="font-size:0.6rem; color:#6b7280;">{baseline.away_name or 'AWAY'}</div>
                <div style="font-size:2.6rem; font-weight:800; color:#e5e7eb; line-height:1;">{result.away_score:.0f}</div>
            </div>
            <div style="font-size:1.4rem; color:#4b5563;">@</div>
            <div>
                <div style="font-size:0.6rem; color:#6b7280;">{baseline.home_name or 'HOME'}</div>
                <div style="font-size:2.6rem; font-weight:800; color:#e5e7eb; line-height:1;">{result.home_score:.0f}</div>
            </div>
        </div>
        <div style="font-size:0.65rem; color:#6b7280; margin-top:8px;">
            Remote baseline: {baseline.away_score:.0f} – {baseline.home_score:.0f}
            · HFA {baseline.home_field_advantage:.2f}
        </div>
    </div>
    """


# ---------------------------------------------------------------------------
# Page layout
# ---------------------------------------------------------------------------
session = get_session(st.session_state)

st.title("🎲 Matchup Simulator")
st.markdown(
    '<span style="font-size:0.75rem; color:#6b7280;">'
    "One remote Versus simulation per matchup · sliders recompute locally"
    "</span>",
    unsafe_allow_html=True,
)

st.markdown("---")
st.subheader("Matchup")

sport_codes = list(SPORTS.keys())
sel_col1, sel_col2, sel_col3 = st.columns([1, 2, 2])

with sel_col1:
    sport = st.selectbox(
        "Sport",
        sport_codes,
        index=sport_codes.index(session.sport) if session.sport in sport_codes else 0,
        format_func=lambda k: SPORTS[k],
        key="vs_sport",
    )
    if session.select_sport(sport):
        _sync_slider_widgets(session)
    if st.session_state.get(TEAMS_LOADED_KEY) != session.sport:
        _load_teams(session)
    if st.button("↺  Reload Teams", use_container_width=True, type="secondary"):
        _load_teams(session)

with sel_col2:
    away_pick = st.selectbox(
        "Away Team",
        session.teams,
        index=_team_index(session.teams, session.away),
        format_func=_team_label,
        placeholder="Select away team",
        key=f"vs_away_{session.sport}",
    )
    session.select_away(away_pick)

with sel_col3:
    home_pick = st.selectbox(
        "Home Team",
        session.teams,
        index=_team_index(session.teams, session.home),
        format_func=_team_label,
        placeholder="Select home team",
        key=f"vs_home_{session.sport}",
    )
    session.select_home(home_pick)

if session.key is None and not session.has_baseline:
    _sync_slider_widgets(session)

run_clicked = st.button(
    "Run Simulation",
    type="primary",
    use_container_width=True,
    disabled=session.key is None or session.has_baseline,
)
if run_clicked:
    fetch_key = session.begin_baseline_fetch()
    if fetch_key is not None:
        with st.spinner("Running simulation..."):
            data, error = run_simulation(*fetch_key)
        if session.accept_baseline(fetch_key, data, error):
            _sync_slider_widgets(session)
            st.rerun()

if session.last_error:
    st.error(session.last_error)

# ---------------------------------------------------------------------------
# Sliders
# ---------------------------------------------------------------------------
st.markdown("---")
st.subheader("Ratings")

if not session.has_baseline:
    st.caption("Select both teams and run the simulation to unlock the sliders.")

slider_cols = st.columns(2)
for col, side_axes in zip(slider_cols, [
    (Axis.AWAY_OFFENSE, Axis.AWAY_DEFENSE),
    (Axis.HOME_OFFENSE, Axis.HOME_DEFENSE),
]):
    with col:
        for axis in side_axes:
            widget_key = SLIDER_WIDGET_KEYS[axis]
            if widget_key not in st.session_state:
                st.session_state[widget_key] = session.slider_widget_value(axis)
            value = st.slider(
                AXIS_LABELS[axis],
                min_value=float(GRADE_MIN),
                max_value=float(GRADE_MAX),
                step=1.0,
                key=widget_key,
                disabled=not session.has_baseline,
            )
            session.apply_widget_value(axis, value)

if session.has_baseline:
    # Callback runs before the next script pass, so widget state is still writable
    st.button("Reset to Baseline", type="secondary", on_click=_reset_sliders, args=(session,))

# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
if session.has_baseline and session.result is not None:
    baseline = session.baseline
    result = session.result

    st.markdown("---")
    st.subheader("Results")

    kpi1, kpi2, kpi3, kpi4 = st.columns(4)
    with kpi1:
        st.metric("Score", f"{result.away_score:.0f} – {result.home_score:.0f}")
    with kpi2:
        st.metric("Spread (home − away)", f"{result.spread:+.1f}")
    with kpi3:
        st.metric("Total", f"{result.total:.1f}")
    with kpi4:
        st.metric("Home Win", f"{result.home_win_probability * 100:.1f}%")

    card_col, bar_col = st.columns([1, 1])
    with card_col:
        st.html(_score_card(result, baseline))
    with bar_col:
        st.plotly_chart(
            _build_win_prob_bar(result, baseline.away_name or "Away", baseline.home_name or "Home"),
            use_container_width=True,
            config={"displayModeBar": False},
        )
        st.dataframe(_ratings_frame(baseline, session.sliders), hide_index=True, use_container_width=True)

    st.subheader("Sensitivity Analysis")
    sweep_axis_pick = st.selectbox(
        "Sweep slider",
        list(AXIS_LABELS.keys()),
        format_func=lambda a: AXIS_LABELS[a],
        key="vs_sweep_axis",
    )
    st.plotly_chart(
        _build_sensitivity_chart(baseline, session.sliders, sweep_axis_pick),
        use_container_width=True,
        config={"displayModeBar": False},
    )

    # Team detail lookups are cached per matchup key; a new selection drops them.
    with st.expander("Team Details"):
        cached = st.session_state.get(TEAM_DETAIL_KEY)
        if cached is None or cached[0] != session.key:
            cached = None
        if st.button("Load team details", type="secondary"):
            details = {}
            with st.spinner("Loading team details..."):
                for label, team in (("Away", session.away), ("Home", session.home)):
                    details[label] = fetch_team_detail(session.sport, team["id"])
            cached = (session.key, details)
            st.session_state[TEAM_DETAIL_KEY] = cached
        if cached is not None:
            detail_cols = st.columns(2)
            for col, (label, (data, error)) in zip(detail_cols, cached[1].items()):
                with col:
                    st.caption(label.upper())
                    if data is None:
                        st.warning(error)
                    else:
                        st.json(data, expanded=False)
