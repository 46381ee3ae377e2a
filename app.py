"""
app.py — Versus Matchup Simulator Streamlit Entry Point

Multi-page navigation via st.navigation() (Streamlit 1.36+).
All matchup state lives in a per-session MatchupSession (core/matchup_session.py).

Design principles:
- Dark terminal aesthetic: #0e1117 bg, amber accent (#f59e0b)
- st.html() for custom cards (not st.markdown — style tags sandboxed)
- Slider moves recompute locally; only "Run Simulation" hits the network

Run: streamlit run app.py
"""

import logging
import sys
from pathlib import Path

import streamlit as st

# ---------------------------------------------------------------------------
# Path setup — allow 'from core.xxx import' regardless of cwd
# ---------------------------------------------------------------------------
ROOT = Path(__file__).parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# ---------------------------------------------------------------------------
# Logging setup — write to logs/app.log
# ---------------------------------------------------------------------------
LOG_DIR = ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "app.log"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config — must be first Streamlit call
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Versus Matchup Simulator",
    page_icon="🏈",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        "Get Help": None,
        "Report a bug": None,
        "About": "Versus Matchup Simulator — interactive rating what-ifs",
    },
)

# ---------------------------------------------------------------------------
# Global CSS injection — only what inline styles cannot do
# ---------------------------------------------------------------------------
st.markdown(
    """
    <style>
    [data-testid="stSidebar"] {
        background-color: #13161d;
    }
    .block-container {
        padding-top: 1.5rem;
        padding-bottom: 2rem;
    }
    [data-testid="stMetricValue"] {
        font-size: 1.6rem !important;
        font-weight: 700 !important;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# ---------------------------------------------------------------------------
# Sidebar — API status
# ---------------------------------------------------------------------------
with st.sidebar:
    st.html(
        """
        <div style="
            padding: 12px 0 8px 0;
            border-bottom: 1px solid #2d3139;
            margin-bottom: 12px;
        ">
            <span style="
                font-size: 1.1rem;
                font-weight: 700;
                color: #f59e0b;
                letter-spacing: 0.03em;
            ">VERSUS</span>
            <span style="
                font-size: 0.65rem;
                color: #6b7280;
                margin-left: 6px;
                letter-spacing: 0.1em;
                vertical-align: middle;
            ">SIMULATOR</span>
        </div>
        """
    )

    from core.rating_projector import GRADE_MAX, GRADE_MIN
    from core.versus_client import SPORTS, get_api_base, get_credentials

    has_creds = get_credentials() is not None
    dot_color = "#22c55e" if has_creds else "#ef4444"
    label = "API KEY OK" if has_creds else "NO API KEY"
    if not has_creds:
        logger.warning("VERSUS_APP_ID / VERSUS_API_KEY not configured")

    st.html(
        f"""
        <div style="
            background: #1a1d23;
            border: 1px solid #2d3139;
            border-radius: 6px;
            padding: 10px 12px;
            margin-bottom: 12px;
        ">
            <div style="display:flex; align-items:center; gap:6px; margin-bottom:6px;">
                <div style="
                    width:8px; height:8px; border-radius:50%;
                    background:{dot_color};
                    box-shadow: 0 0 6px {dot_color};
                "></div>
                <span style="
                    font-size:0.65rem; font-weight:600;
                    color:{dot_color}; letter-spacing:0.1em;
                ">{label}</span>
            </div>
            <div style="font-size:0.65rem; color:#6b7280; line-height:1.6; word-break:break-all;">
                {get_api_base()}
            </div>
        </div>
        """
    )

    st.markdown("---")
    st.markdown("SPORTS · " + " · ".join(SPORTS.values()))
    st.markdown(
        f"One remote run per matchup. Grades {GRADE_MIN}–{GRADE_MAX} move one "
        "side's score each: offense moves your own, defense the opponent's."
    )

# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
pages = [
    st.Page("pages/01_matchup_simulator.py", title="Matchup Simulator", icon="🎲", default=True),
]

pg = st.navigation(pages)
pg.run()
