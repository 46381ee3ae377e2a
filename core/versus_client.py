"""
core/versus_client.py — Versus Sports Simulator API client
============================================================
All upstream Versus API calls live here. No math, no UI, no file I/O.

Responsibilities:
- Authenticate with the Versus API (app id + key from environment)
- List teams for a sport
- Look up a single team (Team Details panel on the matchup page)
- Run the baseline matchup simulation
- Exponential backoff on transient failures (max 3 retries)

Every public fetch returns (payload, error_message):
    payload is None on failure, error_message is "" on success.
Nothing here raises for transport or HTTP errors; callers decide what to
show and must leave their existing state untouched when payload is None.

Endpoints (relative to VERSUS_API_BASE):
    GET  /teams?sport={sport}
    GET  /teams/{sport}/{team}
    POST /simulation   {sport, awayTeamId, homeTeamId}

NEVER hardcode credentials. Use VERSUS_APP_ID / VERSUS_API_KEY.
"""

import logging
import os
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://www.versussportssimulator.com/api/v1"
REQUEST_TIMEOUT: int = 15

# Sport code → display label
SPORTS: dict[str, str] = {
    "nfl":                "NFL",
    "nba":                "NBA",
    "college-football":   "College Football",
    "college-basketball": "College Basketball",
}

# 4xx codes that will never succeed on retry
_PERMANENT_STATUS: frozenset = frozenset({400, 401, 403, 404, 422})


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def _config_value(name: str) -> Optional[str]:
    """Environment first, then Streamlit secrets (Streamlit Cloud deployments)."""
    value = os.environ.get(name)
    if value:
        return value

    try:
        import streamlit as st
        if hasattr(st, "secrets") and name in st.secrets:
            return st.secrets[name]
    except (ImportError, Exception):
        pass

    return None


def get_api_base() -> str:
    """Base URL for the Versus API, without trailing slash."""
    return (_config_value("VERSUS_API_BASE") or DEFAULT_API_BASE).rstrip("/")


def get_credentials() -> Optional[tuple[str, str]]:
    """
    Load (app_id, api_key). Never hardcode.

    Returns None if either is missing — callers must handle gracefully.
    """
    app_id = _config_value("VERSUS_APP_ID")
    api_key = _config_value("VERSUS_API_KEY")
    if not app_id or not api_key:
        return None
    return app_id, api_key


def _headers(app_id: str, api_key: str) -> dict:
    return {
        "app-id": app_id,
        "api-key": api_key,
        "Content-Type": "application/json",
        "cache-control": "no-cache",
    }


def is_supported_sport(sport: str) -> bool:
    """
    >>> is_supported_sport("college-football")
    True
    >>> is_supported_sport("nhl")
    False
    """
    return sport in SPORTS


# ---------------------------------------------------------------------------
# HTTP with exponential backoff
# ---------------------------------------------------------------------------

def _error_message(response: requests.Response) -> str:
    """Prefer the body's "error" field, else the raw text, else the status."""
    try:
        body = response.json()
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
    except ValueError:
        pass
    text = (response.text or "").strip()
    if text:
        return f"Versus API error: {response.status_code} - {text[:200]}"
    return f"Versus API error: {response.status_code}"


def _request_with_backoff(
    method: str,
    url: str,
    headers: dict,
    params: Optional[dict] = None,
    payload: Optional[dict] = None,
    max_retries: int = 3,
    base_delay: float = 1.0,
    session: Optional[requests.Session] = None,
) -> tuple[Optional[requests.Response], str]:
    """
    Perform a request, retrying 429 / 5xx / timeouts with doubling delay.

    Permanent 4xx responses are returned immediately as failures.

    Returns:
        (response, "") on HTTP 200, (None, error_message) otherwise.
    """
    requester = session or requests
    delay = base_delay
    last_error = ""

    for attempt in range(1, max_retries + 1):
        try:
            response = requester.request(
                method, url,
                headers=headers, params=params, json=payload,
                timeout=REQUEST_TIMEOUT,
            )
            if response.status_code == 200:
                return response, ""

            last_error = _error_message(response)
            if response.status_code == 401:
                logger.error("401 Unauthorized — check VERSUS_APP_ID / VERSUS_API_KEY")
                return None, last_error
            if response.status_code in _PERMANENT_STATUS:
                logger.warning("HTTP %d for %s: %s", response.status_code, url, last_error)
                return None, last_error
            if response.status_code == 429:
                logger.warning("429 Rate limited. Waiting %.1fs before retry.", delay * 2)
                time.sleep(delay * 2)
            else:
                logger.warning(
                    "Attempt %d/%d: HTTP %d for %s",
                    attempt, max_retries, response.status_code, url,
                )
        except requests.exceptions.Timeout:
            last_error = "Versus API timed out"
            logger.warning("Attempt %d/%d: Timeout for %s", attempt, max_retries, url)
        except requests.exceptions.ConnectionError:
            last_error = "Could not connect to the Versus API"
            logger.warning("Attempt %d/%d: Connection error for %s", attempt, max_retries, url)
        except requests.exceptions.RequestException as exc:
            last_error = f"Versus API request failed: {exc}"
            logger.warning("Attempt %d/%d: Request error: %s", attempt, max_retries, exc)

        if attempt < max_retries:
            time.sleep(delay)
            delay *= 2

    logger.error("All %d attempts failed for %s", max_retries, url)
    return None, last_error or "Versus API request failed"


def _decode_json(response: requests.Response, context: str) -> tuple[Optional[object], str]:
    try:
        return response.json(), ""
    except ValueError as exc:
        logger.error("JSON parse error for %s: %s", context, exc)
        return None, f"Invalid JSON from Versus API ({context})"


# ---------------------------------------------------------------------------
# Team catalog
# ---------------------------------------------------------------------------

def normalize_team(entry: dict) -> Optional[dict]:
    """
    Reduce a raw team entry to {id, name, abbreviation}.

    Returns None for entries without an id or name.

    >>> normalize_team({"id": 12, "name": "Detroit Lions", "abbreviation": "DET"})
    {'id': '12', 'name': 'Detroit Lions', 'abbreviation': 'DET'}
    >>> normalize_team({"name": "No Id"}) is None
    True
    """
    if not isinstance(entry, dict):
        return None
    team_id = entry.get("id")
    name = entry.get("name")
    if team_id in (None, "") or not name:
        return None
    return {
        "id": str(team_id),
        "name": str(name),
        "abbreviation": entry.get("abbreviation") or None,
    }


def fetch_teams(
    sport: str,
    session: Optional[requests.Session] = None,
) -> tuple[Optional[list[dict]], str]:
    """
    Fetch the team catalog for a sport.

    Accepts either a bare list or {"teams": [...]} from the upstream.
    Malformed entries are dropped.

    Returns:
        (teams, "") on success — teams may be empty.
        (None, error_message) on failure.
    """
    if not is_supported_sport(sport):
        return None, f"Unsupported sport: {sport}"
    creds = get_credentials()
    if creds is None:
        logger.error("No Versus credentials found. Cannot fetch teams.")
        return None, "Missing VERSUS_APP_ID / VERSUS_API_KEY"

    url = f"{get_api_base()}/teams"
    response, error = _request_with_backoff(
        "GET", url, _headers(*creds), params={"sport": sport}, session=session,
    )
    if response is None:
        return None, error

    data, error = _decode_json(response, f"teams/{sport}")
    if error:
        return None, error
    if isinstance(data, dict):
        data = data.get("teams", [])
    if not isinstance(data, list):
        logger.warning("Unexpected teams format for %s: %s", sport, type(data))
        return None, "Unexpected teams response from Versus API"

    teams = [t for t in (normalize_team(e) for e in data) if t is not None]
    if not teams:
        logger.warning("No teams found in response for %s", sport)
    logger.info("Fetched %d teams for %s", len(teams), sport)
    return teams, ""


def fetch_team_detail(
    sport: str,
    team: str,
    session: Optional[requests.Session] = None,
) -> tuple[Optional[dict], str]:
    """
    Fetch a single team's detail record (GET /teams/{sport}/{team}).

    `team` is the upstream team id or slug. Missing team is rejected
    without a network call.
    """
    if not team:
        return None, "Missing required parameter: team"
    if not is_supported_sport(sport):
        return None, f"Unsupported sport: {sport}"
    creds = get_credentials()
    if creds is None:
        return None, "Missing VERSUS_APP_ID / VERSUS_API_KEY"

    url = f"{get_api_base()}/teams/{sport}/{team}"
    response, error = _request_with_backoff("GET", url, _headers(*creds), session=session)
    if response is None:
        return None, error

    data, error = _decode_json(response, f"teams/{sport}/{team}")
    if error:
        return None, error
    if not isinstance(data, dict):
        return None, "Unexpected team response from Versus API"
    return data, ""


# ---------------------------------------------------------------------------
# Baseline simulation
# ---------------------------------------------------------------------------

def run_simulation(
    sport: str,
    away_team_id: str,
    home_team_id: str,
    session: Optional[requests.Session] = None,
) -> tuple[Optional[dict], str]:
    """
    Run the authoritative remote simulation for one matchup.

    Returns the raw response dict:
        {team: [{name, abbreviation, venue, score, winProbability,
                 offensiveRating, defensiveRating, offensiveNumericGrade,
                 defensiveNumericGrade, homeFieldAdvantage}, ...],
         outcome: {pointSpread, totalPoints, winProbability},
         offensiveRange, defensiveRange}

    Parse it with core.baseline_parser.parse_simulation_response().
    """
    if not away_team_id or not home_team_id:
        return None, "Please select both away and home teams"
    if not is_supported_sport(sport):
        return None, f"Unsupported sport: {sport}"
    creds = get_credentials()
    if creds is None:
        logger.error("No Versus credentials found. Cannot run simulation.")
        return None, "Missing VERSUS_APP_ID / VERSUS_API_KEY"

    body = {"sport": sport, "awayTeamId": away_team_id, "homeTeamId": home_team_id}
    url = f"{get_api_base()}/simulation"
    logger.info("Running simulation: %s", body)
    response, error = _request_with_backoff(
        "POST", url, _headers(*creds), payload=body, session=session,
    )
    if response is None:
        return None, error or "Simulation failed"

    data, error = _decode_json(response, "simulation")
    if error:
        return None, error
    if not isinstance(data, dict):
        return None, "Unexpected simulation response from Versus API"
    return data, ""
