"""
tests/test_versus_client.py — Versus Matchup Simulator
=======================================================
Unit tests for core/versus_client.py.

These tests do NOT make real API calls — all network calls are mocked
through an injected session.
Run: pytest tests/test_versus_client.py -v
"""

import os
import sys
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import core.versus_client as vc
from core.versus_client import (
    DEFAULT_API_BASE,
    SPORTS,
    fetch_team_detail,
    fetch_teams,
    get_api_base,
    get_credentials,
    is_supported_sport,
    normalize_team,
    run_simulation,
)

CREDS_ENV = {"VERSUS_APP_ID": "app123", "VERSUS_API_KEY": "key456"}


def make_response(data, status_code: int = 200, text: str = "") -> MagicMock:
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = data
    mock_resp.text = text
    return mock_resp


def make_session(*responses) -> MagicMock:
    session = MagicMock()
    session.request.side_effect = list(responses)
    return session


@pytest.fixture(autouse=True)
def no_sleep():
    """Backoff sleeps are skipped in every test."""
    with patch("core.versus_client.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def creds():
    with patch.dict(os.environ, CREDS_ENV):
        yield


@pytest.fixture
def no_creds():
    with patch.object(vc, "_config_value", return_value=None):
        yield


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfig:
    def test_credentials_from_env(self, creds):
        assert get_credentials() == ("app123", "key456")

    def test_credentials_none_when_missing(self, no_creds):
        assert get_credentials() is None

    def test_default_api_base(self, no_creds):
        assert get_api_base() == DEFAULT_API_BASE

    def test_api_base_override_strips_slash(self):
        with patch.dict(os.environ, {"VERSUS_API_BASE": "http://localhost:9000/api/"}):
            assert get_api_base() == "http://localhost:9000/api"

    def test_supported_sports(self):
        assert set(SPORTS) == {"nfl", "nba", "college-football", "college-basketball"}
        assert is_supported_sport("nba") is True
        assert is_supported_sport("mlb") is False


# ---------------------------------------------------------------------------
# normalize_team
# ---------------------------------------------------------------------------

class TestNormalizeTeam:
    def test_id_stringified(self):
        assert normalize_team({"id": 7, "name": "Duke"})["id"] == "7"

    def test_missing_abbreviation_is_none(self):
        assert normalize_team({"id": "a", "name": "Duke"})["abbreviation"] is None

    def test_rejects_missing_name(self):
        assert normalize_team({"id": "a"}) is None

    def test_rejects_non_dict(self):
        assert normalize_team("Duke") is None


# ---------------------------------------------------------------------------
# fetch_teams
# ---------------------------------------------------------------------------

class TestFetchTeams:
    def test_returns_teams_on_success(self, creds):
        session = make_session(make_response([
            {"id": 1, "name": "Detroit Lions", "abbreviation": "DET"},
            {"id": 2, "name": "Chicago Bears"},
        ]))
        teams, error = fetch_teams("nfl", session=session)
        assert error == ""
        assert [t["name"] for t in teams] == ["Detroit Lions", "Chicago Bears"]

    def test_request_shape(self, creds):
        session = make_session(make_response([]))
        fetch_teams("nba", session=session)
        args, kwargs = session.request.call_args
        assert args[0] == "GET"
        assert args[1].endswith("/teams")
        assert kwargs["params"] == {"sport": "nba"}
        assert kwargs["headers"]["app-id"] == "app123"
        assert kwargs["headers"]["api-key"] == "key456"
        assert kwargs["headers"]["cache-control"] == "no-cache"

    def test_accepts_wrapped_list(self, creds):
        session = make_session(make_response({"teams": [{"id": 1, "name": "Duke"}]}))
        teams, _ = fetch_teams("college-basketball", session=session)
        assert teams == [{"id": "1", "name": "Duke", "abbreviation": None}]

    def test_drops_malformed_entries(self, creds):
        session = make_session(make_response([{"id": 1}, {"id": 2, "name": "Duke"}, "junk"]))
        teams, _ = fetch_teams("college-basketball", session=session)
        assert len(teams) == 1

    def test_empty_catalog_is_success(self, creds):
        session = make_session(make_response([]))
        teams, error = fetch_teams("nfl", session=session)
        assert teams == []
        assert error == ""

    def test_unsupported_sport_no_network(self, creds):
        session = MagicMock()
        teams, error = fetch_teams("curling", session=session)
        assert teams is None
        assert "curling" in error
        session.request.assert_not_called()

    def test_missing_credentials(self, no_creds):
        session = MagicMock()
        teams, error = fetch_teams("nfl", session=session)
        assert teams is None
        assert "VERSUS_API_KEY" in error
        session.request.assert_not_called()

    def test_unexpected_format_is_failure(self, creds):
        session = make_session(make_response("oops"))
        teams, error = fetch_teams("nfl", session=session)
        assert teams is None
        assert error

    def test_invalid_json_is_failure(self, creds):
        bad = make_response(None)
        bad.json.side_effect = ValueError("no json")
        session = make_session(bad)
        teams, error = fetch_teams("nfl", session=session)
        assert teams is None
        assert "Invalid JSON" in error


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------

class TestBackoff:
    def test_retries_server_error_then_succeeds(self, creds, no_sleep):
        session = make_session(
            make_response(None, status_code=503, text="busy"),
            make_response([{"id": 1, "name": "Duke"}]),
        )
        teams, error = fetch_teams("nba", session=session)
        assert len(teams) == 1
        assert session.request.call_count == 2
        no_sleep.assert_called_once_with(1.0)

    def test_gives_up_after_three_timeouts(self, creds, no_sleep):
        session = MagicMock()
        session.request.side_effect = requests.exceptions.Timeout()
        teams, error = fetch_teams("nba", session=session)
        assert teams is None
        assert "timed out" in error
        assert session.request.call_count == 3
        assert no_sleep.call_count == 2

    def test_connection_error_message(self, creds, no_sleep):
        session = MagicMock()
        session.request.side_effect = requests.exceptions.ConnectionError()
        _, error = fetch_teams("nba", session=session)
        assert "connect" in error
        assert no_sleep.call_count == 2

    def test_401_not_retried(self, creds):
        session = make_session(make_response({"error": "bad key"}, status_code=401))
        teams, error = fetch_teams("nfl", session=session)
        assert teams is None
        assert error == "bad key"
        assert session.request.call_count == 1

    def test_404_not_retried(self, creds):
        session = MagicMock()
        session.request.return_value = make_response({}, status_code=404, text="not found")
        teams, error = fetch_teams("nfl", session=session)
        assert teams is None
        assert "404" in error
        assert session.request.call_count == 1

    def test_429_waits_double(self, creds, no_sleep):
        session = make_session(
            make_response({}, status_code=429),
            make_response([]),
        )
        fetch_teams("nfl", session=session)
        assert no_sleep.call_args_list[0].args == (2.0,)


# ---------------------------------------------------------------------------
# fetch_team_detail
# ---------------------------------------------------------------------------

class TestFetchTeamDetail:
    def test_missing_team_rejected(self, creds):
        session = MagicMock()
        data, error = fetch_team_detail("nfl", "", session=session)
        assert data is None
        assert error == "Missing required parameter: team"
        session.request.assert_not_called()

    def test_url_contains_sport_and_team(self, creds):
        session = make_session(make_response({"name": "Detroit Lions"}))
        data, error = fetch_team_detail("nfl", "detroit-lions", session=session)
        assert data == {"name": "Detroit Lions"}
        assert session.request.call_args.args[1].endswith("/teams/nfl/detroit-lions")

    def test_non_dict_is_failure(self, creds):
        session = make_session(make_response([1, 2]))
        data, error = fetch_team_detail("nfl", "x", session=session)
        assert data is None
        assert error


# ---------------------------------------------------------------------------
# run_simulation
# ---------------------------------------------------------------------------

class TestRunSimulation:
    def test_posts_body(self, creds):
        session = make_session(make_response({"team": []}))
        data, error = run_simulation("nfl", "8", "3", session=session)
        assert data == {"team": []}
        assert error == ""
        args, kwargs = session.request.call_args
        assert args[0] == "POST"
        assert args[1].endswith("/simulation")
        assert kwargs["json"] == {"sport": "nfl", "awayTeamId": "8", "homeTeamId": "3"}

    def test_error_body_surfaces(self, creds):
        session = make_session(make_response({"error": "Team not found"}, status_code=400))
        data, error = run_simulation("nfl", "8", "999", session=session)
        assert data is None
        assert error == "Team not found"

    def test_requires_both_teams(self, creds):
        session = MagicMock()
        data, error = run_simulation("nfl", "8", "", session=session)
        assert data is None
        assert "both" in error
        session.request.assert_not_called()

    def test_missing_credentials(self, no_creds):
        data, error = run_simulation("nfl", "8", "3", session=MagicMock())
        assert data is None
        assert error
