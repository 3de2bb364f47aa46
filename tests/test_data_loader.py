"""Tests for the remote data client."""

import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

import data_loader
from data_loader import FetchState, fetch_all_clients, fetch_client_report, login
from errors import AuthenticationFailed, RequestFailed, TransportError, Unauthorized


def _response(status=200, payload=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    if json_error:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload if payload is not None else {}
    return resp


def _by_client(responses):
    """side_effect for requests.post that answers per client id in the body."""
    def post(url, json=None, headers=None, timeout=None):
        outcome = responses[json["client"]]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
    return post


class TestFetchClientReport:
    def test_request_shape(self):
        with patch("data_loader.requests.post", return_value=_response(payload={"total_count": 3})) as post:
            payload = fetch_client_report(2, "2025-04-01", "2025-04-30", "abc123")

        assert payload == {"total_count": 3}
        args, kwargs = post.call_args
        assert args[0].endswith("/services-count/")
        assert kwargs["json"] == {"client": "2", "from_date": "2025-04-01", "to_date": "2025-04-30"}
        assert kwargs["headers"]["Authorization"] == "Token abc123"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == data_loader.REQUEST_TIMEOUT

    def test_empty_object_is_valid(self):
        with patch("data_loader.requests.post", return_value=_response(payload={})):
            assert fetch_client_report(1, "2025-04-01", "2025-04-02", "t") == {}

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_rejection(self, status):
        with patch("data_loader.requests.post", return_value=_response(status)):
            with pytest.raises(Unauthorized) as exc:
                fetch_client_report(1, "2025-04-01", "2025-04-02", "t")
        assert exc.value.status_code == status
        assert exc.value.client_id == 1

    @pytest.mark.parametrize("status", [400, 404, 500, 502])
    def test_other_failures(self, status):
        with patch("data_loader.requests.post", return_value=_response(status)):
            with pytest.raises(RequestFailed) as exc:
                fetch_client_report(3, "2025-04-01", "2025-04-02", "t")
        assert exc.value.status_code == status
        assert exc.value.client_id == 3

    def test_connection_error(self):
        with patch("data_loader.requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(TransportError):
                fetch_client_report(1, "2025-04-01", "2025-04-02", "t")

    def test_timeout(self):
        with patch("data_loader.requests.post", side_effect=requests.Timeout("slow")):
            with pytest.raises(TransportError):
                fetch_client_report(1, "2025-04-01", "2025-04-02", "t")

    def test_invalid_json(self):
        with patch("data_loader.requests.post", return_value=_response(json_error=True)):
            with pytest.raises(TransportError):
                fetch_client_report(1, "2025-04-01", "2025-04-02", "t")

    def test_non_object_json(self):
        with patch("data_loader.requests.post", return_value=_response(payload=[1, 2])):
            with pytest.raises(TransportError):
                fetch_client_report(1, "2025-04-01", "2025-04-02", "t")


class TestFetchAllClients:
    def test_all_succeed(self):
        responses = {
            "1": _response(payload={"total_count": 1}),
            "2": _response(payload={"total_count": 2}),
            "3": _response(payload={"total_count": 3}),
        }
        with patch("data_loader.requests.post", side_effect=_by_client(responses)):
            outcome = fetch_all_clients("t", "2025-04-01", "2025-04-30")

        assert list(outcome.results) == [1, 2, 3]
        assert outcome.unauthorized is False
        assert outcome.failures == {}
        assert outcome.payloads() == {"1": {"total_count": 1}, "2": {"total_count": 2}, "3": {"total_count": 3}}

    def test_unauthorized_client_does_not_block_siblings(self):
        responses = {
            "1": _response(payload={"total_count": 10}),
            "2": _response(401),
            "3": _response(payload={"total_count": 30}),
        }
        state = FetchState()
        with patch("data_loader.requests.post", side_effect=_by_client(responses)):
            outcome = fetch_all_clients("t", "2025-04-01", "2025-04-30", state=state)

        assert outcome.unauthorized is True
        assert isinstance(outcome.failures[2], Unauthorized)
        assert state.slots == {1: {"total_count": 10}, 2: None, 3: {"total_count": 30}}
        assert state.is_fetching is False

    def test_per_client_failures_are_scoped(self):
        responses = {
            "1": _response(500),
            "2": requests.ConnectionError("down"),
            "3": _response(payload={"total_count": 3}),
        }
        with patch("data_loader.requests.post", side_effect=_by_client(responses)):
            outcome = fetch_all_clients("t", "2025-04-01", "2025-04-30")

        assert outcome.unauthorized is False
        assert isinstance(outcome.failures[1], RequestFailed)
        assert isinstance(outcome.failures[2], TransportError)
        assert outcome.payloads() == {"1": None, "2": None, "3": {"total_count": 3}}

    def test_unexpected_exception_becomes_transport_error(self):
        responses = {
            "1": RuntimeError("boom"),
            "2": _response(payload={}),
            "3": _response(payload={}),
        }
        with patch("data_loader.requests.post", side_effect=_by_client(responses)):
            outcome = fetch_all_clients("t", "2025-04-01", "2025-04-30")
        assert isinstance(outcome.failures[1], TransportError)
        assert outcome.results[2].ok and outcome.results[3].ok

    def test_requests_run_concurrently(self):
        # Every call blocks until all three have started; a sequential fetch would time out here
        barrier = threading.Barrier(3, timeout=5)

        def post(url, json=None, headers=None, timeout=None):
            barrier.wait()
            return _response(payload={"client_name": json["client"]})

        with patch("data_loader.requests.post", side_effect=post):
            outcome = fetch_all_clients("t", "2025-04-01", "2025-04-30")
        assert outcome.failures == {}

    def test_fetching_flag_clears_only_after_all_settle(self):
        release = {cid: threading.Event() for cid in ("1", "2", "3")}

        def post(url, json=None, headers=None, timeout=None):
            release[json["client"]].wait(timeout=5)
            if json["client"] == "2":
                return _response(500)
            return _response(payload={"total_count": int(json["client"])})

        seen = []

        def on_settle(result, state):
            seen.append((result.client_id, state.is_fetching, dict(state.pending)))
            # Let the next client finish only after this one has been applied
            nxt = {1: "3", 3: "2"}.get(result.client_id)
            if nxt:
                release[nxt].set()

        state = FetchState()
        release["1"].set()
        with patch("data_loader.requests.post", side_effect=post):
            fetch_all_clients("t", "2025-04-01", "2025-04-30", state=state, on_settle=on_settle)

        assert [cid for cid, _, _ in seen] == [1, 3, 2]
        assert [flag for _, flag, _ in seen] == [True, True, False]
        assert seen[0][2] == {1: False, 2: True, 3: True}
        assert state.slots == {1: {"total_count": 1}, 2: None, 3: {"total_count": 3}}

    def test_new_fetch_resets_previous_slots(self):
        state = FetchState()
        state.slots = {1: {"old": 1}, 2: {"old": 2}, 3: {"old": 3}}
        responses = {"1": _response(500), "2": _response(500), "3": _response(payload={"new": 3})}
        with patch("data_loader.requests.post", side_effect=_by_client(responses)):
            fetch_all_clients("t", "2025-04-01", "2025-04-30", state=state)
        assert state.slots == {1: None, 2: None, 3: {"new": 3}}


class TestFetchState:
    def test_reset_marks_everything_pending(self):
        state = FetchState()
        assert state.is_fetching is False
        state.reset()
        assert state.is_fetching is True
        assert state.slots == {1: None, 2: None, 3: None}

    def test_clear(self):
        state = FetchState()
        state.reset()
        state.clear()
        assert state.is_fetching is False


class TestLogin:
    def test_returns_key(self):
        with patch("data_loader.requests.post", return_value=_response(payload={"key": "tok"})) as post:
            assert login("afzal", "secret") == "tok"
        args, kwargs = post.call_args
        assert args[0].endswith("/rest-auth/login/")
        assert kwargs["json"] == {"username": "afzal", "password": "secret"}

    def test_rejected(self):
        with patch("data_loader.requests.post", return_value=_response(400)):
            with pytest.raises(AuthenticationFailed) as exc:
                login("afzal", "wrong")
        assert exc.value.message == "Login failed. Please check credentials."

    def test_server_error_looks_the_same(self):
        with patch("data_loader.requests.post", return_value=_response(500)):
            with pytest.raises(AuthenticationFailed):
                login("afzal", "secret")

    def test_missing_key(self):
        with patch("data_loader.requests.post", return_value=_response(payload={})):
            with pytest.raises(AuthenticationFailed):
                login("afzal", "secret")

    def test_transport_failure(self):
        with patch("data_loader.requests.post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(AuthenticationFailed):
                login("afzal", "secret")
