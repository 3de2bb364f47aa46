import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

from config import (
    ANALYTICS_BASE_URL,
    AUTH_BASE_URL,
    CLIENT_IDS,
    LOGIN_PATH,
    REQUEST_TIMEOUT,
    SERVICES_COUNT_PATH,
)
from date_range import to_iso
from errors import (
    AuthenticationFailed,
    ClientFetchError,
    RequestFailed,
    TransportError,
    Unauthorized,
)

logger = logging.getLogger(__name__)

UNAUTHORIZED_STATUSES = (401, 403)

# ------------------------------------------------------------
# Login
# ------------------------------------------------------------

def login(username: str, password: str, timeout: float = REQUEST_TIMEOUT) -> str:
    """
    Exchange credentials for a bearer token.

    Any failure (transport, non-2xx, missing ``key``) raises
    AuthenticationFailed; the caller shows one generic message.
    """
    url = f"{AUTH_BASE_URL}{LOGIN_PATH}"
    try:
        resp = requests.post(
            url,
            json={"username": username, "password": password},
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.warning("Login request failed: %s", e)
        raise AuthenticationFailed() from e

    if not resp.ok:
        logger.warning("Login rejected for %r (status %s)", username, resp.status_code)
        raise AuthenticationFailed(resp.status_code)

    try:
        key = resp.json().get("key")
    except (ValueError, AttributeError) as e:
        raise AuthenticationFailed(resp.status_code) from e
    if not key:
        logger.warning("Login response for %r carried no key", username)
        raise AuthenticationFailed(resp.status_code)
    return key


# ------------------------------------------------------------
# Per-client services-count
# ------------------------------------------------------------

def fetch_client_report(client_id, from_date, to_date, token: str,
                        timeout: float = REQUEST_TIMEOUT) -> dict:
    """
    POST one services-count request for ``client_id``.

    Returns the decoded JSON object (an empty dict means no data). Raises
    Unauthorized on 401/403, RequestFailed on other non-2xx statuses and
    TransportError on connection problems or a body that is not a JSON object.
    """
    url = f"{ANALYTICS_BASE_URL}{SERVICES_COUNT_PATH}"
    body = {
        "client": str(client_id),
        "from_date": to_iso(from_date),
        "to_date": to_iso(to_date),
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Token {token}",
    }

    try:
        resp = requests.post(url, json=body, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        logger.error("Error fetching client %s: %s", client_id, e)
        raise TransportError(client_id, str(e)) from e

    if resp.status_code in UNAUTHORIZED_STATUSES:
        logger.warning("Client %s fetch rejected with status %s", client_id, resp.status_code)
        raise Unauthorized(client_id, resp.status_code)

    if not resp.ok:
        logger.error("Failed to fetch data for client %s. Status: %s", client_id, resp.status_code)
        raise RequestFailed(client_id, resp.status_code)

    try:
        payload = resp.json()
    except ValueError as e:
        logger.error("Client %s returned a body that is not JSON", client_id)
        raise TransportError(client_id, "response body is not valid JSON") from e

    if not isinstance(payload, dict):
        logger.error("Client %s returned %s instead of an object", client_id, type(payload).__name__)
        raise TransportError(client_id, "response body is not a JSON object")

    logger.info("Fetched client %s for %s..%s", client_id, body["from_date"], body["to_date"])
    return payload


# ------------------------------------------------------------
# Concurrent fetch with settle-all barrier
# ------------------------------------------------------------

@dataclass
class ClientResult:
    client_id: int
    payload: Optional[dict] = None
    error: Optional[ClientFetchError] = None

    @property
    def ok(self):
        return self.error is None


@dataclass
class FetchOutcome:
    results: Dict[int, ClientResult] = field(default_factory=dict)

    @property
    def unauthorized(self):
        return any(isinstance(r.error, Unauthorized) for r in self.results.values())

    @property
    def failures(self):
        return {cid: r.error for cid, r in self.results.items() if not r.ok}

    def payloads(self):
        """JSON-ready slots for a dcc.Store: client id (as str) -> payload or None."""
        return {str(cid): r.payload for cid, r in self.results.items()}


class FetchState:
    """
    The data slots and per-client pending flags owned by the dashboard view.

    ``is_fetching`` is the OR of the pending flags, so it only turns false
    once every client has settled.
    """

    def __init__(self, client_ids=CLIENT_IDS):
        self.client_ids = tuple(client_ids)
        self.slots = {cid: None for cid in self.client_ids}
        self.pending = {cid: False for cid in self.client_ids}

    def reset(self):
        for cid in self.client_ids:
            self.slots[cid] = None
            self.pending[cid] = True

    def settle(self, result: ClientResult):
        if result.ok:
            self.slots[result.client_id] = result.payload
        self.pending[result.client_id] = False

    def clear(self):
        for cid in self.client_ids:
            self.slots[cid] = None
            self.pending[cid] = False

    @property
    def is_fetching(self):
        return any(self.pending.values())


def fetch_all_clients(token, from_date, to_date, client_ids=CLIENT_IDS,
                      state: FetchState = None, on_settle=None,
                      timeout: float = REQUEST_TIMEOUT) -> FetchOutcome:
    """
    Fetch every client concurrently and wait for all of them to settle.

    The state is reset to all-absent/all-pending before launch. Each result
    is applied to ``state`` on the calling thread as soon as that client
    settles, then ``on_settle(result, state)`` runs. Errors are collected per
    client and never abort sibling requests.
    """
    client_ids = tuple(client_ids)
    state = state if state is not None else FetchState(client_ids)
    state.reset()
    results = {}

    with ThreadPoolExecutor(max_workers=len(client_ids) or 1) as executor:
        futures = {
            executor.submit(fetch_client_report, cid, from_date, to_date, token, timeout): cid
            for cid in client_ids
        }
        for future in as_completed(futures):
            cid = futures[future]
            try:
                result = ClientResult(cid, payload=future.result())
            except ClientFetchError as e:
                result = ClientResult(cid, error=e)
            except Exception as e:  # noqa: BLE001
                logger.exception("Unexpected failure fetching client %s", cid)
                result = ClientResult(cid, error=TransportError(cid, str(e)))

            results[cid] = result
            state.settle(result)
            if on_settle is not None:
                on_settle(result, state)

    outcome = FetchOutcome(results={cid: results[cid] for cid in client_ids})
    if outcome.unauthorized:
        logger.warning("Session rejected during fetch of %s", list(outcome.failures))
    return outcome
