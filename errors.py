"""
Error types for the verification usage dashboard.

Hierarchy:
    DashboardError
    ├── ValidationError
    ├── AuthenticationFailed
    └── ClientFetchError
        ├── Unauthorized
        ├── RequestFailed
        └── TransportError

Per-client fetch errors are raised by ``data_loader.fetch_client_report`` and
collected as values by ``data_loader.fetch_all_clients``; only the router
reacts to ``Unauthorized``.
"""


class DashboardError(Exception):
    """Base exception for all dashboard errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


class ValidationError(DashboardError):
    """Missing or out-of-bounds date range. Shown inline, no fetch is made."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_RANGE")


class AuthenticationFailed(DashboardError):
    """Login rejected or login endpoint unreachable."""

    def __init__(self, status_code: int = None):
        self.status_code = status_code
        super().__init__(
            "Login failed. Please check credentials.",
            code="AUTH_FAILED", details={"status_code": status_code},
        )


# --- Per-client fetch errors ---

class ClientFetchError(DashboardError):
    """Base class for failures scoped to one client's request."""

    def __init__(self, client_id, message: str, code: str = "FETCH_ERROR", **details):
        self.client_id = client_id
        super().__init__(message, code=code, details={"client_id": client_id, **details})


class Unauthorized(ClientFetchError):
    """401/403 from the analytics endpoint. Terminal for the whole session."""

    def __init__(self, client_id, status_code: int = 401):
        self.status_code = status_code
        super().__init__(
            client_id,
            f"Session rejected while fetching client {client_id} (status {status_code})",
            code="UNAUTHORIZED", status_code=status_code,
        )


class RequestFailed(ClientFetchError):
    """Any other non-2xx status."""

    def __init__(self, client_id, status_code: int):
        self.status_code = status_code
        super().__init__(
            client_id,
            f"Failed to fetch data for client {client_id}. Status: {status_code}",
            code="REQUEST_FAILED", status_code=status_code,
        )


class TransportError(ClientFetchError):
    """Connection, timeout or unparseable body."""

    def __init__(self, client_id, reason: str):
        self.reason = reason
        super().__init__(
            client_id,
            f"Error fetching client {client_id}: {reason}",
            code="TRANSPORT_ERROR", reason=reason,
        )
