"""
Session context and auth gate.

The browser keeps ``{"token": ..., "username": ...}`` in a session-scoped
``dcc.Store``; callbacks wrap that dict in a ``SessionContext`` instead of
reading the store contents ad hoc.
"""
import logging
from enum import Enum

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USERNAME_KEY = "username"


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SessionContext:
    """Narrow view over the stored session: get/set/clear token and username."""

    def __init__(self, data=None):
        data = data if isinstance(data, dict) else {}
        self._token = data.get(TOKEN_KEY) or None
        self._username = data.get(USERNAME_KEY) or None

    def get_token(self):
        return self._token

    def get_username(self):
        return self._username

    def set(self, token, username):
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token
        self._username = username or None

    def clear(self):
        self._token = None
        self._username = None

    @property
    def is_authenticated(self):
        return bool(self._token)

    def to_dict(self):
        """Value to write back to the store. ``None`` removes it entirely."""
        if not self._token:
            return None
        return {TOKEN_KEY: self._token, USERNAME_KEY: self._username}


def resolve_auth_state(session: SessionContext, allowed_usernames=None) -> AuthState:
    """
    The check run on every protected page load, before anything renders.

    A token is required. When ``allowed_usernames`` is non-empty the stored
    username must also be one of them.
    """
    if not session.is_authenticated:
        return AuthState.UNAUTHENTICATED
    if allowed_usernames and session.get_username() not in allowed_usernames:
        logger.warning("User %r is not allowed on this page", session.get_username())
        return AuthState.UNAUTHENTICATED
    return AuthState.AUTHENTICATED


LOGIN_PAGE = "/"
HOME_PAGE = "/dashboard"


def resolve_route(pathname, session: SessionContext, protected_paths):
    """
    Decide which page to render and whether to redirect.

    ``protected_paths`` maps path -> allowed-username set (empty/None for any
    authenticated user). Returns ``(page_path, redirect_to)``; ``redirect_to``
    is None when the URL stays as it is and ``page_path`` is None for an
    unknown path.
    """
    path = pathname or LOGIN_PAGE
    if path == LOGIN_PAGE:
        if session.is_authenticated:
            return HOME_PAGE, HOME_PAGE
        return LOGIN_PAGE, None

    if path not in protected_paths:
        return None, None

    state = resolve_auth_state(session, protected_paths.get(path))
    if state is AuthState.AUTHENTICATED:
        return path, None
    if session.is_authenticated:
        # Signed in but not allowed on this page
        return HOME_PAGE, HOME_PAGE
    return LOGIN_PAGE, LOGIN_PAGE
