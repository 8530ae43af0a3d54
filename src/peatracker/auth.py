import getpass
import json
from dataclasses import asdict, dataclass
from typing import Optional

import keyring
from keyring.errors import PasswordDeleteError
import requests

from .settings import Settings

# Constants
KEYRING_SERVICE = "peatracker"
MAX_LOGIN_ATTEMPTS = 3
LAST_EMAIL_KEY = "last_email"


class AuthError(Exception):
    """Raised when the remote store rejects credentials or tokens."""


@dataclass
class Session:
    """Authenticated remote-store session."""

    user_id: str
    email: str
    access_token: str
    refresh_token: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, text: str) -> "Session":
        data = json.loads(text)
        return cls(
            user_id=data["user_id"],
            email=data["email"],
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
        )


def _persist_session(session: Session) -> None:
    """Save session to keyring"""
    keyring.set_password(
        f"{KEYRING_SERVICE}.{session.email}", "session", session.to_json()
    )


def _get_username(username: Optional[str] = None, verbose: bool = False) -> str:
    """Resolve the account email: explicit, last one used, or asked for."""
    if username:
        return username

    last_email = keyring.get_password(KEYRING_SERVICE, LAST_EMAIL_KEY)
    if last_email:
        if verbose:
            print(f"Signing in to the remote store as {last_email}")
        return last_email

    return input("Remote store email: ").strip()


def _token_request(settings: Settings, grant_type: str, payload: dict) -> Session:
    """Call the token endpoint and build a session from its response.

    Raises:
        AuthError: if the credentials or refresh token are rejected
        requests.exceptions.RequestException: on network failures
    """
    resp = requests.post(
        f"{settings.supabase_url.rstrip('/')}/auth/v1/token",
        params={"grant_type": grant_type},
        headers={"apikey": settings.supabase_key, "Content-Type": "application/json"},
        json=payload,
        timeout=settings.request_timeout,
    )
    if resp.status_code in (400, 401, 403):
        raise AuthError(resp.json().get("error_description", "Authentication failed"))
    resp.raise_for_status()

    data = resp.json()
    user = data.get("user", {})
    return Session(
        user_id=user["id"],
        email=user.get("email", payload.get("email", "")),
        access_token=data["access_token"],
        refresh_token=data["refresh_token"],
    )


def _session_is_valid(settings: Settings, session: Session) -> bool:
    """Check the access token against the user endpoint."""
    resp = requests.get(
        f"{settings.supabase_url.rstrip('/')}/auth/v1/user",
        headers={
            "apikey": settings.supabase_key,
            "Authorization": f"Bearer {session.access_token}",
        },
        timeout=settings.request_timeout,
    )
    return resp.status_code == 200


def restore_session(
    settings: Settings, username: Optional[str] = None, verbose: bool = False
) -> Optional[Session]:
    """Restore a stored session without prompting. Returns None if not available/invalid.

    An expired access token is refreshed and the new session persisted.
    """
    if not settings.remote_enabled:
        return None

    username = username or keyring.get_password(KEYRING_SERVICE, LAST_EMAIL_KEY)
    if not username:
        return None

    session_json = keyring.get_password(f"{KEYRING_SERVICE}.{username}", "session")
    if not session_json:
        return None

    try:
        session = Session.from_json(session_json)
        if _session_is_valid(settings, session):
            if verbose:
                print("✓ Session is valid")
            return session

        if verbose:
            print("Access token expired, refreshing...")
        session = _token_request(
            settings, "refresh_token", {"refresh_token": session.refresh_token}
        )
        _persist_session(session)
        return session
    except (AuthError, requests.exceptions.RequestException, KeyError, ValueError) as e:
        if verbose:
            print(f"Existing session expired or invalid: {e}")
        return None


def _perform_login(
    settings: Settings, username: str, verbose: bool = False
) -> Optional[Session]:
    """Handle the password login flow. Returns a session or None on failure."""
    for _ in range(MAX_LOGIN_ATTEMPTS):
        password = getpass.getpass("Password: ")
        try:
            session = _token_request(
                settings, "password", {"email": username, "password": password}
            )
        except AuthError:
            print("✗ Login failed. Try again.")
            continue
        except (requests.exceptions.RequestException, KeyError, ValueError) as e:
            print(f"✗ An unexpected error occurred: {e}")
            return None

        _persist_session(session)
        # Cache the email after successful login
        keyring.set_password(KEYRING_SERVICE, LAST_EMAIL_KEY, username)
        if verbose:
            print("✓ Successfully authenticated")
        return session

    print("✗ Too many failed attempts.")
    return None


def get_authenticated_session(
    settings: Settings,
    force_login: bool = False,
    username: Optional[str] = None,
    verbose: bool = False,
) -> Optional[Session]:
    """
    Handle login with session persistence.
    Returns a Session or None if login failed/aborted.

    Args:
        settings: Settings holding the remote store URL and key.
        force_login: If True, force a new login even if a valid session exists.
        username: Optional email to use. If not provided, uses cached email or prompts.
        verbose: If True, print status messages during authentication.
    """
    if not settings.remote_enabled:
        print("Remote store is not configured.")
        return None

    username = _get_username(username, verbose=verbose)

    if not force_login:
        session = restore_session(settings, username, verbose=verbose)
        if session:
            return session

    if verbose:
        print("Creating new session...")
    return _perform_login(settings, username, verbose=verbose)


def logout(username: Optional[str] = None, clear_email: bool = False) -> None:
    """
    Forget the stored remote-store session.

    Args:
        username: Account email. Defaults to the last one used.
        clear_email: Also forget the last email used.
    """
    username = username or keyring.get_password(KEYRING_SERVICE, LAST_EMAIL_KEY)
    if not username:
        print("No cached session found.")
        return

    try:
        keyring.delete_password(f"{KEYRING_SERVICE}.{username}", "session")
    except PasswordDeleteError:
        print(f"No remote-store session stored for {username}")
    else:
        print(f"✓ Cleared session for {username}")

    if clear_email:
        try:
            keyring.delete_password(KEYRING_SERVICE, LAST_EMAIL_KEY)
        except PasswordDeleteError:
            return
        print("✓ Forgot last email used")
