"""OAuth2 implicit-grant sign-in producing a bearer access credential.

The flow points a browser surface at the authorize endpoint with
``response_type=token`` and waits until the surface reports the redirect.
Whoever hosts the surface (an embedded web view, a test, a user pasting the
final address) calls ``AuthenticationFlow.observe`` with every address it
navigates to and ``AuthenticationFlow.close`` if it is dismissed.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from collections.abc import Callable, Sequence
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, urlparse

import msal

from onedrive_client.errors import OneDriveError
from onedrive_client.graph.client import AUTH_SCHEME

if TYPE_CHECKING:
    from onedrive_client.config import ClientConfig

logger = logging.getLogger(__name__)

FIELD_ACCESS_TOKEN = "access_token"
FIELD_EXPIRES_IN = "expires_in"
FIELD_TOKEN_TYPE = "token_type"
FIELD_SCOPE = "scope"
FIELD_ERROR = "error"
FIELD_ERROR_DESCRIPTION = "error_description"


class AuthenticationIncomplete(OneDriveError):
    """Raised when the sign-in surface finished without an access token."""


@dataclass(frozen=True)
class AccessCredential:
    """Bearer token and the absolute time it stops being valid."""

    access_token: str
    expires_at: datetime
    token_type: str = "bearer"
    scope: str = ""

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(tz=UTC)) >= self.expires_at

    def authorization_header(self) -> str:
        return f"{AUTH_SCHEME} {self.access_token}"

    def __repr__(self) -> str:
        return f"AccessCredential(expires_at={self.expires_at.isoformat()}, scope={self.scope!r})"


def parse_redirect_uri(uri: str, now: datetime | None = None) -> AccessCredential:
    """Build an AccessCredential from the ``key=value&...`` fragment of a redirect.

    Args:
        uri: Final address the authorize endpoint redirected to.
        now: Reference time for the expiry; the current UTC time by default.

    Returns:
        The parsed credential.

    Raises:
        AuthenticationIncomplete: The fragment carries no access token.
    """
    fragment = urlparse(uri).fragment
    params = {key: values[0] for key, values in parse_qs(fragment).items()}

    token = params.get(FIELD_ACCESS_TOKEN)
    if not token:
        error = params.get(FIELD_ERROR, "no_access_token")
        description = params.get(FIELD_ERROR_DESCRIPTION, "redirect carried no access token")
        logger.warning("[parse_redirect_uri] no access token in redirect; error:%s", error)
        raise AuthenticationIncomplete(f"{error}: {description}")

    expires_in = int(params.get(FIELD_EXPIRES_IN) or 0)
    issued_at = now or datetime.now(tz=UTC)
    return AccessCredential(
        access_token=token,
        expires_at=issued_at + timedelta(seconds=expires_in),
        token_type=params.get(FIELD_TOKEN_TYPE, "bearer"),
        scope=params.get(FIELD_SCOPE, ""),
    )


class AuthenticationFlow:
    """Interactive implicit-grant sign-in against the Microsoft identity platform."""

    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: Sequence[str],
        authority: str,
        open_browser: Callable[[str], object] = webbrowser.open,
    ) -> None:
        """Initialise the MSAL public client application.

        Args:
            client_id: Application (client) ID.
            redirect_uri: Redirect URI registered for the application.
            scopes: Scopes to request.
            authority: Authority URL the authorize endpoint lives under.
            open_browser: Shows the authorize URL to the user.
        """
        self._app = msal.PublicClientApplication(client_id=client_id, authority=authority)
        self._redirect_uri = redirect_uri
        self._scopes = list(scopes)
        self._open_browser = open_browser
        self._lock = threading.Lock()
        self._redirect: Future[str] = Future()

    def authorization_url(self, state: str | None = None) -> str:
        """Return the authorize endpoint URL for a token (implicit) response."""
        return str(
            self._app.get_authorization_request_url(
                self._scopes,
                state=state,
                redirect_uri=self._redirect_uri,
                response_type="token",
            )
        )

    def observe(self, uri: str) -> bool:
        """Report an address the browser surface navigated to.

        Returns:
            True if ``uri`` is the redirect and completes the sign-in.
        """
        if not uri.startswith(self._redirect_uri):
            return False
        with self._lock:
            if not self._redirect.done():
                self._redirect.set_result(uri)
        return True

    def close(self) -> None:
        """Report that the browser surface was dismissed."""
        with self._lock:
            self._redirect.cancel()

    def get_token(self, timeout: float | None = None) -> AccessCredential:
        """Run the sign-in and block until the redirect is observed.

        Args:
            timeout: Seconds to wait for the redirect, None to wait forever.

        Returns:
            The access credential from the redirect fragment.

        A redirect or close reported before this call is honoured. The pending
        attempt is kept after a timeout, so a late redirect completes the next
        call; any finished attempt is replaced by a fresh one.

        Raises:
            AuthenticationIncomplete: The surface was closed, the wait timed
                out, or the redirect carried no access token.
        """
        redirect = self._redirect
        url = self.authorization_url()
        logger.info("[get_token] opening authorize endpoint")
        self._open_browser(url)
        try:
            uri = redirect.result(timeout=timeout)
        except CancelledError as exc:
            raise AuthenticationIncomplete("sign-in closed before the redirect") from exc
        except TimeoutError as exc:
            raise AuthenticationIncomplete("timed out waiting for the redirect") from exc
        finally:
            with self._lock:
                if redirect.done() and self._redirect is redirect:
                    self._redirect = Future()

        credential = parse_redirect_uri(uri)
        logger.info("[get_token] signed in; expires_at:%s", credential.expires_at.isoformat())
        return credential


def authentication_flow_from_config(
    config: ClientConfig,
    open_browser: Callable[[str], object] = webbrowser.open,
) -> AuthenticationFlow:
    """Construct an AuthenticationFlow from client configuration.

    Args:
        config: Client configuration instance.
        open_browser: Shows the authorize URL to the user.

    Returns:
        Configured AuthenticationFlow instance.
    """
    return AuthenticationFlow(
        client_id=config.client_id,
        redirect_uri=config.redirect_uri,
        scopes=config.scopes,
        authority=config.authority,
        open_browser=open_browser,
    )
