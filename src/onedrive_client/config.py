"""Client configuration loaded from environment variables."""

import os
from dataclasses import dataclass

DEFAULT_REDIRECT_URI = "https://login.microsoftonline.com/common/oauth2/nativeclient"
DEFAULT_AUTHORITY = "https://login.microsoftonline.com/common"
DEFAULT_SCOPES = ("Files.ReadWrite.All",)
DEFAULT_API_ROOT = "https://graph.microsoft.com/v1.0"


@dataclass(frozen=True)
class ClientConfig:
    """Centralized client configuration.

    Only the application (client) ID is required. Everything else has a
    default suited to a personal OneDrive and can be overridden via
    environment variables.
    """

    # Required: no default, fail at startup if missing
    client_id: str

    # Defaults provided, overridable via env
    redirect_uri: str = DEFAULT_REDIRECT_URI
    authority: str = DEFAULT_AUTHORITY
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    api_root: str = DEFAULT_API_ROOT
    request_timeout: float | None = None


def _parse_scopes(raw: str) -> tuple[str, ...]:
    return tuple(s.strip() for s in raw.split(",") if s.strip())


def _parse_timeout(raw: str) -> float | None:
    raw = raw.strip()
    return float(raw) if raw else None


def load_config() -> ClientConfig:
    """Construct a ClientConfig from environment variables.

    Required environment variables:
        OD_CLIENT_ID: Application (client) ID registered for the implicit grant.

    Optional environment variables (with defaults):
        OD_REDIRECT_URI: Redirect URI registered for the application.
        OD_AUTHORITY: OAuth2 authority the authorize endpoint lives under.
        OD_SCOPES: Comma separated scopes (default: Files.ReadWrite.All).
        OD_API_ROOT: REST API root every request path is appended to.
        OD_REQUEST_TIMEOUT: Per-request timeout in seconds (default: none).

    Returns:
        Configured ClientConfig instance.
    """
    return ClientConfig(
        client_id=os.environ["OD_CLIENT_ID"],
        redirect_uri=os.environ.get("OD_REDIRECT_URI", DEFAULT_REDIRECT_URI),
        authority=os.environ.get("OD_AUTHORITY", DEFAULT_AUTHORITY),
        scopes=_parse_scopes(os.environ.get("OD_SCOPES", ",".join(DEFAULT_SCOPES))),
        api_root=os.environ.get("OD_API_ROOT", DEFAULT_API_ROOT).rstrip("/"),
        request_timeout=_parse_timeout(os.environ.get("OD_REQUEST_TIMEOUT", "")),
    )
