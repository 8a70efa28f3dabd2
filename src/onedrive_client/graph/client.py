"""OneDrive REST API client issuing one authenticated request per call."""

from __future__ import annotations

import json
import logging
from http.client import HTTPException
from typing import TYPE_CHECKING, Any, Final
from urllib import request as urllib_request
from urllib.error import HTTPError

from onedrive_client.config import DEFAULT_API_ROOT
from onedrive_client.errors import OneDriveError

if TYPE_CHECKING:
    from onedrive_client.config import ClientConfig

logger = logging.getLogger(__name__)

# Literal scheme the service has always been sent; kept byte-for-byte.
AUTH_SCHEME = "BEARER"

METHODS = frozenset({"GET", "PUT", "POST", "PATCH", "DELETE"})
BODY_STATUSES = frozenset({200, 201})
NO_CONTENT_STATUS = 204


class ApiError(OneDriveError):
    """Raised when the API answers with an unexpected status or cannot be reached.

    A transport failure (DNS, refused connection, timeout) carries
    ``status_code`` 0.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"OneDrive API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class _NoContent:
    """Result of a request the server answered with 204 No Content."""

    _instance: _NoContent | None = None

    def __new__(cls) -> _NoContent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT: Final = _NoContent()


def _error_detail(exc: HTTPError) -> str:
    raw = exc.read()
    try:
        return str(json.loads(raw).get("error", {}).get("message", exc.reason))
    except (ValueError, AttributeError):
        return str(exc.reason)


class ApiClient:
    """Issues single requests against the OneDrive REST API.

    The client holds no token; each call receives the bearer token so that a
    single client can serve any number of credentials.
    """

    def __init__(self, api_root: str = DEFAULT_API_ROOT, timeout: float | None = None) -> None:
        """Initialise the client.

        Args:
            api_root: Base URL every request path is appended to.
            timeout: Seconds to wait on the socket per request, None to block.
        """
        self.api_root = api_root.rstrip("/")
        self._timeout = timeout

    def url_for(self, path: str) -> str:
        return f"{self.api_root}{path}"

    def relative_path(self, full_url: str) -> str:
        """Strip the API root off a server supplied absolute URL.

        Raises:
            ApiError: ``full_url`` lives outside the API root. The bearer token
                is never sent to another origin.
        """
        if full_url.startswith(self.api_root):
            return full_url[len(self.api_root) :]
        if full_url.startswith("/"):
            return full_url
        logger.error("[relative_path] link outside api root; url:%s", full_url)
        raise ApiError(0, f"link outside api root: {full_url}")

    def invoke(
        self,
        token: str,
        path: str,
        method: str = "GET",
        body: Any = None,
        binary: bool = False,
        content_type: str = "application/json",
    ) -> Any:
        """Perform one authenticated request.

        Args:
            token: Bearer access token.
            path: Path relative to the API root (must start with '/').
            method: One of GET, PUT, POST, PATCH, DELETE.
            body: ``bytes`` are sent as-is; anything else is JSON encoded.
            binary: Return the raw response bytes instead of parsed JSON.
            content_type: Content-Type header for a request body.

        Returns:
            Parsed JSON (or bytes when ``binary``) for 200/201, ``NO_CONTENT``
            for 204.

        Raises:
            ApiError: Any other status, or a transport failure.
        """
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"unsupported method: {method}")

        headers = {
            "Authorization": f"{AUTH_SCHEME} {token}",
            "Accept": "application/json",
        }
        data: bytes | None = None
        if body is not None:
            data = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
            headers["Content-Type"] = content_type

        req = urllib_request.Request(self.url_for(path), data=data, headers=headers, method=method)
        logger.info("[invoke] request; method:%s;path:%s", method, path)
        try:
            with urllib_request.urlopen(req, timeout=self._timeout) as resp:
                status = resp.status
                payload = resp.read()
        except HTTPError as exc:
            detail = _error_detail(exc)
            logger.error(
                "[invoke] request failed; method:%s;path:%s;status:%d", method, path, exc.code
            )
            raise ApiError(exc.code, detail) from exc
        except (HTTPException, OSError) as exc:
            # URLError, timeouts and resets while reading the body all land here.
            reason = str(getattr(exc, "reason", exc)) or type(exc).__name__
            logger.error(
                "[invoke] transport failure; method:%s;path:%s;reason:%s", method, path, reason
            )
            raise ApiError(0, reason) from exc

        if status == NO_CONTENT_STATUS:
            return NO_CONTENT
        if status not in BODY_STATUSES:
            logger.error(
                "[invoke] unexpected status; method:%s;path:%s;status:%d", method, path, status
            )
            raise ApiError(status, "unexpected status")
        if binary:
            return payload
        if not payload:
            return {}
        try:
            return json.loads(payload)
        except ValueError as exc:
            logger.error(
                "[invoke] malformed response body; method:%s;path:%s;status:%d",
                method,
                path,
                status,
            )
            raise ApiError(status, "malformed response body") from exc


def api_client_from_config(config: ClientConfig) -> ApiClient:
    """Construct an ApiClient from client configuration.

    Args:
        config: Client configuration instance.

    Returns:
        Configured ApiClient instance.
    """
    return ApiClient(api_root=config.api_root, timeout=config.request_timeout)
