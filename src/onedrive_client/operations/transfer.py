"""File content transfer: download to and upload from the local filesystem.

Both directions overwrite silently. A download replaces any local file of the
same name (a warning is logged), and an upload replaces a remote file of the
same name because no conflict behavior is sent with the content.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from http.client import HTTPException
from pathlib import Path
from typing import TYPE_CHECKING
from urllib import request as urllib_request
from urllib.error import HTTPError
from urllib.parse import quote

from onedrive_client.errors import OneDriveError
from onedrive_client.graph.client import ApiClient, ApiError, api_client_from_config
from onedrive_client.graph.models import FIELD_DOWNLOAD_URL, FIELD_NAME, Item, ItemReference
from onedrive_client.graph.paths import resolve_path
from onedrive_client.operations.items import ItemOperations

if TYPE_CHECKING:
    from onedrive_client.config import ClientConfig

logger = logging.getLogger(__name__)

# The body is the raw file, not a multipart document. This is the header the
# service has always been sent; it has not been checked against the live API.
UPLOAD_CONTENT_TYPE = "multipart/form-data"

DOWNLOAD_SELECT = (FIELD_NAME, FIELD_DOWNLOAD_URL)

_BARE_DRIVE_ROOT = re.compile(r"^(/drives/[^/]+|/drive)/root/")


class TransferError(OneDriveError):
    """Raised when file content cannot be downloaded or uploaded.

    ``status_code`` is the HTTP status, or 0 when the server was never reached.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"transfer failed {status_code}: {message}")
        self.status_code = status_code
        self.message = message


def upload_path(container: ItemReference, file_name: str, drive_id: str = "") -> str:
    """Return the content upload path for ``file_name`` inside ``container``.

    ``/drive/root:/Docs:`` becomes ``/drive/root:/Docs/a.txt:/content``,
    the root becomes ``/drive/root:/a.txt:/content`` and an element id
    becomes ``/drive/items/{id}:/a.txt:/content``.
    """
    target = resolve_path(container.path, drive_id, container.element_id)
    target = target[:-1] if target.endswith(":") else f"{target}:"
    path = f"{target}/{quote(file_name, safe='')}:/content"
    # Only the drive root prefix may need its colon; user folders named "root" stay intact.
    return _BARE_DRIVE_ROOT.sub(r"\1/root:/", path, count=1)


class TransferService:
    """Downloads and uploads file content."""

    def __init__(
        self,
        api_client: ApiClient,
        items: ItemOperations | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialise the transfer service.

        Args:
            api_client: Client used for metadata and upload requests.
            items: Item operations used to resolve download URLs.
            timeout: Seconds to wait on the socket while streaming a download.
        """
        self._api = api_client
        self._items = items or ItemOperations(api_client)
        self._timeout = timeout

    def download(
        self,
        token: str,
        ref: ItemReference,
        drive_id: str = "",
        local_path: str | Path = ".",
        local_file_name: str = "",
    ) -> Path:
        """Download a file into ``local_path``.

        The item's transient download URL is self-authorizing, so the content
        request carries no bearer token. An existing local file is overwritten.

        Args:
            token: Bearer access token (used for the metadata lookup only).
            ref: File to download.
            drive_id: Drive holding the file, "" for the default drive.
            local_path: Destination directory.
            local_file_name: Destination file name; the remote name if empty.

        Returns:
            Path of the written file.

        Raises:
            MissingReference: Neither path nor element id given.
            TransferError: No download URL, or the content request failed.
        """
        ref.require()
        item = self._items.get_metadata(token, ref, drive_id, select=DOWNLOAD_SELECT)
        url = item.download_url
        if not url:
            raise TransferError(0, f"no download URL for item {item.name or ref}")

        destination = Path(local_path) / (local_file_name or item.name)
        if destination.exists():
            logger.warning("[download] overwriting local file; destination:%s", destination)

        req = urllib_request.Request(url, method="GET")
        try:
            resp = urllib_request.urlopen(req, timeout=self._timeout)
        except HTTPError as exc:
            logger.error("[download] download failed; name:%s;status:%d", item.name, exc.code)
            raise TransferError(exc.code, str(exc.reason)) from exc
        except (HTTPException, OSError) as exc:
            reason = str(getattr(exc, "reason", exc)) or type(exc).__name__
            logger.error("[download] download failed; name:%s;reason:%s", item.name, reason)
            raise TransferError(0, reason) from exc

        # Stream into a sibling file; the destination is only replaced once complete.
        with resp:
            fd, partial_name = tempfile.mkstemp(
                dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
            )
            partial = Path(partial_name)
            try:
                with os.fdopen(fd, "wb") as fh:
                    shutil.copyfileobj(resp, fh)
                partial.replace(destination)
            except (HTTPException, OSError) as exc:
                partial.unlink(missing_ok=True)
                reason = str(exc) or type(exc).__name__
                logger.error("[download] stream interrupted; name:%s;reason:%s", item.name, reason)
                raise TransferError(0, reason) from exc

        logger.info("[download] downloaded file; name:%s;destination:%s", item.name, destination)
        return destination

    def upload(
        self,
        token: str,
        container: ItemReference,
        local_file: str | Path,
        drive_id: str = "",
    ) -> Item:
        """Upload a local file into ``container`` under its own base name.

        A remote file of the same name is replaced.

        Returns:
            The uploaded item.

        Raises:
            FileNotFoundError: ``local_file`` is not a file.
            TransferError: The upload request failed.
        """
        source = Path(local_file)
        if not source.is_file():
            raise FileNotFoundError(f"not a file: {source}")

        path = upload_path(container, source.name, drive_id)
        try:
            response = self._api.invoke(
                token,
                path,
                "PUT",
                body=source.read_bytes(),
                content_type=UPLOAD_CONTENT_TYPE,
            )
        except ApiError as exc:
            raise TransferError(exc.status_code, exc.message) from exc

        logger.info("[upload] uploaded file; source:%s;path:%s", source, path)
        return Item(response)


def transfer_service_from_config(config: ClientConfig) -> TransferService:
    """Construct a TransferService from client configuration.

    Args:
        config: Client configuration instance.

    Returns:
        Configured TransferService instance.
    """
    return TransferService(api_client_from_config(config), timeout=config.request_timeout)
