"""Drive session binding one access credential to every operation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from onedrive_client.graph.client import ApiClient, api_client_from_config
from onedrive_client.graph.listing import ListingService
from onedrive_client.graph.models import DEFAULT_SELECT, Item, ItemReference, Listing
from onedrive_client.operations.items import ItemOperations
from onedrive_client.operations.transfer import TransferService

if TYPE_CHECKING:
    from onedrive_client.auth.flow import AccessCredential
    from onedrive_client.config import ClientConfig

logger = logging.getLogger(__name__)


class DriveSession:
    """Caller facade over item, listing and transfer operations.

    Paths and element ids are passed as keyword arguments; an element id
    overrides a path. The session keeps no state besides the credential and
    every call is a fresh request.
    """

    def __init__(
        self,
        credential: AccessCredential,
        api_client: ApiClient,
        drive_id: str = "",
        timeout: float | None = None,
    ) -> None:
        """Initialise the session.

        Args:
            credential: Access credential used for every request.
            api_client: Client for the REST API.
            drive_id: Default drive for every call, "" for the caller's own drive.
            timeout: Socket timeout for download streams.
        """
        self._credential = credential
        self._drive_id = drive_id
        self._listing = ListingService(api_client)
        self._items = ItemOperations(api_client, self._listing)
        self._transfer = TransferService(api_client, self._items, timeout=timeout)

    @property
    def _token(self) -> str:
        if self._credential.is_expired():
            logger.warning(
                "[drive_session] access token expired; expires_at:%s",
                self._credential.expires_at.isoformat(),
            )
        return self._credential.access_token

    def _drive(self, drive_id: str | None) -> str:
        return self._drive_id if drive_id is None else drive_id

    def list_drives(self) -> list[Item]:
        return self._items.list_drives(self._token)

    def get_metadata(
        self,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
        select: Sequence[str] = DEFAULT_SELECT,
    ) -> Item:
        return self._items.get_metadata(
            self._token, ItemReference(path, element_id), self._drive(drive_id), select
        )

    def list_children(
        self,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
        select: Sequence[str] = DEFAULT_SELECT,
    ) -> Listing:
        return self._items.list_children(
            self._token, ItemReference(path, element_id), self._drive(drive_id), select
        )

    def search(
        self,
        text: str,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
        select: Sequence[str] = DEFAULT_SELECT,
    ) -> Listing:
        return self._items.search(
            self._token, text, ItemReference(path, element_id), self._drive(drive_id), select
        )

    def create_folder(
        self,
        folder_name: str,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
    ) -> Item:
        return self._items.create_folder(
            self._token, ItemReference(path, element_id), folder_name, self._drive(drive_id)
        )

    def delete(self, path: str = "", element_id: str = "", drive_id: str | None = None) -> Any:
        ref = ItemReference(path, element_id)
        return self._items.delete(self._token, ref, self._drive(drive_id))

    def move(
        self,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
        target_path: str | None = None,
        target_element_id: str = "",
        new_name: str = "",
    ) -> Item:
        new_parent = None
        if target_path is not None or target_element_id:
            new_parent = ItemReference(target_path or "", target_element_id)
        return self._items.move_item(
            self._token,
            ItemReference(path, element_id),
            self._drive(drive_id),
            new_parent=new_parent,
            new_name=new_name,
        )

    def download(
        self,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
        local_path: str | Path = ".",
        local_file_name: str = "",
    ) -> Path:
        return self._transfer.download(
            self._token,
            ItemReference(path, element_id),
            self._drive(drive_id),
            local_path=local_path,
            local_file_name=local_file_name,
        )

    def upload(
        self,
        local_file: str | Path,
        path: str = "",
        element_id: str = "",
        drive_id: str | None = None,
    ) -> Item:
        return self._transfer.upload(
            self._token, ItemReference(path, element_id), local_file, self._drive(drive_id)
        )


def drive_session_from_config(
    config: ClientConfig,
    credential: AccessCredential,
    drive_id: str = "",
) -> DriveSession:
    """Construct a DriveSession from client configuration.

    Args:
        config: Client configuration instance.
        credential: Credential returned by the authentication flow.
        drive_id: Default drive, "" for the caller's own drive.

    Returns:
        Configured DriveSession instance.
    """
    return DriveSession(
        credential=credential,
        api_client=api_client_from_config(config),
        drive_id=drive_id,
        timeout=config.request_timeout,
    )
