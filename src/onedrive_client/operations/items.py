"""Item operations: metadata, folder creation, deletion, search, moves and drives."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, cast

from onedrive_client.graph.client import ApiClient, api_client_from_config
from onedrive_client.graph.listing import ListingMode, ListingService
from onedrive_client.graph.models import (
    DEFAULT_SELECT,
    FIELD_CONFLICT_BEHAVIOR,
    FIELD_FOLDER,
    FIELD_ID,
    FIELD_NAME,
    FIELD_PARENT_REFERENCE,
    FIELD_PATH,
    ODATA_VALUE,
    Item,
    ItemReference,
    Listing,
)
from onedrive_client.graph.paths import normalize_path, resolve_path, with_suffix

if TYPE_CHECKING:
    from onedrive_client.config import ClientConfig

logger = logging.getLogger(__name__)

# Folder creation never renames or replaces an existing item.
CONFLICT_BEHAVIOR_FAIL = "fail"


def create_folder_body(folder_name: str) -> dict[str, Any]:
    """Return the JSON body for a folder creation request."""
    return {
        FIELD_NAME: folder_name,
        FIELD_FOLDER: {},
        FIELD_CONFLICT_BEHAVIOR: CONFLICT_BEHAVIOR_FAIL,
    }


class ItemOperations:
    """Metadata, folder and search operations built on the listing service."""

    def __init__(self, api_client: ApiClient, listing: ListingService | None = None) -> None:
        """Initialise the operations.

        Args:
            api_client: Client used for non-listing requests.
            listing: Listing service; one is built on ``api_client`` if omitted.
        """
        self._api = api_client
        self._listing = listing or ListingService(api_client)

    def get_metadata(
        self,
        token: str,
        ref: ItemReference,
        drive_id: str = "",
        select: Sequence[str] = DEFAULT_SELECT,
    ) -> Item:
        """Read the properties of a single item.

        Args:
            token: Bearer access token.
            ref: Item to read; an empty reference reads the drive root.
            drive_id: Drive to address, "" for the default drive.
            select: Properties to return (default name, size,
                lastModifiedDateTime, id). Empty returns every property.

        Returns:
            The item's properties.
        """
        item = self._listing.list_children(token, ref, drive_id, select, mode=ListingMode.ITEM)
        return cast(Item, item)

    def list_children(
        self,
        token: str,
        ref: ItemReference,
        drive_id: str = "",
        select: Sequence[str] = DEFAULT_SELECT,
    ) -> Listing:
        """List every child of a container, following all pages."""
        listing = self._listing.list_children(token, ref, drive_id, select)
        return cast(Listing, listing)

    def create_folder(
        self,
        token: str,
        parent: ItemReference,
        folder_name: str,
        drive_id: str = "",
    ) -> Item:
        """Create a folder below ``parent``.

        Fails with an ApiError (409) when an item of that name already exists.

        Returns:
            The created folder item.
        """
        if not folder_name:
            raise ValueError("folder name must not be empty")
        target = resolve_path(parent.path, drive_id, parent.element_id)
        path = with_suffix(target, "/children")
        response = self._api.invoke(token, path, "POST", body=create_folder_body(folder_name))
        logger.info("[create_folder] created folder; parent:%s;name:%s", target, folder_name)
        return Item(response)

    def delete(self, token: str, ref: ItemReference, drive_id: str = "") -> Any:
        """Delete an item.

        Raises:
            MissingReference: Neither path nor element id given. Nothing is sent.

        Returns:
            ``NO_CONTENT`` on success.
        """
        ref.require()
        target = resolve_path(ref.path, drive_id, ref.element_id)
        result = self._api.invoke(token, with_suffix(target, ""), "DELETE")
        logger.info("[delete] deleted item; target:%s", target)
        return result

    def search(
        self,
        token: str,
        text: str,
        start: ItemReference | None = None,
        drive_id: str = "",
        select: Sequence[str] = DEFAULT_SELECT,
    ) -> Listing:
        """Search below ``start`` (the drive root by default), following all pages."""
        if not text:
            raise ValueError("search text must not be empty")
        listing = self._listing.list_children(
            token,
            start or ItemReference(),
            drive_id,
            select,
            mode=ListingMode.SEARCH,
            search_text=text,
        )
        return cast(Listing, listing)

    def move_item(
        self,
        token: str,
        ref: ItemReference,
        drive_id: str = "",
        new_parent: ItemReference | None = None,
        new_name: str = "",
    ) -> Item:
        """Move and/or rename an item with a single PATCH.

        Args:
            token: Bearer access token.
            ref: Item to move.
            drive_id: Drive holding the item, "" for the default drive.
            new_parent: Destination folder. A path is sent as
                ``parentReference.path``, an element id as ``parentReference.id``.
            new_name: New item name, "" to keep the current one.

        Returns:
            The updated item.
        """
        ref.require()
        if new_parent is None and not new_name:
            raise ValueError("a new parent or a new name is required")

        body: dict[str, Any] = {}
        if new_parent is not None:
            if new_parent.element_id:
                body[FIELD_PARENT_REFERENCE] = {FIELD_ID: new_parent.element_id}
            else:
                root = f"/drives/{drive_id}/root:" if drive_id else "/drive/root:"
                parent_path = f"{root}{normalize_path(new_parent.path)}"
                body[FIELD_PARENT_REFERENCE] = {FIELD_PATH: parent_path}
        if new_name:
            body[FIELD_NAME] = new_name

        target = resolve_path(ref.path, drive_id, ref.element_id)
        response = self._api.invoke(token, with_suffix(target, ""), "PATCH", body=body)
        logger.info("[move_item] updated item; target:%s;new_name:%s", target, new_name)
        return Item(response)

    def rename_item(
        self, token: str, ref: ItemReference, new_name: str, drive_id: str = ""
    ) -> Item:
        return self.move_item(token, ref, drive_id, new_name=new_name)

    def list_drives(self, token: str) -> list[Item]:
        """Return the drives visible to the caller. The list is not paginated."""
        response = self._api.invoke(token, "/drives")
        return [Item(raw) for raw in response.get(ODATA_VALUE, [])]


def item_operations_from_config(config: ClientConfig) -> ItemOperations:
    """Construct ItemOperations from client configuration.

    Args:
        config: Client configuration instance.

    Returns:
        Configured ItemOperations instance.
    """
    return ItemOperations(api_client_from_config(config))
