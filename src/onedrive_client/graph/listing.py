"""Children, search and single-item listings with transparent pagination."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING
from urllib.parse import quote

from onedrive_client.errors import OneDriveError
from onedrive_client.graph.models import (
    FIELD_FOLDER,
    ODATA_NEXT_LINK,
    ODATA_VALUE,
    Item,
    ItemReference,
    Listing,
)
from onedrive_client.graph.paths import resolve_path, with_suffix

if TYPE_CHECKING:
    from onedrive_client.graph.client import ApiClient

logger = logging.getLogger(__name__)

SELECT_PARAM = "$select"


class PaginationLoopDetected(OneDriveError):
    """Raised when the server hands back a continuation link it already served."""

    def __init__(self, next_link: str) -> None:
        super().__init__(f"continuation link repeated: {next_link}")
        self.next_link = next_link


class ListingMode(enum.Enum):
    CHILDREN = "children"
    SEARCH = "search"
    ITEM = "item"


def select_clause(select: Sequence[str]) -> str:
    """Return the comma separated property list, or "" to request everything.

    ``folder`` is always added to a non-empty selection so that callers can
    tell files from folders.
    """
    properties = [p for p in select if p]
    if not properties:
        return ""
    if FIELD_FOLDER not in properties:
        properties.append(FIELD_FOLDER)
    return ",".join(properties)


def _append_query(path: str, name: str, value: str) -> str:
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{name}={value}"


class ListingService:
    """Lists container children, searches, and reads single item properties."""

    def __init__(self, api_client: ApiClient) -> None:
        self._api = api_client

    def request_path(
        self,
        ref: ItemReference,
        drive_id: str = "",
        mode: ListingMode = ListingMode.CHILDREN,
        select: Sequence[str] = (),
        search_text: str = "",
    ) -> str:
        """Build the first request path for a listing.

        Args:
            ref: Container (or, in ITEM mode, the item itself).
            drive_id: Drive to address, "" for the default drive.
            mode: What to list.
            select: Properties to return, empty for all.
            search_text: Query text, required in SEARCH mode.

        Returns:
            API path including the query string.
        """
        target = resolve_path(ref.path, drive_id, ref.element_id)
        if mode is ListingMode.CHILDREN:
            path = with_suffix(target, "/children")
        elif mode is ListingMode.SEARCH:
            if not search_text:
                raise ValueError("search text must not be empty")
            path = with_suffix(target, f"/view.search?q={quote(search_text, safe='')}")
        else:
            path = with_suffix(target, "")

        clause = select_clause(select)
        if clause:
            path = _append_query(path, SELECT_PARAM, clause)
        return path

    def iter_pages(
        self, token: str, first_path: str, select: Sequence[str] = ()
    ) -> Iterator[Listing]:
        """Yield each page of a paginated listing in server order.

        Pages are fetched lazily, one request per page. Iteration stops at the
        first response without ``@odata.nextLink``.

        Raises:
            PaginationLoopDetected: A continuation link is served twice.
            ApiError: Any page request fails; no partial result is returned.
        """
        clause = select_clause(select)
        seen: set[str] = set()
        next_path: str | None = first_path
        page_number = 0
        while next_path is not None:
            response = self._api.invoke(token, next_path)
            page_number += 1
            items = tuple(Item(raw) for raw in response.get(ODATA_VALUE, []))

            next_path = None
            next_link = response.get(ODATA_NEXT_LINK)
            if next_link:
                if next_link in seen:
                    logger.error("[iter_pages] continuation link repeated; link:%s", next_link)
                    raise PaginationLoopDetected(next_link)
                seen.add(next_link)
                next_path = self._api.relative_path(next_link)
                # Continuation links normally carry $select; keep the caller's selection if not.
                if clause and f"{SELECT_PARAM}=" not in next_path:
                    next_path = _append_query(next_path, SELECT_PARAM, clause)

            logger.info(
                "[iter_pages] fetched page; page:%d;item_count:%d;more:%s",
                page_number,
                len(items),
                next_path is not None,
            )
            yield Listing(items=items, next_link=next_path)

    def list_children(
        self,
        token: str,
        ref: ItemReference,
        drive_id: str = "",
        select: Sequence[str] = (),
        mode: ListingMode = ListingMode.CHILDREN,
        search_text: str = "",
        follow: bool = True,
    ) -> Listing | Item:
        """List a container's children, search below it, or read one item.

        Args:
            token: Bearer access token.
            ref: Container to list (or item to read in ITEM mode).
            drive_id: Drive to address, "" for the default drive.
            select: Properties to return, empty for all.
            mode: CHILDREN (default), SEARCH or ITEM.
            search_text: Query text for SEARCH mode.
            follow: Follow continuation links and concatenate every page.
                When False only the first page is returned, with its
                ``next_link`` set.

        Returns:
            A single Item in ITEM mode, otherwise a Listing.
        """
        path = self.request_path(ref, drive_id, mode, select, search_text)
        if mode is ListingMode.ITEM:
            return Item(self._api.invoke(token, path))

        pages = self.iter_pages(token, path, select)
        if not follow:
            return next(pages)

        items: list[Item] = []
        for page in pages:
            items.extend(page.items)
        return Listing(items=tuple(items))

    def continue_listing(self, token: str, next_link: str, select: Sequence[str] = ()) -> Listing:
        """Fetch every page starting from a continuation link of an earlier listing."""
        items: list[Item] = []
        for page in self.iter_pages(token, self._api.relative_path(next_link), select):
            items.extend(page.items)
        return Listing(items=tuple(items))
