"""Data models for OneDrive items, listings and item references."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from onedrive_client.errors import OneDriveError

# OneDrive JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_SIZE = "size"
FIELD_FOLDER = "folder"
FIELD_LAST_MODIFIED = "lastModifiedDateTime"
FIELD_DOWNLOAD_URL = "@content.downloadUrl"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_PATH = "path"
FIELD_CONFLICT_BEHAVIOR = "@name.conflictBehavior"

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"

DEFAULT_SELECT = (FIELD_NAME, FIELD_SIZE, FIELD_LAST_MODIFIED, FIELD_ID)


class MissingReference(OneDriveError, ValueError):
    """Raised when neither a path nor an element id identifies the target item."""


@dataclass(frozen=True)
class ItemReference:
    """Either a slash separated path or an opaque element id.

    When both are set the element id wins and the path is ignored. An empty
    path with no element id refers to the drive root.
    """

    path: str = ""
    element_id: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.path and not self.element_id

    def require(self) -> ItemReference:
        """Return self, or raise MissingReference if nothing is referenced."""
        if self.is_empty:
            raise MissingReference("a path or an element id is required")
        return self


class Item(Mapping[str, Any]):
    """Read-only property bag for a single drive item.

    The set of properties depends on what the caller selected, so the raw
    mapping is exposed as-is. Typed accessors cover the default selection.
    """

    def __init__(self, properties: Mapping[str, Any]) -> None:
        self._properties = dict(properties)

    def __getitem__(self, key: str) -> Any:
        return self._properties[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Item):
            return self._properties == other._properties
        if isinstance(other, Mapping):
            return self._properties == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Item({self._properties!r})"

    @property
    def id(self) -> str:
        return str(self._properties.get(FIELD_ID, ""))

    @property
    def name(self) -> str:
        return str(self._properties.get(FIELD_NAME, ""))

    @property
    def size(self) -> int | None:
        value = self._properties.get(FIELD_SIZE)
        return int(value) if value is not None else None

    @property
    def last_modified(self) -> datetime | None:
        """Parse lastModifiedDateTime (ISO 8601, trailing Z) into an aware datetime."""
        raw = self._properties.get(FIELD_LAST_MODIFIED)
        if not raw:
            return None
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))

    @property
    def is_folder(self) -> bool:
        return FIELD_FOLDER in self._properties

    @property
    def download_url(self) -> str | None:
        value = self._properties.get(FIELD_DOWNLOAD_URL)
        return str(value) if value else None


@dataclass(frozen=True)
class Listing:
    """An ordered page (or concatenation of pages) of items.

    Attributes:
        items: Items in the order the server returned them.
        next_link: Continuation path relative to the API root, or None once
            the last page has been read.
    """

    items: tuple[Item, ...] = field(default_factory=tuple)
    next_link: str | None = None

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Item:
        return self.items[index]

    @property
    def names(self) -> list[str]:
        return [item.name for item in self.items]
