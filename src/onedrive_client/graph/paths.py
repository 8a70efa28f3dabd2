"""Translate human paths and element ids into OneDrive API path fragments."""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

logger = logging.getLogger(__name__)

ROOT_MARKER = "::"

_CHILDREN_SUFFIX = re.compile(r"/children$", re.IGNORECASE)


def normalize_path(path: str) -> str:
    """Normalize a caller supplied path into an encoded, slash separated form.

    Steps, in order: drop any query string, turn backslashes into slashes,
    drop a trailing ``/children`` segment left over from a continuation
    path, percent-encode each segment on its own and drop the trailing
    slash. A non-empty result always starts with ``/``.
    """
    path = path.split("?", 1)[0]
    path = path.replace("\\", "/")
    path = _CHILDREN_SUFFIX.sub("", path)
    path = "/".join(quote(segment, safe="") for segment in path.split("/"))
    path = path.rstrip("/")
    if path and not path.startswith("/"):
        path = f"/{path}"
    return path


def resolve_path(path: str = "", drive_id: str = "", element_id: str = "") -> str:
    """Return the API path fragment for an item.

    Args:
        path: Slash (or backslash) separated path below the drive root.
            Empty means the root itself.
        drive_id: Drive to address. Empty means the caller's default drive.
        element_id: Opaque item id. Takes precedence over ``path``.

    Returns:
        ``/drive/items/{id}`` when an element id is given, otherwise
        ``/drive/root:{path}:`` or ``/drives/{drive}/root:{path}:``. The root
        itself resolves to ``/drive/root::``.
    """
    if element_id:
        if path:
            logger.warning(
                "[resolve_path] element id given, ignoring path; element_id:%s;path:%s",
                element_id,
                path,
            )
        return f"/drive/items/{element_id}"

    normalized = normalize_path(path)
    if drive_id:
        return f"/drives/{drive_id}/root:{normalized}:"
    return f"/drive/root:{normalized}:"


def with_suffix(target: str, suffix: str) -> str:
    """Append a suffix such as ``/children`` to a resolved path fragment.

    The root marker ``/drive/root::`` collapses to ``/drive/root`` so that
    ``/drive/root::/children`` becomes ``/drive/root/children``. Encoded
    segments never contain a literal colon, so only the root marker matches.
    """
    return f"{target}{suffix}".replace(ROOT_MARKER, "")
