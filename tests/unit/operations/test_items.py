"""Unit tests for operations/items.py: ItemOperations behaviour."""

import json
from unittest.mock import MagicMock, patch

import pytest

from onedrive_client.graph.client import NO_CONTENT, ApiClient
from onedrive_client.graph.models import Item, ItemReference, MissingReference
from onedrive_client.operations.items import ItemOperations, create_folder_body

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_operations(*responses: object) -> tuple[ItemOperations, MagicMock]:
    """Return (operations, invoke_mock) where invoke returns ``responses`` in order."""
    api = ApiClient("https://graph.microsoft.com/v1.0")
    invoke = MagicMock(side_effect=list(responses))
    api.invoke = invoke  # type: ignore[method-assign]
    return ItemOperations(api), invoke


# ---------------------------------------------------------------------------
# get_metadata tests
# ---------------------------------------------------------------------------


class TestGetMetadata:
    def test_default_selection(self) -> None:
        ops, invoke = _make_operations({"name": "a.txt", "id": "X1"})

        item = ops.get_metadata("tok", ItemReference("/a.txt"))

        assert item.name == "a.txt"
        assert invoke.call_args.args == (
            "tok",
            "/drive/root:/a.txt:?$select=name,size,lastModifiedDateTime,id,folder",
        )

    def test_empty_selection_requests_all(self) -> None:
        ops, invoke = _make_operations({"name": "root"})
        ops.get_metadata("tok", ItemReference(), select=())
        assert invoke.call_args.args[1] == "/drive/root"

    def test_repeated_calls_return_identical_items(self) -> None:
        payload = {"name": "a.txt", "size": 3, "lastModifiedDateTime": "2024-01-01T00:00:00Z"}
        ops, _ = _make_operations(dict(payload), dict(payload))

        first = ops.get_metadata("tok", ItemReference(element_id="X1"))
        second = ops.get_metadata("tok", ItemReference(element_id="X1"))

        assert first == second


# ---------------------------------------------------------------------------
# create_folder tests
# ---------------------------------------------------------------------------


class TestCreateFolder:
    def test_body_declares_fail_on_conflict(self) -> None:
        body = json.loads(json.dumps(create_folder_body("Reports")))
        assert body == {
            "name": "Reports",
            "folder": {},
            "@name.conflictBehavior": "fail",
        }

    def test_posts_to_parent_children(self) -> None:
        ops, invoke = _make_operations({"id": "new", "name": "Reports", "folder": {}})

        item = ops.create_folder("tok", ItemReference("/Docs"), "Reports")

        assert item.is_folder
        args, kwargs = invoke.call_args
        assert args == ("tok", "/drive/root:/Docs:/children", "POST")
        assert kwargs["body"]["@name.conflictBehavior"] == "fail"

    def test_wire_body_is_json(self) -> None:
        api = ApiClient("https://graph.microsoft.com/v1.0")
        ops = ItemOperations(api)
        response = MagicMock()
        response.status = 201
        response.read.return_value = b'{"id": "new"}'
        response.__enter__ = lambda s: s
        response.__exit__ = MagicMock(return_value=False)

        with patch(
            "onedrive_client.graph.client.urllib_request.urlopen", return_value=response
        ) as mock_urlopen:
            ops.create_folder("tok", ItemReference(), "New Folder")

        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "https://graph.microsoft.com/v1.0/drive/root/children"
        assert json.loads(req.data) == {
            "name": "New Folder",
            "folder": {},
            "@name.conflictBehavior": "fail",
        }

    def test_root_on_explicit_drive(self) -> None:
        ops, invoke = _make_operations({"id": "new"})
        ops.create_folder("tok", ItemReference(), "Reports", drive_id="D")
        assert invoke.call_args.args[1] == "/drives/D/root/children"

    def test_empty_name_rejected(self) -> None:
        ops, invoke = _make_operations()
        with pytest.raises(ValueError):
            ops.create_folder("tok", ItemReference(), "")
        invoke.assert_not_called()


# ---------------------------------------------------------------------------
# delete tests
# ---------------------------------------------------------------------------


class TestDelete:
    def test_missing_reference_sends_nothing(self) -> None:
        ops, invoke = _make_operations()
        with pytest.raises(MissingReference):
            ops.delete("tok", ItemReference())
        invoke.assert_not_called()

    def test_delete_by_path(self) -> None:
        ops, invoke = _make_operations(NO_CONTENT)

        result = ops.delete("tok", ItemReference("/Docs/old.txt"))

        assert result is NO_CONTENT
        assert invoke.call_args.args == ("tok", "/drive/root:/Docs/old.txt:", "DELETE")

    def test_delete_by_element_id(self) -> None:
        ops, invoke = _make_operations(NO_CONTENT)
        ops.delete("tok", ItemReference(path="/ignored", element_id="X1"))
        assert invoke.call_args.args[1] == "/drive/items/X1"


# ---------------------------------------------------------------------------
# search tests
# ---------------------------------------------------------------------------


class TestSearch:
    def test_search_from_root(self) -> None:
        ops, invoke = _make_operations({"value": [{"name": "budget.xlsx"}]})

        listing = ops.search("tok", "budget")

        assert listing.names == ["budget.xlsx"]
        assert invoke.call_args.args[1] == (
            "/drive/root/view.search?q=budget&$select=name,size,lastModifiedDateTime,id,folder"
        )

    def test_search_follows_pages(self) -> None:
        ops, _ = _make_operations(
            {
                "value": [{"name": "a"}],
                "@odata.nextLink": (
                    "https://graph.microsoft.com/v1.0/drive/root/view.search?q=x&$skiptoken=2"
                ),
            },
            {"value": [{"name": "b"}]},
        )
        assert ops.search("tok", "x", select=()).names == ["a", "b"]

    def test_empty_text_rejected(self) -> None:
        ops, invoke = _make_operations()
        with pytest.raises(ValueError):
            ops.search("tok", "")
        invoke.assert_not_called()


# ---------------------------------------------------------------------------
# move_item / rename_item tests
# ---------------------------------------------------------------------------


class TestMoveItem:
    def test_move_to_path(self) -> None:
        ops, invoke = _make_operations({"id": "X1"})

        ops.move_item("tok", ItemReference("/a.txt"), new_parent=ItemReference("/Archive 2024"))

        args, kwargs = invoke.call_args
        assert args == ("tok", "/drive/root:/a.txt:", "PATCH")
        assert kwargs["body"] == {"parentReference": {"path": "/drive/root:/Archive%202024"}}

    def test_move_to_element_id_and_rename(self) -> None:
        ops, invoke = _make_operations({"id": "X1"})

        ops.move_item(
            "tok",
            ItemReference(element_id="X1"),
            new_parent=ItemReference(element_id="P9"),
            new_name="b.txt",
        )

        assert invoke.call_args.kwargs["body"] == {
            "parentReference": {"id": "P9"},
            "name": "b.txt",
        }

    def test_move_to_path_on_explicit_drive(self) -> None:
        ops, invoke = _make_operations({"id": "X1"})
        ops.move_item("tok", ItemReference("/a.txt"), "D", new_parent=ItemReference("/Docs"))
        assert invoke.call_args.kwargs["body"] == {
            "parentReference": {"path": "/drives/D/root:/Docs"}
        }

    def test_rename(self) -> None:
        ops, invoke = _make_operations({"id": "X1", "name": "new.txt"})
        item = ops.rename_item("tok", ItemReference("/old.txt"), "new.txt")
        assert item.name == "new.txt"
        assert invoke.call_args.kwargs["body"] == {"name": "new.txt"}

    def test_requires_target_or_name(self) -> None:
        ops, invoke = _make_operations()
        with pytest.raises(ValueError):
            ops.move_item("tok", ItemReference("/a.txt"))
        invoke.assert_not_called()

    def test_requires_reference(self) -> None:
        ops, _ = _make_operations()
        with pytest.raises(MissingReference):
            ops.move_item("tok", ItemReference(), new_name="x")


# ---------------------------------------------------------------------------
# list_drives tests
# ---------------------------------------------------------------------------


class TestListDrives:
    def test_unwraps_value(self) -> None:
        ops, invoke = _make_operations({"value": [{"id": "D1"}, {"id": "D2"}]})

        drives = ops.list_drives("tok")

        assert [d.id for d in drives] == ["D1", "D2"]
        assert all(isinstance(d, Item) for d in drives)
        assert invoke.call_args.args == ("tok", "/drives")
