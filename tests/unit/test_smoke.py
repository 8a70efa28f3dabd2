"""Smoke tests: the package imports and wires end-to-end without a network."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import onedrive_client
from onedrive_client.auth.flow import AccessCredential
from onedrive_client.config import ClientConfig
from onedrive_client.orchestration.session import drive_session_from_config


def test_version() -> None:
    assert onedrive_client.__version__ == "0.1.0"


def test_session_lists_root_through_real_client() -> None:
    """A session built from config issues one GET for the root children."""
    config = ClientConfig(client_id="cid")
    credential = AccessCredential("tok", datetime.now(tz=UTC) + timedelta(hours=1))
    session = drive_session_from_config(config, credential)

    mock_response = MagicMock()
    mock_response.status = 200
    mock_response.read.return_value = b'{"value": [{"name": "Documents", "folder": {}}]}'
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)

    with patch(
        "onedrive_client.graph.client.urllib_request.urlopen", return_value=mock_response
    ) as mock_urlopen:
        listing = session.list_children()

    assert listing.names == ["Documents"]
    assert listing[0].is_folder
    req = mock_urlopen.call_args[0][0]
    assert req.full_url == (
        "https://graph.microsoft.com/v1.0/drive/root/children"
        "?$select=name,size,lastModifiedDateTime,id,folder"
    )
    assert req.get_header("Authorization") == "BEARER tok"
