import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from rubrik_cli.client import RubrikClient

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""

    def _make(json_data=None, status_code=200, content=None):
        resp = MagicMock()
        resp.status_code = status_code
        resp.json.return_value = json_data
        if content is None:
            content = b"" if json_data is None else json.dumps(json_data).encode()
        resp.content = content
        if status_code >= 400:
            resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
        return resp

    return _make


@pytest.fixture
def hosts_payload():
    return json.loads((FIXTURES / "hosts.json").read_text(encoding="utf-8"))


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    """A client connected with a token, without touching the network."""
    c = RubrikClient("cluster01.example.com", session=session)
    c.connect(token="secret-token", api_version="5.1.2")
    return c
