"""HTTP client holding the connection to a Rubrik cluster.

A ``RubrikClient`` is created unconnected. ``connect`` opens a session
(or adopts an API token) and records the cluster's API version; every
operation receives the client explicitly and refuses to run until a
connection exists.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import requests
from pydantic import BaseModel

from rubrik_cli.api.assembler import base_url
from rubrik_cli.errors import ConnectionConfigError, NotConnectedError

logger = logging.getLogger(__name__)

USER_AGENT = "rubrik-cli/0.1.0"
CHUNK_SIZE = 64 * 1024


class Connection(BaseModel):
    """Authenticated session state for one cluster."""

    server: str
    token: str
    header: dict[str, str]
    api_version: str
    session_id: str = "me"  # "me" when adopted from an API token
    user_id: str | None = None
    connected_at: datetime


class RubrikClient:
    """Synchronous client for the Rubrik REST API."""

    def __init__(
        self,
        server: str,
        verify_ssl: bool = True,
        timeout: int = 30,
        session: requests.Session | None = None,
    ):
        self.server = server
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        self.connection: Connection | None = None

    # -- connection lifecycle -------------------------------------------------

    def connect(
        self,
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        api_version: str | None = None,
    ) -> Connection:
        """Authenticate against the cluster and store the connection.

        Calling it again replaces the current connection.
        """
        session_id, user_id = "me", None

        if token:
            logger.debug("Using API token for %s", self.server)
        elif username and password:
            logger.debug("Opening session on %s as %s", self.server, username)
            response = self.session.post(
                f"{base_url(self.server)}/api/v1/session",
                auth=(username, password),
                headers={"Accept": "application/json"},
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
            token = data["token"]
            session_id = data.get("id", "me")
            user_id = data.get("userId")
        else:
            raise ConnectionConfigError(
                "Provide an API token or a username and password to connect"
            )

        header = {"Authorization": f"Bearer {token}"}
        if api_version is None:
            api_version = self._fetch_version(header)

        self.connection = Connection(
            server=self.server,
            token=token,
            header=header,
            api_version=api_version,
            session_id=session_id,
            user_id=user_id,
            connected_at=datetime.now(timezone.utc),
        )
        logger.info("Connected to %s (API %s)", self.server, api_version)
        return self.connection

    def disconnect(self) -> dict:
        """Close the server-side session and forget the connection."""
        connection = self.require_connection()
        result = self.submit(
            "DELETE", f"{base_url(self.server)}/api/v1/session/{connection.session_id}"
        )
        self.connection = None
        logger.info("Disconnected from %s", self.server)
        return result

    def require_connection(self) -> Connection:
        if self.connection is None:
            raise NotConnectedError()
        return self.connection

    def _fetch_version(self, header: dict[str, str]) -> str:
        response = self.session.get(
            f"{base_url(self.server)}/api/v1/cluster/me/version",
            headers=header,
            verify=self.verify_ssl,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()["version"]

    # -- requests -------------------------------------------------------------

    def submit(self, method: str, uri: str, body: dict | None = None, success: int | None = None):
        """Send one request with the connection header and return parsed JSON.

        Responses without a body (typically DELETE) produce a status record.
        A 2xx status other than ``success`` is logged as a warning.
        """
        connection = self.require_connection()
        logger.debug("%s %s", method, uri)

        response = self.session.request(
            method=method,
            url=uri,
            json=body,
            headers=connection.header,
            verify=self.verify_ssl,
            timeout=self.timeout,
        )
        response.raise_for_status()
        if success is not None and response.status_code != success:
            logger.warning(
                "%s %s returned HTTP %d, expected %d", method, uri, response.status_code, success
            )

        if response.status_code == 204 or not response.content:
            return {"status": "Success", "http_status_code": response.status_code}
        return response.json()

    def download(self, uri: str, path: Path) -> Path:
        """Stream ``uri`` into ``path`` and return the path written."""
        connection = self.require_connection()
        logger.debug("Downloading %s to %s", uri, path)

        with self.session.get(
            uri,
            headers=connection.header,
            stream=True,
            verify=self.verify_ssl,
            timeout=self.timeout,
        ) as response:
            response.raise_for_status()
            path.parent.mkdir(parents=True, exist_ok=True)
            partial = path.with_name(path.name + ".part")
            try:
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise
            partial.replace(path)
        return path
