"""Download files served by the cluster (reports, restored files, logs)."""

import logging
import os
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urljoin, urlparse

from rubrik_cli.api.assembler import base_url
from rubrik_cli.client import RubrikClient

logger = logging.getLogger(__name__)


def resolve_url(server: str, url: str) -> str:
    """Join a cluster-relative path like 'download_dir/x.zip' to the server."""
    if urlparse(url).scheme:
        return url
    return urljoin(base_url(server) + "/", url.lstrip("/"))


def default_filename(url: str) -> str:
    name = PurePosixPath(unquote(urlparse(url).path)).name
    return name or "download"


def destination(path: Path | str | None, filename: str) -> Path:
    """Where to write ``filename``: a trailing slash or an existing directory keeps the name."""
    if path is None:
        return Path.cwd() / filename

    raw = os.fspath(path)
    target = Path(raw)
    if raw.endswith(("/", os.sep)) or target.is_dir():
        return target / filename
    return target


def download_file(client: RubrikClient, url: str, path: Path | str | None = None) -> Path:
    """Download ``url`` to ``path``; a directory or None keeps the remote file name."""
    connection = client.require_connection()
    full_url = resolve_url(connection.server, url)

    target = destination(path, default_filename(full_url))

    written = client.download(full_url, target)
    logger.info("Downloaded %s to %s", full_url, written)
    return written
