"""Run registered operations against a connected client.

Each call follows the same path: check the connection, resolve the
descriptor for the connected API version, assemble URI and body, submit,
then reshape the response. Detailed mode re-fetches every result by id.
"""

import logging
from typing import Callable

from rubrik_cli.api.assembler import build_body, build_uri
from rubrik_cli.api.base import ApiRequest, GetClusterRequest
from rubrik_cli.api.registry import get_operation, resolve
from rubrik_cli.api.reshape import ApiObject, apply_filter, extract, tag
from rubrik_cli.client import RubrikClient
from rubrik_cli.errors import MalformedResultError

logger = logging.getLogger(__name__)

Progress = Callable[[int, int], None]


def invoke(
    client: RubrikClient,
    name: str,
    request: ApiRequest,
    progress: Progress | None = None,
) -> list[ApiObject]:
    """Execute operation ``name`` with ``request`` and return typed results."""
    connection = client.require_connection()
    operation = get_operation(name)
    if not isinstance(request, operation.request_model):
        raise TypeError(
            f"Operation '{name}' expects {operation.request_model.__name__}, "
            f"got {type(request).__name__}"
        )

    endpoint = resolve(name, connection.api_version)
    request = _resolve_local_cluster(client, request)

    uri = build_uri(connection.server, endpoint, request)
    body = build_body(endpoint, request)
    response = client.submit(endpoint.method, uri, body, success=endpoint.success)

    items = extract(response, None if _fetches_by_id(endpoint, request) else endpoint.result)
    items = apply_filter(items, endpoint, request)
    results = tag(items, endpoint.type_name)

    if getattr(request, "detailed", False) and operation.detail_operation:
        results = _fetch_details(client, operation.detail_operation, results, progress)

    logger.debug("%s returned %d object(s)", name, len(results))
    return results


def _fetches_by_id(endpoint, request: ApiRequest) -> bool:
    """A list endpoint called with an id returns the bare object, not a result list."""
    return getattr(request, "id", None) is not None and "{id}" not in endpoint.uri


def _fetch_details(
    client: RubrikClient,
    name: str,
    summaries: list[ApiObject],
    progress: Progress | None,
) -> list[ApiObject]:
    request_model = get_operation(name).request_model
    total = len(summaries)
    detailed: list[ApiObject] = []

    for index, summary in enumerate(summaries, start=1):
        logger.debug("Fetching details %d/%d for %s", index, total, summary.get("id"))
        detailed.extend(invoke(client, name, request_model(id=_item_id(summary, name))))
        if progress:
            progress(index, total)

    return detailed


def _item_id(item: ApiObject, name: str) -> str:
    if item.get("id") is None:
        raise MalformedResultError(f"{name} result has no id: {dict(item)!r}")
    return item["id"]


def _resolve_local_cluster(client: RubrikClient, request: ApiRequest) -> ApiRequest:
    """Replace primary_cluster_id='local' with the connected cluster's id."""
    if getattr(request, "primary_cluster_id", None) != "local":
        return request

    cluster = invoke(client, "get-cluster", GetClusterRequest())
    if not cluster:
        raise MalformedResultError("get-cluster returned no cluster to resolve 'local' against")
    cluster_id = _item_id(cluster[0], "get-cluster")
    logger.debug("Resolved primary_cluster_id 'local' to %s", cluster_id)
    return request.model_copy(update={"primary_cluster_id": cluster_id})


# -- convenience wrappers -----------------------------------------------------


def _run(name: str):
    def call(client: RubrikClient, progress: Progress | None = None, **fields) -> list[ApiObject]:
        request = get_operation(name).request_model(**fields)
        return invoke(client, name, request, progress=progress)

    call.__name__ = name.replace("-", "_")
    call.__doc__ = f"Run the '{name}' operation with keyword request fields."
    return call


get_host = _run("get-host")
new_host = _run("new-host")
remove_host = _run("remove-host")
get_vm = _run("get-vm")
get_sla = _run("get-sla")
get_fileset = _run("get-fileset")
get_database = _run("get-database")
get_event = _run("get-event")
get_request = _run("get-request")
get_version = _run("get-version")
get_cluster = _run("get-cluster")
