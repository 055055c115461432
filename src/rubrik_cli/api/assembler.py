"""Turn a typed request into a URI and a JSON body using its descriptor."""

import re
from urllib.parse import quote, urlencode

from rubrik_cli.api.base import ApiRequest, Endpoint
from rubrik_cli.errors import RequestAssemblyError

PLACEHOLDER = re.compile(r"\{(\w+)\}")


def base_url(server: str) -> str:
    """Return the scheme+host prefix for ``server`` (https unless given)."""
    server = server.rstrip("/")
    if server.startswith(("http://", "https://")):
        return server
    return f"https://{server}"


def build_uri(server: str, endpoint: Endpoint, request: ApiRequest) -> str:
    """Build the full request URI.

    ``{field}`` placeholders in the descriptor URI are filled from the
    request. An ``id`` with no matching placeholder is appended as the last
    path segment. Only declared query keys whose fields are set end up in
    the query string.
    """
    values = request.supplied()
    path = endpoint.uri
    used: set[str] = set()

    def _substitute(match: re.Match) -> str:
        field = match.group(1)
        if field not in values:
            raise RequestAssemblyError(f"Missing value for path parameter '{field}'")
        used.add(field)
        return quote(_format_value(values[field]), safe="/")

    path = PLACEHOLDER.sub(_substitute, path)
    if "id" in values and "id" not in used:
        path = f"{path}/{quote(_format_value(values['id']), safe='')}"

    uri = base_url(server) + path
    query = build_query(endpoint, request)
    if query:
        uri = f"{uri}?{query}"
    return uri


def build_query(endpoint: Endpoint, request: ApiRequest) -> str:
    """Encode the declared query keys the caller supplied, in descriptor order."""
    values = request.supplied()
    pairs = [
        (key, _format_value(values[field]))
        for field, key in endpoint.query.items()
        if field in values
    ]
    return urlencode(pairs, quote_via=quote)


def build_body(endpoint: Endpoint, request: ApiRequest) -> dict | None:
    """Collect the declared body keys the caller supplied, or None."""
    values = request.supplied()
    body = {key: values[field] for field, key in endpoint.body.items() if field in values}
    return body or None


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
