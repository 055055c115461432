"""Reshape raw JSON responses into lists of typed result objects."""

import re

from rubrik_cli.api.base import ApiRequest, Endpoint


class ApiObject(dict):
    """A result record carrying the display type name of its endpoint."""

    def __init__(self, data: dict, type_name: str = ""):
        super().__init__(data)
        self.type_name = type_name

    def __repr__(self) -> str:
        return f"<{self.type_name or 'ApiObject'} {dict.__repr__(self)}>"


def extract(result, location: str | None) -> list:
    """Pull the sub-structure at dotted ``location`` out of ``result``.

    A missing path yields an empty list. Without a location the whole
    response is used. Single objects come back as a one-item list.
    """
    if result is None:
        return []

    node = result
    if location:
        for part in location.split("."):
            if not isinstance(node, dict) or part not in node:
                return []
            node = node[part]

    if node is None:
        return []
    if isinstance(node, list):
        return node
    return [node]


def apply_filter(items: list, endpoint: Endpoint, request: ApiRequest) -> list:
    """Keep items matching every declared filter the caller supplied.

    Values compare case-insensitively; a value containing ``*`` is treated
    as a wildcard pattern.
    """
    values = request.supplied()
    for field, prop in endpoint.filter.items():
        if field not in values:
            continue
        wanted = str(values[field]).lower()
        items = [item for item in items if _matches(item, prop, wanted)]
    return items


def _matches(item, prop: str, wanted: str) -> bool:
    if not isinstance(item, dict) or item.get(prop) is None:
        return False
    actual = str(item[prop]).lower()
    if "*" in wanted:
        return _wildcard(wanted).fullmatch(actual) is not None
    return actual == wanted


def _wildcard(pattern: str) -> re.Pattern:
    """Compile a pattern where only ``*`` is special."""
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.DOTALL)


def tag(items: list, type_name: str) -> list[ApiObject]:
    """Wrap every record in an ApiObject named ``type_name``."""
    return [ApiObject(item if isinstance(item, dict) else {"value": item}, type_name) for item in items]
