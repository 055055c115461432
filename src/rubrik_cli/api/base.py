"""Data models for endpoint descriptors and typed operation requests.

An ``Endpoint`` describes how one operation is spoken on the wire for a
given API version. Every operation has a request model listing the fields
a caller may set; the descriptor decides which of them become query
parameters, body keys or client-side filters.
"""

from pydantic import BaseModel, ConfigDict


class Endpoint(BaseModel):
    """Wire description of one operation for one API version."""

    model_config = ConfigDict(frozen=True)

    description: str
    uri: str  # /api/v1/host/{id}
    method: str = "GET"
    query: dict[str, str] = {}  # request field -> query key
    body: dict[str, str] = {}  # request field -> body key
    result: str | None = None  # dotted path into the response, e.g. "data"
    filter: dict[str, str] = {}  # request field -> result property
    success: int = 200
    type_name: str = ""


class ApiRequest(BaseModel):
    """Base for all typed operation requests."""

    model_config = ConfigDict(extra="forbid")

    def supplied(self) -> dict:
        """Fields the caller actually set to a value."""
        return self.model_dump(exclude_none=True)


class DetailedRequest(ApiRequest):
    id: str | None = None
    detailed: bool = False


class Operation(BaseModel):
    """A named operation with its descriptors keyed by API version."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    versions: dict[str, Endpoint]
    request_model: type[ApiRequest]
    detail_operation: str | None = None


# -- request models -----------------------------------------------------------


class GetHostRequest(DetailedRequest):
    name: str | None = None
    hostname: str | None = None
    operating_system_type: str | None = None  # Linux / Windows / ...
    primary_cluster_id: str | None = None


class NewHostRequest(ApiRequest):
    hostname: str
    has_agent: bool | None = None


class RemoveHostRequest(ApiRequest):
    id: str


class GetVmRequest(DetailedRequest):
    name: str | None = None
    sla: str | None = None
    sla_assignment: str | None = None  # Derived / Direct / Unassigned
    is_relic: bool | None = None
    primary_cluster_id: str | None = None


class GetSlaRequest(ApiRequest):
    id: str | None = None
    name: str | None = None
    primary_cluster_id: str | None = None


class GetFilesetRequest(DetailedRequest):
    name: str | None = None
    host_name: str | None = None
    host_id: str | None = None
    sla: str | None = None
    is_relic: bool | None = None
    primary_cluster_id: str | None = None


class GetDatabaseRequest(DetailedRequest):
    name: str | None = None
    instance_id: str | None = None
    sla: str | None = None
    is_relic: bool | None = None
    primary_cluster_id: str | None = None


class GetEventRequest(ApiRequest):
    limit: int | None = None
    after_id: str | None = None
    event_type: str | None = None
    status: str | None = None
    object_name: str | None = None
    object_type: str | None = None


class GetRequestRequest(ApiRequest):
    id: str
    type: str  # vmware/vm, mssql, fileset, ...


class GetVersionRequest(ApiRequest):
    id: str = "me"


class GetClusterRequest(ApiRequest):
    id: str = "me"
