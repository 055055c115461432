"""Static registry of every operation the client knows how to call.

Descriptors are keyed by the lowest API version they apply to. When
connected to a cluster, the descriptor with the highest key not newer than
the cluster version is used.
"""

import logging
import re

from rubrik_cli.api.base import (
    Endpoint,
    GetClusterRequest,
    GetDatabaseRequest,
    GetEventRequest,
    GetFilesetRequest,
    GetHostRequest,
    GetRequestRequest,
    GetSlaRequest,
    GetVersionRequest,
    GetVmRequest,
    NewHostRequest,
    Operation,
    RemoveHostRequest,
)
from rubrik_cli.errors import UnknownOperationError, UnsupportedVersionError

logger = logging.getLogger(__name__)

_OPERATIONS = [
    Operation(
        name="get-host",
        request_model=GetHostRequest,
        detail_operation="get-host",
        versions={
            "1.0": Endpoint(
                description="Retrieve the hosts registered with the cluster",
                uri="/api/v1/host",
                query={
                    "hostname": "hostname",
                    "operating_system_type": "operating_system_type",
                    "primary_cluster_id": "primary_cluster_id",
                },
                result="data",
                filter={"name": "name"},
                type_name="Rubrik.Host",
            ),
        },
    ),
    Operation(
        name="new-host",
        request_model=NewHostRequest,
        versions={
            "1.0": Endpoint(
                description="Register a host with the cluster",
                uri="/api/v1/host",
                method="POST",
                body={"hostname": "hostname", "has_agent": "hasAgent"},
                success=201,
                type_name="Rubrik.Host",
            ),
        },
    ),
    Operation(
        name="remove-host",
        request_model=RemoveHostRequest,
        versions={
            "1.0": Endpoint(
                description="Remove a registered host",
                uri="/api/v1/host/{id}",
                method="DELETE",
                success=204,
            ),
        },
    ),
    Operation(
        name="get-vm",
        request_model=GetVmRequest,
        detail_operation="get-vm",
        versions={
            "1.0": Endpoint(
                description="Retrieve VMware virtual machines",
                uri="/api/v1/vmware/vm",
                query={
                    "name": "name",
                    "is_relic": "is_relic",
                    "sla_assignment": "sla_assignment",
                    "primary_cluster_id": "primary_cluster_id",
                },
                result="data",
                filter={"name": "name", "sla": "effectiveSlaDomainName"},
                type_name="Rubrik.VMwareVM",
            ),
        },
    ),
    Operation(
        name="get-sla",
        request_model=GetSlaRequest,
        versions={
            "1.0": Endpoint(
                description="Retrieve SLA domains",
                uri="/api/v1/sla_domain",
                query={"name": "name", "primary_cluster_id": "primary_cluster_id"},
                result="data",
                filter={"name": "name"},
                type_name="Rubrik.SLADomain",
            ),
            "5.0": Endpoint(
                description="Retrieve SLA domains",
                uri="/api/v2/sla_domain",
                query={"name": "name", "primary_cluster_id": "primary_cluster_id"},
                result="data",
                filter={"name": "name"},
                type_name="Rubrik.SLADomainv2",
            ),
        },
    ),
    Operation(
        name="get-fileset",
        request_model=GetFilesetRequest,
        detail_operation="get-fileset",
        versions={
            "1.0": Endpoint(
                description="Retrieve filesets",
                uri="/api/v1/fileset",
                query={
                    "name": "name",
                    "host_id": "host_id",
                    "is_relic": "is_relic",
                    "primary_cluster_id": "primary_cluster_id",
                },
                result="data",
                filter={"name": "name", "host_name": "hostName", "sla": "effectiveSlaDomainName"},
                type_name="Rubrik.Fileset",
            ),
        },
    ),
    Operation(
        name="get-database",
        request_model=GetDatabaseRequest,
        detail_operation="get-database",
        versions={
            "1.0": Endpoint(
                description="Retrieve SQL Server databases",
                uri="/api/v1/mssql/db",
                query={
                    "instance_id": "instance_id",
                    "is_relic": "is_relic",
                    "primary_cluster_id": "primary_cluster_id",
                },
                result="data",
                filter={"name": "name", "sla": "effectiveSlaDomainName"},
                type_name="Rubrik.MSSQLDatabase",
            ),
        },
    ),
    Operation(
        name="get-event",
        request_model=GetEventRequest,
        versions={
            "1.0": Endpoint(
                description="Retrieve cluster events",
                uri="/api/internal/event",
                query={
                    "limit": "limit",
                    "after_id": "after_id",
                    "event_type": "event_type",
                    "status": "status",
                    "object_name": "object_name",
                    "object_type": "object_type",
                },
                result="data",
                type_name="Rubrik.Event",
            ),
            "5.0": Endpoint(
                description="Retrieve cluster events",
                uri="/api/v1/event/latest",
                query={
                    "limit": "limit",
                    "after_id": "after_id",
                    "event_type": "event_type",
                    "status": "event_status",
                    "object_name": "object_name",
                    "object_type": "object_type",
                },
                result="data",
                type_name="Rubrik.Event",
            ),
        },
    ),
    Operation(
        name="get-request",
        request_model=GetRequestRequest,
        versions={
            "1.0": Endpoint(
                description="Retrieve the status of an asynchronous request",
                uri="/api/v1/{type}/request/{id}",
                type_name="Rubrik.Request",
            ),
        },
    ),
    Operation(
        name="get-version",
        request_model=GetVersionRequest,
        versions={
            "1.0": Endpoint(
                description="Retrieve the software version of the cluster",
                uri="/api/v1/cluster/{id}/version",
                type_name="Rubrik.ClusterVersion",
            ),
        },
    ),
    Operation(
        name="get-cluster",
        request_model=GetClusterRequest,
        versions={
            "1.0": Endpoint(
                description="Retrieve cluster settings",
                uri="/api/v1/cluster/{id}",
                type_name="Rubrik.Cluster",
            ),
        },
    ),
]

REGISTRY: dict[str, Operation] = {op.name: op for op in _OPERATIONS}


def parse_version(version: str) -> tuple[int, ...]:
    """Turn '5.1.2-p3-1234' into (5, 1, 2)."""
    numbers = re.findall(r"\d+", version.split("-")[0])
    if not numbers:
        raise UnsupportedVersionError(f"Cannot parse API version '{version}'")
    return tuple(int(n) for n in numbers[:3])


def get_operation(name: str) -> Operation:
    try:
        return REGISTRY[name]
    except KeyError:
        raise UnknownOperationError(f"Unknown operation '{name}'") from None


def resolve(name: str, api_version: str) -> Endpoint:
    """Return the descriptor of ``name`` that applies to ``api_version``."""
    operation = get_operation(name)
    target = parse_version(api_version)

    eligible = [key for key in operation.versions if parse_version(key) <= target]
    if not eligible:
        raise UnsupportedVersionError(
            f"Operation '{name}' is not available for API version {api_version}"
        )

    key = max(eligible, key=parse_version)
    logger.debug("Resolved %s for API %s to descriptor %s", name, api_version, key)
    return operation.versions[key]
