"""CLI entry point for rubrik-cli."""

import functools
import json
import logging
from contextlib import ExitStack
from pathlib import Path

import click
import requests
from pydantic import ValidationError

from rubrik_cli.api.registry import REGISTRY, get_operation, parse_version
from rubrik_cli.api.reshape import ApiObject
from rubrik_cli.client import RubrikClient
from rubrik_cli.config import Settings, load_settings
from rubrik_cli.download import download_file
from rubrik_cli.errors import NotConnectedError, RubrikError
from rubrik_cli.operations import invoke

logger = logging.getLogger(__name__)


class CliState:
    """Options shared by every command; connects lazily on first use."""

    def __init__(self, settings: Settings, server, token, username, password, api_version, output):
        self.settings = settings
        self.server = server or settings.server
        self.token = token
        self.username = username
        self.password = password
        self.api_version = api_version or settings.api_version
        self.output = output or settings.output
        self._client: RubrikClient | None = None

    def client(self) -> RubrikClient:
        if self._client is not None:
            return self._client

        if not self.server or not (self.token or (self.username and self.password)):
            raise NotConnectedError(
                "not connected: set --server and either --token or --username/--password "
                "(or the RUBRIK_SERVER, RUBRIK_TOKEN, RUBRIK_USER, RUBRIK_PASSWORD variables)"
            )

        logger.debug("Connecting to %s", self.server)
        client = RubrikClient(
            self.server,
            verify_ssl=self.settings.verify_ssl,
            timeout=self.settings.timeout,
        )
        client.connect(
            username=self.username,
            password=self.password,
            token=self.token,
            api_version=self.api_version,
        )
        self._client = client
        return client


def handle_errors(f):
    """Report library and HTTP errors as click errors (exit code 1)."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (RubrikError, requests.RequestException, ValidationError) as e:
            raise click.ClickException(str(e)) from e

    return wrapper


class DetailProgress:
    """Progress bar on stderr for detailed-object fetches."""

    def __init__(self, label: str):
        self.label = label
        self._stack = ExitStack()
        self._bar = None

    def __call__(self, index: int, total: int) -> None:
        if self._bar is None:
            self._bar = self._stack.enter_context(
                click.progressbar(length=total, label=self.label, file=click.get_text_stream("stderr"))
            )
        self._bar.update(1)

    def close(self) -> None:
        self._stack.close()


def _render_json(objects: list[ApiObject]) -> str:
    return json.dumps(objects, indent=2, ensure_ascii=False, default=str)


def _render_table(objects: list[ApiObject]) -> str:
    """Render the scalar fields of the objects as aligned columns."""
    if not objects:
        return ""

    columns: list[str] = []
    for obj in objects:
        for key, value in obj.items():
            if key not in columns and not isinstance(value, (dict, list)):
                columns.append(key)

    rows = [["" if obj.get(c) is None else str(obj.get(c)) for c in columns] for obj in objects]
    widths = [max(len(c), *(len(r[i]) for r in rows)) for i, c in enumerate(columns)]

    lines = ["  ".join(c.ljust(w) for c, w in zip(columns, widths)).rstrip()]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(v.ljust(w) for v, w in zip(row, widths)).rstrip())
    return "\n".join(lines)


def _emit(state: CliState, objects: list[ApiObject]) -> None:
    if state.output == "table":
        text = _render_table(objects)
        if text:
            click.echo(text)
    else:
        click.echo(_render_json(objects))


def _run_operation(ctx: click.Context, operation: str, /, **fields) -> None:
    """Build the typed request for ``operation`` from CLI values and print results."""
    state: CliState = ctx.obj
    request = get_operation(operation).request_model(
        **{k: v for k, v in fields.items() if v is not None}
    )
    client = state.client()

    progress = None
    if getattr(request, "detailed", False):
        progress = DetailProgress(f"Fetching {operation.removeprefix('get-')} details")
    try:
        results = invoke(client, operation, request, progress=progress)
    finally:
        if progress:
            progress.close()

    _emit(state, results)


def _common_filters(f):
    """Options shared by the list operations that support detailed mode."""
    f = click.option("--detailed", is_flag=True, help="Fetch the full object for every result.")(f)
    f = click.option("--id", "id_", default=None, help="Object id.")(f)
    f = click.option("--primary-cluster-id", default=None, help="Cluster id, or 'local' for the connected cluster.")(f)
    return f


@click.group()
@click.option("--server", envvar="RUBRIK_SERVER", default=None, help="Cluster address (IP or FQDN).")
@click.option("--token", envvar="RUBRIK_TOKEN", default=None, help="API token.")
@click.option("--username", envvar="RUBRIK_USER", default=None, help="Username for a new session.")
@click.option("--password", envvar="RUBRIK_PASSWORD", default=None, help="Password for a new session.")
@click.option("--api-version", default=None, help="Override the API version reported by the cluster.")
@click.option("--config", "config_path", envvar="RUBRIK_CLI_CONFIG", default=None, type=click.Path(path_type=Path), help="YAML settings file.")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification.")
@click.option("-o", "--output", default=None, type=click.Choice(["json", "table"]), help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, server, token, username, password, api_version, config_path, insecure, output, verbose):
    """rubrik: command-line access to the Rubrik CDM REST API."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )

    try:
        settings = load_settings(config_path)
    except RubrikError as e:
        raise click.ClickException(str(e)) from e
    if insecure:
        settings = settings.model_copy(update={"verify_ssl": False})

    ctx.obj = CliState(settings, server, token, username, password, api_version, output)


# -- session ------------------------------------------------------------------


@main.command()
@click.pass_context
@handle_errors
def connect(ctx):
    """Open a session and print the token to export as RUBRIK_TOKEN."""
    state: CliState = ctx.obj
    connection = state.client().connection
    click.echo(f"Connected to {connection.server} (API {connection.api_version})", err=True)
    click.echo(connection.token)


@main.command()
@click.pass_context
@handle_errors
def disconnect(ctx):
    """Close the current session on the cluster."""
    state: CliState = ctx.obj
    state.client().disconnect()
    click.echo(f"Disconnected from {state.server}")


# -- hosts --------------------------------------------------------------------


@main.command("get-host")
@click.option("--name", default=None, help="Host name (supports * wildcards).")
@click.option("--hostname", default=None, help="Server-side hostname search.")
@click.option("--os-type", "operating_system_type", default=None, help="Operating system type, e.g. Linux or Windows.")
@_common_filters
@click.pass_context
@handle_errors
def get_host(ctx, name, hostname, operating_system_type, primary_cluster_id, id_, detailed):
    """List hosts registered with the cluster."""
    _run_operation(
        ctx, "get-host",
        name=name, hostname=hostname, operating_system_type=operating_system_type,
        primary_cluster_id=primary_cluster_id, id=id_, detailed=detailed,
    )


@main.command("new-host")
@click.argument("hostname")
@click.option("--has-agent/--no-agent", default=None, help="Whether the host runs the backup agent.")
@click.pass_context
@handle_errors
def new_host(ctx, hostname, has_agent):
    """Register HOSTNAME with the cluster."""
    _run_operation(ctx, "new-host", hostname=hostname, has_agent=has_agent)


@main.command("remove-host")
@click.argument("host_id")
@click.confirmation_option(prompt="Remove this host from the cluster?")
@click.pass_context
@handle_errors
def remove_host(ctx, host_id):
    """Remove the host with id HOST_ID."""
    _run_operation(ctx, "remove-host", id=host_id)


# -- protected objects --------------------------------------------------------


@main.command("get-vm")
@click.option("--name", default=None, help="VM name (supports * wildcards).")
@click.option("--sla", default=None, help="Effective SLA domain name.")
@click.option("--sla-assignment", default=None, type=click.Choice(["Derived", "Direct", "Unassigned"]), help="SLA assignment type.")
@click.option("--relic/--no-relic", "is_relic", default=None, help="Only relics / only live VMs.")
@_common_filters
@click.pass_context
@handle_errors
def get_vm(ctx, name, sla, sla_assignment, is_relic, primary_cluster_id, id_, detailed):
    """List VMware virtual machines."""
    _run_operation(
        ctx, "get-vm",
        name=name, sla=sla, sla_assignment=sla_assignment, is_relic=is_relic,
        primary_cluster_id=primary_cluster_id, id=id_, detailed=detailed,
    )


@main.command("get-sla")
@click.option("--name", default=None, help="SLA domain name (supports * wildcards).")
@click.option("--id", "id_", default=None, help="SLA domain id.")
@click.option("--primary-cluster-id", default=None, help="Cluster id, or 'local' for the connected cluster.")
@click.pass_context
@handle_errors
def get_sla(ctx, name, id_, primary_cluster_id):
    """List SLA domains."""
    _run_operation(ctx, "get-sla", name=name, id=id_, primary_cluster_id=primary_cluster_id)


@main.command("get-fileset")
@click.option("--name", default=None, help="Fileset name (supports * wildcards).")
@click.option("--host-name", default=None, help="Name of the host the fileset belongs to.")
@click.option("--host-id", default=None, help="Id of the host the fileset belongs to.")
@click.option("--sla", default=None, help="Effective SLA domain name.")
@click.option("--relic/--no-relic", "is_relic", default=None, help="Only relics / only live filesets.")
@_common_filters
@click.pass_context
@handle_errors
def get_fileset(ctx, name, host_name, host_id, sla, is_relic, primary_cluster_id, id_, detailed):
    """List filesets."""
    _run_operation(
        ctx, "get-fileset",
        name=name, host_name=host_name, host_id=host_id, sla=sla, is_relic=is_relic,
        primary_cluster_id=primary_cluster_id, id=id_, detailed=detailed,
    )


@main.command("get-database")
@click.option("--name", default=None, help="Database name (supports * wildcards).")
@click.option("--instance-id", default=None, help="SQL Server instance id.")
@click.option("--sla", default=None, help="Effective SLA domain name.")
@click.option("--relic/--no-relic", "is_relic", default=None, help="Only relics / only live databases.")
@_common_filters
@click.pass_context
@handle_errors
def get_database(ctx, name, instance_id, sla, is_relic, primary_cluster_id, id_, detailed):
    """List SQL Server databases."""
    _run_operation(
        ctx, "get-database",
        name=name, instance_id=instance_id, sla=sla, is_relic=is_relic,
        primary_cluster_id=primary_cluster_id, id=id_, detailed=detailed,
    )


# -- cluster ------------------------------------------------------------------


@main.command("get-event")
@click.option("--limit", default=None, type=int, help="Maximum number of events.")
@click.option("--after-id", default=None, help="Only events after this event id.")
@click.option("--event-type", default=None, help="Event type, e.g. Backup or Replication.")
@click.option("--status", default=None, help="Event status, e.g. Failure.")
@click.option("--object-name", default=None, help="Name of the object the event refers to.")
@click.option("--object-type", default=None, help="Type of the object the event refers to.")
@click.pass_context
@handle_errors
def get_event(ctx, limit, after_id, event_type, status, object_name, object_type):
    """List recent cluster events."""
    _run_operation(
        ctx, "get-event",
        limit=limit, after_id=after_id, event_type=event_type, status=status,
        object_name=object_name, object_type=object_type,
    )


@main.command("get-request")
@click.argument("request_type")
@click.argument("request_id")
@click.pass_context
@handle_errors
def get_request(ctx, request_type, request_id):
    """Show the status of async request REQUEST_ID of REQUEST_TYPE (e.g. vmware/vm)."""
    _run_operation(ctx, "get-request", type=request_type, id=request_id)


@main.command("get-version")
@click.pass_context
@handle_errors
def get_version(ctx):
    """Show the software version of the cluster."""
    _run_operation(ctx, "get-version")


@main.command()
@click.argument("url")
@click.option("-p", "--path", default=None, type=click.Path(), help="Destination file, or directory when it ends with a slash.")
@click.pass_context
@handle_errors
def download(ctx, url, path):
    """Download URL (absolute, or relative to the cluster) to a local file."""
    state: CliState = ctx.obj
    written = download_file(state.client(), url, path)
    click.echo(f"Saved {written}")


@main.command()
def endpoints():
    """List every operation and its descriptors by API version."""
    for name, operation in REGISTRY.items():
        click.echo(name)
        for version in sorted(operation.versions, key=parse_version):
            ep = operation.versions[version]
            click.echo(f"  {version:<6} {ep.method:<7} {ep.uri}  {ep.description}")
