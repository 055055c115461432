import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from click.testing import CliRunner

from rubrik_cli.api.base import (
    GetDatabaseRequest,
    GetFilesetRequest,
    GetHostRequest,
    GetRequestRequest,
    GetSlaRequest,
    GetVmRequest,
    NewHostRequest,
    RemoveHostRequest,
)
from rubrik_cli.api.reshape import ApiObject
from rubrik_cli.cli import _render_table, main
from rubrik_cli.errors import MalformedResultError

FIXTURES = Path(__file__).parent / "fixtures"

CLEAN_ENV = {
    "RUBRIK_SERVER": None,
    "RUBRIK_TOKEN": None,
    "RUBRIK_USER": None,
    "RUBRIK_PASSWORD": None,
    "RUBRIK_CLI_CONFIG": None,
}

CONNECTED = ["--server", "cluster01", "--token", "tok", "--api-version", "5.1"]


@pytest.fixture
def runner():
    return CliRunner(env=CLEAN_ENV)


def _hosts() -> list[ApiObject]:
    return [
        ApiObject({"id": "Host:::1", "name": "web01", "status": "Connected"}, "Rubrik.Host"),
        ApiObject({"id": "Host:::2", "name": "web02", "status": "Connected"}, "Rubrik.Host"),
    ]


class TestNotConnected:
    @patch("rubrik_cli.cli.RubrikClient")
    def test_missing_credentials(self, MockClient, runner):
        result = runner.invoke(main, ["--server", "cluster01", "get-host"])

        assert result.exit_code == 1
        assert "not connected" in result.output
        MockClient.assert_not_called()

    @patch("rubrik_cli.cli.RubrikClient")
    def test_missing_server(self, MockClient, runner):
        result = runner.invoke(main, ["--token", "tok", "get-vm"])
        assert result.exit_code == 1
        assert "not connected" in result.output


class TestCliGetHost:
    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_json_output(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = _hosts()

        result = runner.invoke(main, CONNECTED + ["get-host", "--name", "web*"])

        assert result.exit_code == 0, result.output
        assert [h["name"] for h in json.loads(result.output)] == ["web01", "web02"]
        client, name, request = mock_invoke.call_args[0]
        assert name == "get-host"
        assert request == GetHostRequest(name="web*")
        assert mock_invoke.call_args[1]["progress"] is None

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_connects_with_options(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = []

        result = runner.invoke(main, CONNECTED + ["--insecure", "get-host"])

        assert result.exit_code == 0, result.output
        MockClient.assert_called_once_with("cluster01", verify_ssl=False, timeout=30)
        MockClient.return_value.connect.assert_called_once_with(
            username=None, password=None, token="tok", api_version="5.1"
        )

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_env_vars(self, MockClient, mock_invoke):
        mock_invoke.return_value = []
        runner = CliRunner(env={**CLEAN_ENV, "RUBRIK_SERVER": "envcluster", "RUBRIK_TOKEN": "envtok"})

        result = runner.invoke(main, ["get-host"])

        assert result.exit_code == 0, result.output
        assert MockClient.call_args[0][0] == "envcluster"
        assert MockClient.return_value.connect.call_args[1]["token"] == "envtok"

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_table_output(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = _hosts()

        result = runner.invoke(main, CONNECTED + ["-o", "table", "get-host"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].split() == ["id", "name", "status"]
        assert "web02" in lines[3]

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_detailed_passes_progress(self, MockClient, mock_invoke, runner):
        def fake_invoke(client, name, request, progress=None):
            progress(1, 2)
            progress(2, 2)
            return _hosts()

        mock_invoke.side_effect = fake_invoke

        result = runner.invoke(main, CONNECTED + ["get-host", "--detailed"])

        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][2].detailed is True

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_http_error_reported(self, MockClient, mock_invoke, runner):
        mock_invoke.side_effect = requests.HTTPError("500 Server Error")

        result = runner.invoke(main, CONNECTED + ["get-host"])

        assert result.exit_code == 1
        assert "500 Server Error" in result.output


class TestCliOtherOperations:
    @pytest.mark.parametrize("command, request_model", [
        ("get-host", GetHostRequest),
        ("get-vm", GetVmRequest),
        ("get-sla", GetSlaRequest),
        ("get-fileset", GetFilesetRequest),
        ("get-database", GetDatabaseRequest),
    ])
    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_name_option(self, MockClient, mock_invoke, command, request_model, runner):
        mock_invoke.return_value = []

        result = runner.invoke(main, CONNECTED + [command])
        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][1] == command

        result = runner.invoke(main, CONNECTED + [command, "--name", "prod*"])
        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][2] == request_model(name="prod*")

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_malformed_result_reported(self, MockClient, mock_invoke, runner):
        mock_invoke.side_effect = MalformedResultError("get-vm result has no id: {'name': 'x'}")

        result = runner.invoke(main, CONNECTED + ["get-vm", "--detailed"])

        assert result.exit_code == 1
        assert "has no id" in result.output

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_get_vm_flags(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = []

        result = runner.invoke(main, CONNECTED + [
            "get-vm", "--sla", "Gold", "--no-relic", "--sla-assignment", "Direct",
            "--primary-cluster-id", "local",
        ])

        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][2] == GetVmRequest(
            sla="Gold", is_relic=False, sla_assignment="Direct", primary_cluster_id="local"
        )

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_new_host(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = [ApiObject({"id": "Host:::3", "hostname": "web03"}, "Rubrik.Host")]

        result = runner.invoke(main, CONNECTED + ["new-host", "web03", "--has-agent"])

        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][1:] == ("new-host", NewHostRequest(hostname="web03", has_agent=True))

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_remove_host_needs_confirmation(self, MockClient, mock_invoke, runner):
        result = runner.invoke(main, CONNECTED + ["remove-host", "Host:::3"], input="n\n")
        assert result.exit_code != 0
        mock_invoke.assert_not_called()

        mock_invoke.return_value = [ApiObject({"status": "Success", "http_status_code": 204})]
        result = runner.invoke(main, CONNECTED + ["remove-host", "Host:::3", "--yes"])
        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][2] == RemoveHostRequest(id="Host:::3")

    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_get_request(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = [ApiObject({"id": "REQ_1", "status": "SUCCEEDED"}, "Rubrik.Request")]

        result = runner.invoke(main, CONNECTED + ["get-request", "vmware/vm", "REQ_1"])

        assert result.exit_code == 0, result.output
        assert mock_invoke.call_args[0][2] == GetRequestRequest(type="vmware/vm", id="REQ_1")
        assert "SUCCEEDED" in result.output


class TestCliSession:
    @patch("rubrik_cli.cli.RubrikClient")
    def test_connect_prints_token(self, MockClient, runner):
        MockClient.return_value.connection = MagicMock(server="cluster01", api_version="5.1.2", token="tok-1")

        result = runner.invoke(main, ["--server", "cluster01", "--username", "admin", "--password", "pw", "connect"])

        assert result.exit_code == 0, result.output
        assert "tok-1" in result.output
        MockClient.return_value.connect.assert_called_once_with(
            username="admin", password="pw", token=None, api_version=None
        )

    @patch("rubrik_cli.cli.RubrikClient")
    def test_disconnect(self, MockClient, runner):
        result = runner.invoke(main, CONNECTED + ["disconnect"])

        assert result.exit_code == 0, result.output
        MockClient.return_value.disconnect.assert_called_once()


class TestCliDownload:
    @patch("rubrik_cli.cli.download_file")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_download(self, MockClient, mock_download, runner, tmp_path):
        mock_download.return_value = tmp_path / "report.csv"

        result = runner.invoke(main, CONNECTED + ["download", "download_dir/report.csv", "-p", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "report.csv" in result.output
        assert mock_download.call_args[0][1:] == ("download_dir/report.csv", str(tmp_path))

    @patch("rubrik_cli.cli.download_file")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_trailing_slash_kept(self, MockClient, mock_download, runner):
        mock_download.return_value = Path("reports/report.csv")

        result = runner.invoke(main, CONNECTED + ["download", "download_dir/report.csv", "-p", "./reports/"])

        assert result.exit_code == 0, result.output
        assert mock_download.call_args[0][2] == "./reports/"


class TestCliConfig:
    @patch("rubrik_cli.cli.invoke")
    @patch("rubrik_cli.cli.RubrikClient")
    def test_settings_file_supplies_defaults(self, MockClient, mock_invoke, runner):
        mock_invoke.return_value = _hosts()

        result = runner.invoke(main, [
            "--config", str(FIXTURES / "settings.yaml"), "--token", "tok", "get-host",
        ])

        assert result.exit_code == 0, result.output
        MockClient.assert_called_once_with("cluster01.example.com", verify_ssl=False, timeout=60)
        assert MockClient.return_value.connect.call_args[1]["api_version"] == "5.1"
        assert result.output.splitlines()[0].split() == ["id", "name", "status"]

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(main, ["--config", str(tmp_path / "nope.yaml"), "endpoints"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestCliEndpoints:
    def test_lists_registry(self, runner):
        result = runner.invoke(main, ["endpoints"])

        assert result.exit_code == 0, result.output
        assert "get-host" in result.output
        assert "/api/v2/sla_domain" in result.output


class TestRenderTable:
    def test_skips_nested_values(self):
        table = _render_table([ApiObject({"id": "1", "tags": ["a"], "meta": {"x": 1}})])
        assert table.splitlines()[0] == "id"

    def test_empty(self):
        assert _render_table([]) == ""
