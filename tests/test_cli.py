import pytest
from click.testing import CliRunner

from lanchat import cli as cli_module
from lanchat.cli import cli
from lanchat.discovery import PeerRecord


class StubTable:
    def now(self):
        return 100.0


class StubDiscovery:
    created = []
    peers = []
    available = True

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.table = StubTable()
        self.started = False
        StubDiscovery.created.append(self)

    def __enter__(self):
        self.started = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.started = False

    def get_peer_id(self):
        return "peer_1"

    def get_active_peers(self):
        return list(self.peers)

    @property
    def is_available(self):
        return self.available


@pytest.fixture
def stub_discovery(monkeypatch):
    StubDiscovery.created = []
    StubDiscovery.peers = []
    StubDiscovery.available = True
    monkeypatch.setattr(cli_module, "PeerDiscovery", StubDiscovery)
    return StubDiscovery


def test_start_serves_api_on_requested_port(tmp_path, monkeypatch):
    served = []

    async def fake_run_api_server(node, host="0.0.0.0", port=8080):
        served.append((node, port))

    monkeypatch.setattr("lanchat.api.run_api_server", fake_run_api_server)

    result = CliRunner().invoke(cli, [
        "start", "--no-discovery", "--api-port", "9123",
        "--discovery-port", "40000",
        "--data-file", str(tmp_path / "messages.json"),
    ], obj={})

    assert result.exit_code == 0, result.output
    assert "LAN Chat Node Started" in result.output
    [(node, port)] = served
    assert port == 9123
    assert node.config.discovery_port == 40000
    assert node.config.auto_discover is False
    assert not node.is_running


def test_peers_lists_discovered_peers(stub_discovery):
    stub_discovery.peers = [PeerRecord("peer_2", "10.0.0.2", last_seen=98.5)]

    result = CliRunner().invoke(cli, ["peers", "--wait", "0", "--discovery-port", "9999"], obj={})

    assert result.exit_code == 0, result.output
    assert "peer_2" in result.output
    assert "10.0.0.2" in result.output
    [discovery] = stub_discovery.created
    assert discovery.kwargs["port"] == 9999
    assert discovery.kwargs["sweep_interval"] == 5.0


def test_peers_reports_empty_lan(stub_discovery):
    result = CliRunner().invoke(cli, ["peers", "--wait", "0"], obj={})

    assert result.exit_code == 0
    assert "No peers found" in result.output


def test_peers_reports_unavailable_discovery(stub_discovery):
    stub_discovery.available = False

    result = CliRunner().invoke(cli, ["peers", "--wait", "0"], obj={})

    assert result.exit_code == 0
    assert "Discovery unavailable" in result.output


def test_peers_rejects_non_positive_receive_timeout(monkeypatch):
    monkeypatch.setenv("LANCHAT_RECEIVE_TIMEOUT", "0")

    result = CliRunner().invoke(cli, ["peers", "--wait", "0"], obj={})

    assert result.exit_code == 1
    assert "receive_timeout must be positive" in result.output


def test_discovery_port_is_a_command_option():
    result = CliRunner().invoke(cli, ["--discovery-port", "9999", "config"], obj={})

    assert result.exit_code != 0
