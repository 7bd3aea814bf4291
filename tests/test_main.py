"""
Entry point tests: store selection and the end-to-end service flow with
in-memory collaborators.
"""

from unittest.mock import Mock, patch
import asyncio
import threading

import pytest

from pinkeeper import main as entry
from pinkeeper.backends import IPFSStore, LocalIPFSNode
from pinkeeper.config import PinKeeperConfig
from pinkeeper.core.errors import StoreError
from pinkeeper.core.scheduler import Scheduler


class CapturingScheduler(Scheduler):
    """Scheduler that remembers every instance run_service builds."""

    instances = []

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        CapturingScheduler.instances.append(self)


class TestStoreSelection:

    def test_remote_when_host_configured(self):
        config = PinKeeperConfig.from_env({"IPFS_HOST": "10.1.2.3", "IPFS_PORT": "5005"})

        store = entry.build_store(config)

        assert type(store) is IPFSStore
        assert store.ipfs_addr == "/ip4/10.1.2.3/tcp/5005/http"
        assert store.requires_readiness is False

    def test_local_node_otherwise(self, tmp_path):
        config = PinKeeperConfig.from_env({"IPFS_REPO_PATH": str(tmp_path)})

        store = entry.build_store(config)

        assert isinstance(store, LocalIPFSNode)
        assert store.repo_path == tmp_path.resolve()
        assert store.requires_readiness is True


class TestRunService:

    def config(self, **env):
        values = {"TEST_MAXIMUM_MINUTES": "0.01", "READINESS_POLL_SECONDS": "0.01"}
        values.update(env)
        return PinKeeperConfig.from_env(values)

    @pytest.mark.asyncio
    async def test_diagnostic_run_succeeds(self, make_store, make_resolver):
        store = make_store()
        store.requires_readiness = True
        resolver = make_resolver("QmXYZ")

        async def fake_open(config):
            return store

        with patch.object(entry, "open_store", side_effect=fake_open), \
                patch.object(entry, "DNSLinkResolver", return_value=resolver):
            exit_code = await entry.run_service(self.config(), diagnostic=True)

        assert exit_code == 0
        assert store.peer_calls >= 1
        assert store.added == ["QmXYZ"]
        assert store.closed is True

    @pytest.mark.asyncio
    async def test_readiness_timeout_in_diagnostic_mode(self, make_store, make_resolver):
        store = make_store(peer_answers=[[]])
        store.requires_readiness = True
        resolver = make_resolver("QmXYZ")

        async def fake_open(config):
            return store

        with patch.object(entry, "open_store", side_effect=fake_open), \
                patch.object(entry, "DNSLinkResolver", return_value=resolver):
            exit_code = await entry.run_service(self.config(), diagnostic=True)

        assert exit_code == 1
        assert resolver.calls == 0
        assert store.added == []
        assert store.closed is True

    @pytest.mark.asyncio
    async def test_readiness_wait_counts_against_budget(self, make_store, make_resolver):
        store = make_store(peer_answers=[[], [], ["QmPeer"]])
        store.requires_readiness = True
        config = self.config(TEST_MAXIMUM_MINUTES="0.05")
        CapturingScheduler.instances = []

        async def fake_open(config):
            return store

        with patch.object(entry, "open_store", side_effect=fake_open), \
                patch.object(entry, "DNSLinkResolver", return_value=make_resolver("QmXYZ")), \
                patch.object(entry, "Scheduler", CapturingScheduler):
            exit_code = await entry.run_service(config, diagnostic=True)

        assert exit_code == 0
        assert store.peer_calls == 3
        scheduler = CapturingScheduler.instances[0]
        assert 0 < scheduler.time_budget < config.test_maximum_seconds

    @pytest.mark.asyncio
    async def test_stop_during_pin_returns_promptly(self, make_resolver):
        """A signal while pin.add is stuck ends the run and closes the store."""
        client = Mock()
        client.version.return_value = {"Version": "0.24.0"}
        release = threading.Event()
        client.pin.add.side_effect = lambda cid, timeout=None: release.wait(5)
        store = IPFSStore()
        with patch("pinkeeper.backends.ipfs_backend.ipfshttpclient.Client", return_value=client):
            await store.connect()
        CapturingScheduler.instances = []

        async def fake_open(config):
            return store

        with patch.object(entry, "open_store", side_effect=fake_open), \
                patch.object(entry, "DNSLinkResolver", return_value=make_resolver("QmSlow")), \
                patch.object(entry, "Scheduler", CapturingScheduler):
            task = asyncio.create_task(entry.run_service(self.config(), diagnostic=False))
            for _ in range(200):
                if client.pin.add.called:
                    break
                await asyncio.sleep(0.01)
            CapturingScheduler.instances[0].stop()
            exit_code = await asyncio.wait_for(task, 1)

        assert exit_code == 0
        assert store.client is None
        client.close.assert_called_once()
        release.set()

    @pytest.mark.asyncio
    async def test_remote_store_skips_readiness(self, make_store, make_resolver):
        store = make_store(peer_answers=[[]])
        resolver = make_resolver("QmXYZ")

        async def fake_open(config):
            return store

        with patch.object(entry, "open_store", side_effect=fake_open), \
                patch.object(entry, "DNSLinkResolver", return_value=resolver):
            exit_code = await entry.run_service(self.config(), diagnostic=True)

        assert exit_code == 0
        assert store.peer_calls == 0

    @pytest.mark.asyncio
    async def test_store_failure(self):
        async def failing_open(config):
            raise StoreError("IPFS connection to /ip4/127.0.0.1/tcp/5001/http failed")

        with patch.object(entry, "open_store", side_effect=failing_open):
            exit_code = await entry.run_service(self.config())

        assert exit_code == 1


class TestArguments:

    def test_default_command(self):
        assert entry.parse_args([]).command == "run"

    def test_test_command(self):
        args = entry.parse_args(["test", "--log-level", "info"])
        assert args.command == "test"
        assert args.log_level == "INFO"

    def test_unknown_log_level_rejected(self, capsys):
        with pytest.raises(SystemExit) as exc:
            entry.parse_args(["--log-level", "verbose"])
        assert exc.value.code == 2
        assert "--log-level" in capsys.readouterr().err

    def test_bad_config_exit_code(self, monkeypatch):
        monkeypatch.setenv("IPFS_PORT", "not-a-port")
        with patch.object(entry, "configure_logging"):
            assert entry.main(["run"]) == entry.EXIT_CONFIG

    def test_bad_log_level_env_exit_code(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with patch.object(entry, "configure_logging"):
            assert entry.main(["run"]) == entry.EXIT_CONFIG
