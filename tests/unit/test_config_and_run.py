"""
Unit tests for configuration loading and the command line entry point.
"""

import os
from unittest.mock import patch

import pytest
from web3 import Web3

from inbox_bridge import run
from inbox_bridge.config import BridgeConfig, connect, load_config
from inbox_bridge.gas_limits import ZERO_ADDRESS

from conftest import INBOX_ADDRESS, TEST_PRIVATE_KEY


class TestLoadConfig:
    def test_minimal_environment(self):
        config = load_config(
            environ={
                "INBOX_BRIDGE_RPC_URL": "http://localhost:8545",
                "INBOX_BRIDGE_INBOX_ADDRESS": INBOX_ADDRESS,
            }
        )
        assert config.rpc_url == "http://localhost:8545"
        assert config.inbox_address == INBOX_ADDRESS
        assert config.private_key is None
        assert config.gas_refunder_address == ZERO_ADDRESS
        assert config.chain_id is None
        assert not config.inject_poa_middleware

    def test_full_environment(self):
        config = load_config(
            environ={
                "INBOX_BRIDGE_RPC_URL": " http://node:8545 ",
                "INBOX_BRIDGE_INBOX_ADDRESS": INBOX_ADDRESS,
                "INBOX_BRIDGE_SEQUENCER_INBOX_ADDRESS": "0x" + "22" * 20,
                "INBOX_BRIDGE_PRIVATE_KEY": TEST_PRIVATE_KEY[2:],
                "INBOX_BRIDGE_GAS_REFUNDER_ADDRESS": "0x" + "33" * 20,
                "INBOX_BRIDGE_CHAIN_ID": "0x1",
                "INBOX_BRIDGE_POA": "true",
            }
        )
        assert config.rpc_url == "http://node:8545"
        assert config.private_key == TEST_PRIVATE_KEY
        assert config.chain_id == 1
        assert config.inject_poa_middleware
        assert config.gas_refunder_address == "0x" + "33" * 20

    def test_missing_rpc_url(self):
        with pytest.raises(ValueError):
            load_config(environ={"INBOX_BRIDGE_INBOX_ADDRESS": INBOX_ADDRESS})

    def test_invalid_chain_id(self):
        with pytest.raises(ValueError):
            load_config(
                environ={
                    "INBOX_BRIDGE_RPC_URL": "http://localhost:8545",
                    "INBOX_BRIDGE_INBOX_ADDRESS": INBOX_ADDRESS,
                    "INBOX_BRIDGE_CHAIN_ID": "mainnet",
                }
            )

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("INBOX_BRIDGE_RPC_URL", raising=False)
        monkeypatch.delenv("INBOX_BRIDGE_INBOX_ADDRESS", raising=False)
        monkeypatch.delenv("INBOX_BRIDGE_CHAIN_ID", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(
            "INBOX_BRIDGE_RPC_URL=http://from-file:8545\n"
            f"INBOX_BRIDGE_INBOX_ADDRESS={INBOX_ADDRESS}\n"
        )
        try:
            config = load_config(env_file=env_file)
        finally:
            os.environ.pop("INBOX_BRIDGE_RPC_URL", None)
            os.environ.pop("INBOX_BRIDGE_INBOX_ADDRESS", None)
        assert config.rpc_url == "http://from-file:8545"

    def test_connect_returns_client(self):
        w3 = connect(
            BridgeConfig(
                rpc_url="http://localhost:8545",
                inbox_address=INBOX_ADDRESS,
                inject_poa_middleware=True,
            )
        )
        assert isinstance(w3, Web3)


class TestRun:
    @pytest.fixture
    def config(self):
        return BridgeConfig(
            rpc_url="http://localhost:8545",
            inbox_address=INBOX_ADDRESS,
            private_key=TEST_PRIVATE_KEY,
            chain_id=1,
        )

    def test_version(self, capsys):
        assert run.main(["--version"]) == 0
        assert "inbox-bridge" in capsys.readouterr().out

    def test_sender(self, config, w3, account, capsys):
        with patch.object(run, "load_config", return_value=config), patch.object(
            run, "connect", return_value=w3
        ):
            assert run.main(["sender"]) == 0
        assert account.address in capsys.readouterr().out

    def test_reconcile(self, config, w3, inline_log, origin_log, origin_tx, capsys):
        origin = origin_log(2)
        w3.eth.get_logs.side_effect = [[origin], [inline_log(1, b"\x01\x02"), origin]]
        w3.eth.get_transaction.return_value = origin_tx(b"\xaa")
        with patch.object(run, "load_config", return_value=config), patch.object(
            run, "connect", return_value=w3
        ):
            code = run.main(
                ["reconcile", "--from-block", "5", "--to-block", "9", "1", "2", "3"]
            )
        out = capsys.readouterr().out
        assert code == 0
        assert "1: 0x0102" in out
        assert "2: 0xaa" in out
        assert "3: <not delivered in range>" in out

    def test_reconcile_failure_exit_code(self, config, w3):
        w3.eth.get_logs.side_effect = ConnectionError("down")
        with patch.object(run, "load_config", return_value=config), patch.object(
            run, "connect", return_value=w3
        ):
            assert run.main(
                ["reconcile", "--from-block", "1", "--to-block", "2", "1"]
            ) == 1

    def test_send_message(self, config, w3, capsys):
        with patch.object(run, "load_config", return_value=config), patch.object(
            run, "connect", return_value=w3
        ):
            assert run.main(["send-message", "0xdeadbeef"]) == 0
        assert capsys.readouterr().out.strip().splitlines()[-1].startswith("0x")
        w3.eth.send_raw_transaction.assert_called_once()
