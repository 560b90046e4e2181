"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from liveconf.config import NodeConfig, parse_node

SEQUENCER_ARGS = [
    "--persistent.chain", "/tmp/data",
    "--init.dev-init",
    "--node.l1-reader.enable=false",
    "--l1.chain-id", "5",
    "--l2.chain-id", "421613",
    "--l1.wallet.pathname", "/l1keystore",
    "--l1.wallet.password", "passphrase",
    "--http.addr", "0.0.0.0",
    "--ws.addr", "0.0.0.0",
    "--node.sequencer.enable",
    "--node.feed.output.enable",
    "--node.feed.output.port", "9642",
]  # fmt: skip


@pytest.fixture
def sequencer_args() -> list[str]:
    """Arguments of a sequencer node, without a config file."""
    return list(SEQUENCER_ARGS)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """An empty JSON config file."""
    path = tmp_path / "config.json"
    path.write_text("{}")
    return path


@pytest.fixture
def node_args(sequencer_args: list[str], config_file: Path) -> list[str]:
    """Sequencer arguments pointing at the config file."""
    return [*sequencer_args, "--conf.file", str(config_file)]


@pytest.fixture
def node_config(node_args: list[str]) -> NodeConfig:
    """The config parsed from node_args."""
    return parse_node(node_args)
