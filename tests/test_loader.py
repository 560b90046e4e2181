"""Tests for building a NodeConfig from arguments and a config file."""

import json
from datetime import timedelta
from pathlib import Path

import pytest

from liveconf.config import NodeConfig, ReDerivationFailed, load_config_file, merge_values, parse_node
from liveconf.config.loader import parse_args

STAKER_ARGS = [
    "--persistent.chain", "/tmp/data",
    "--init.dev-init",
    "--node.l1-reader.enable=false",
    "--l1.chain-id", "5",
    "--l2.chain-id", "421613",
    "--l1.wallet.pathname", "/l1keystore",
    "--l1.wallet.password", "passphrase",
    "--http.addr", "0.0.0.0",
    "--ws.addr", "0.0.0.0",
    "--node.validator.enable",
    "--node.validator.strategy", "MakeNodes",
    "--node.validator.staker-interval", "10s",
    "--node.forwarding-target", "null",
    "--node.validator.dangerous.without-block-validator",
]  # fmt: skip


class TestParseArgs:
    """Tests for argument parsing."""

    def test_sequencer_config(self, sequencer_args: list[str]):
        """A sequencer argument list parses."""
        config = parse_node(sequencer_args)

        assert config.persistent.chain == "/tmp/data"
        assert config.init.dev_init is True
        assert config.node.l1_reader.enable is False
        assert config.l1.chain_id == 5
        assert config.l2.chain_id == 421613
        assert config.l1.wallet.pathname == "/l1keystore"
        assert config.http.addr == "0.0.0.0"
        assert config.ws.addr == "0.0.0.0"
        assert config.node.sequencer.enable is True
        assert config.node.feed.output.enable is True
        assert config.node.feed.output.port == 9642

    def test_unsafe_staker_config(self):
        """A validator argument list parses, including durations and choices."""
        config = parse_node(STAKER_ARGS)

        assert config.node.validator.enable is True
        assert config.node.validator.strategy == "MakeNodes"
        assert config.node.validator.staker_interval == timedelta(seconds=10)
        assert config.node.validator.dangerous.without_block_validator is True
        assert config.node.forwarding_target == "null"

    def test_defaults_fill_the_rest(self):
        """Options not given keep their defaults."""
        assert parse_node([]) == NodeConfig.default()

    def test_only_given_options_are_returned(self):
        values = parse_args(["--l2.chain-id", "7", "--node.sequencer.max-block-speed", "1s"])
        assert values == {
            "l2": {"chain-id": 7},
            "node": {"sequencer": {"max-block-speed": timedelta(seconds=1)}},
        }

    def test_bool_flag_forms(self):
        """Bare flags mean true; explicit values are honoured."""
        assert parse_node(["--metrics"]).metrics is True
        assert parse_node(["--metrics=true"]).metrics is True
        assert parse_node(["--metrics=false"]).metrics is False
        assert parse_node(["--metrics", "--l2.chain-id", "1"]).l2.chain_id == 1

    @pytest.mark.parametrize(
        "args",
        [
            ["--no.such-option", "1"],
            ["--l2.chain-id", "not-a-number"],
            ["--node.sequencer.max-block-speed", "fast"],
            ["--node.validator.strategy", "Reckless"],
            ["stray"],
        ],
    )
    def test_bad_arguments(self, args: list[str]):
        with pytest.raises(ReDerivationFailed):
            parse_node(args)

    def test_out_of_range_value(self):
        """Schema constraints surface as ReDerivationFailed."""
        with pytest.raises(ReDerivationFailed) as exc_info:
            parse_node(["--http.port", "70000"])
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestConfigFile:
    """Tests for merging the JSON config file."""

    def test_empty_file_changes_nothing(self, sequencer_args: list[str], config_file: Path):
        config = parse_node([*sequencer_args, "--conf.file", str(config_file)])

        assert config.conf.file == str(config_file)
        assert config == parse_node(sequencer_args).model_copy(
            update={"conf": config.conf}
        )

    def test_file_overrides_arguments(self, tmp_path: Path):
        """File values win over arguments; arguments supply the rest."""
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "l2": {"chain-id": 42},
                    "node": {"sequencer": {"max-block-speed": "1s"}},
                }
            )
        )

        config = parse_node(
            ["--conf.file", str(path), "--l2.chain-id", "7", "--l1.chain-id", "5"]
        )

        assert config.l2.chain_id == 42
        assert config.l1.chain_id == 5
        assert config.node.sequencer.max_block_speed == timedelta(seconds=1)

    def test_file_is_read_on_every_call(self, node_args: list[str], config_file: Path):
        """Each parse sees the current file contents."""
        before = parse_node(node_args)
        config_file.write_text('{"log-level": "DEBUG"}')
        after = parse_node(node_args)

        assert before.log_level == "INFO"
        assert after.log_level == "DEBUG"

    def test_malformed_file(self, node_args: list[str], config_file: Path):
        config_file.write_text("{not json")
        with pytest.raises(ReDerivationFailed) as exc_info:
            parse_node(node_args)
        assert "invalid JSON" in str(exc_info.value)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ReDerivationFailed) as exc_info:
            parse_node(["--conf.file", str(tmp_path / "missing.json")])
        assert "cannot read" in str(exc_info.value)

    def test_unknown_key_in_file(self, node_args: list[str], config_file: Path):
        config_file.write_text('{"node": {"turbo": true}}')
        with pytest.raises(ReDerivationFailed):
            parse_node(node_args)

    def test_file_must_hold_an_object(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ReDerivationFailed):
            load_config_file(path)


class TestMergeValues:
    """Tests for merge_values."""

    def test_deep_merge(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        override = {"a": {"c": 20, "e": 5}}

        assert merge_values(base, override) == {"a": {"b": 1, "c": 20, "e": 5}, "d": 3}
        assert base == {"a": {"b": 1, "c": 2}, "d": 3}

    def test_override_replaces_non_dicts(self):
        assert merge_values({"a": {"b": 1}}, {"a": 5}) == {"a": 5}
        assert merge_values({"a": 5}, {"a": {"b": 1}}) == {"a": {"b": 1}}
