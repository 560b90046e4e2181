"""Node configuration schema.

Fields are cold unless declared with ``hot()``. Only the sequencer's block
speed and the log level can currently change without a restart.
"""

from datetime import timedelta
from typing import Literal

from pydantic import Field

from liveconf.config.durations import Duration
from liveconf.config.tagging import ReloadableNode, hot

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfConfig(ReloadableNode):
    """Where the config file lives and how often to re-read it."""

    file: str | None = Field(default=None, description="path to a JSON config file")
    reload_interval: Duration = Field(
        default=timedelta(0),
        description="how often to poll the config file for changes (0 disables polling)",
    )


class PersistentConfig(ReloadableNode):
    chain: str = Field(default="", description="directory to store chain state in")


class InitConfig(ReloadableNode):
    dev_init: bool = Field(default=False, description="init with dev data")


class WalletConfig(ReloadableNode):
    pathname: str = Field(default="wallet", description="path to the keystore directory")
    password: str = Field(default="", description="wallet passphrase")


class L1Config(ReloadableNode):
    chain_id: int = Field(default=0, description="if set other than 0, will be used to validate the L1 chain")
    wallet: WalletConfig = Field(default_factory=WalletConfig)


class L2Config(ReloadableNode):
    chain_id: int = Field(default=0, description="L2 chain ID")


class ServerConfig(ReloadableNode):
    addr: str = Field(default="", description="address to listen on")
    port: int = Field(default=8547, ge=0, le=65535, description="port to listen on")


class WSConfig(ServerConfig):
    port: int = Field(default=8548, ge=0, le=65535, description="port to listen on")


class L1ReaderConfig(ReloadableNode):
    enable: bool = Field(default=True, description="enable reader connection")


class SequencerConfig(ReloadableNode):
    enable: bool = Field(default=False, description="act and post to l1 as sequencer")
    max_block_speed: Duration = hot(
        default=timedelta(milliseconds=250),
        description="minimum delay between blocks (sets a maximum speed of block production)",
    )
    forward_timeout: Duration = Field(
        default=timedelta(minutes=1),
        description="timeout when forwarding to a different sequencer",
    )
    max_tx_data_size: int = Field(
        default=95000,
        ge=0,
        description="maximum transaction size the sequencer will accept",
    )


class FeedOutputConfig(ReloadableNode):
    enable: bool = Field(default=False, description="enable broadcaster")
    port: int = Field(default=9642, ge=0, le=65535, description="port to bind the relay feed output to")


class FeedConfig(ReloadableNode):
    output: FeedOutputConfig = Field(default_factory=FeedOutputConfig)


class DangerousValidatorConfig(ReloadableNode):
    without_block_validator: bool = Field(
        default=False,
        description="DANGEROUS! allows running an L1 validator without a block validator",
    )


class ValidatorConfig(ReloadableNode):
    enable: bool = Field(default=False, description="enable validator")
    strategy: Literal["Watchtower", "Defensive", "StakeLatest", "MakeNodes"] = Field(
        default="Watchtower",
        description="L1 validator strategy",
    )
    staker_interval: Duration = Field(
        default=timedelta(minutes=1),
        description="how often the L1 validator should check the status of the L1 rollup",
    )
    dangerous: DangerousValidatorConfig = Field(default_factory=DangerousValidatorConfig)


class NodeSettings(ReloadableNode):
    """Settings of the running node. Hot as a whole; most leaves are still cold."""

    l1_reader: L1ReaderConfig = Field(default_factory=L1ReaderConfig)
    sequencer: SequencerConfig = hot(default_factory=SequencerConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    validator: ValidatorConfig = Field(default_factory=ValidatorConfig)
    forwarding_target: str = Field(
        default="",
        description="transaction forwarding target URL, or \"null\" to disable forwarding",
    )


class NodeConfig(ReloadableNode):
    """Top-level node configuration."""

    conf: ConfConfig = Field(default_factory=ConfConfig)
    persistent: PersistentConfig = Field(default_factory=PersistentConfig)
    init: InitConfig = Field(default_factory=InitConfig)
    node: NodeSettings = hot(default_factory=NodeSettings)
    l1: L1Config = Field(default_factory=L1Config)
    l2: L2Config = Field(default_factory=L2Config)
    http: ServerConfig = Field(default_factory=ServerConfig)
    ws: WSConfig = Field(default_factory=WSConfig)
    metrics: bool = Field(default=False, description="enable metrics")
    log_level: LogLevel = hot(default="INFO", description="log level")

    @classmethod
    def default(cls) -> "NodeConfig":
        """The default snapshot."""
        return cls()
