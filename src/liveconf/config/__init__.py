"""Node configuration schema and loading."""

from liveconf.config.durations import Duration, format_duration, parse_duration
from liveconf.config.loader import ReDerivationFailed, load_config_file, merge_values, parse_node
from liveconf.config.schema import NodeConfig
from liveconf.config.tagging import ReloadableNode, ReloadClass, evolve, hot, hot_paths

__all__ = [
    "Duration",
    "NodeConfig",
    "ReDerivationFailed",
    "ReloadClass",
    "ReloadableNode",
    "evolve",
    "format_duration",
    "hot",
    "hot_paths",
    "load_config_file",
    "merge_values",
    "parse_duration",
    "parse_node",
]
