"""liveconf - live-reloadable node configuration."""

__version__ = "0.1.0"
