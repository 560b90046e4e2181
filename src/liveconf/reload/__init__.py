"""Live configuration reloading.

- Reload-safety validation of config transitions
- Atomic snapshot store
- Reload triggering by signal and config file polling
- The process-wide live config manager
"""

from liveconf.reload.manager import LiveConfigManager
from liveconf.reload.store import ConfigSnapshotStore
from liveconf.reload.trigger import ReloadResult, ReloadStatus, ReloadTrigger
from liveconf.reload.validator import (
    ReloadValidator,
    TagInvariantViolation,
    UnsafeReloadRejected,
    check_tags,
    diff,
)
from liveconf.reload.watcher import ConfigWatcher

__all__ = [
    "ConfigSnapshotStore",
    "ConfigWatcher",
    "LiveConfigManager",
    "ReloadResult",
    "ReloadStatus",
    "ReloadTrigger",
    "ReloadValidator",
    "TagInvariantViolation",
    "UnsafeReloadRejected",
    "check_tags",
    "diff",
]
