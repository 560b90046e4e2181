"""Process-wide live configuration."""

import logging
import signal
import threading
from collections.abc import Callable, Sequence

from liveconf.config.loader import parse_node
from liveconf.config.schema import NodeConfig
from liveconf.reload.store import ConfigSnapshotStore
from liveconf.reload.trigger import DEFAULT_RELOAD_SIGNAL, ReloadResult, ReloadTrigger
from liveconf.reload.validator import ReloadValidator, default_validator

logger = logging.getLogger(__name__)

ConfigListener = Callable[[NodeConfig, NodeConfig, list[str]], object]


class LiveConfigManager:
    """Owns the active NodeConfig and reloads it while the process runs.

    Responsibilities:
    - Check the schema's reload tags once at construction
    - Serve ``get``/``set`` to the rest of the process
    - Re-derive the config on the reload signal or when the config file changes
    - Notify listeners after each committed change
    """

    def __init__(
        self,
        args: Sequence[str],
        config: NodeConfig,
        *,
        derive: Callable[[], NodeConfig] | None = None,
        reload_signal: signal.Signals | None = DEFAULT_RELOAD_SIGNAL,
        poll_interval: float | None = None,
        validator: ReloadValidator | None = None,
    ):
        """Initialize the manager.

        Args:
            args: The startup argument list, re-parsed on every reload.
            config: The initial config, parsed from ``args``.
            derive: Replaces re-parsing ``args`` as the source of candidates.
            reload_signal: Signal that triggers a reload. None disables it.
            poll_interval: Seconds between config file checks. Defaults to
                ``conf.reload-interval``; 0 disables polling.
            validator: Reload validator to use.

        Raises:
            TagInvariantViolation: If the schema's reload tags are inconsistent.
        """
        self.args = list(args)
        self.validator = validator or default_validator
        self.validator.check_tags(type(config))

        self.store: ConfigSnapshotStore[NodeConfig] = ConfigSnapshotStore(config, self.validator)
        self._listeners: list[ConfigListener] = []
        # held across swap and notify so listeners see commits in order
        self._commit_lock = threading.RLock()

        if poll_interval is None:
            poll_interval = config.conf.reload_interval.total_seconds()
        self.trigger = ReloadTrigger(
            derive=derive or self._derive,
            submit=self.set,
            config_path=config.conf.file,
            reload_signal=reload_signal,
            poll_interval=poll_interval,
        )

    def _derive(self) -> NodeConfig:
        return parse_node(self.args)

    def get(self) -> NodeConfig:
        """Return the current config snapshot."""
        return self.store.get()

    def set(self, candidate: NodeConfig) -> list[str]:
        """Replace the current config if the change is reload-safe.

        Returns:
            Dotted paths of the hot fields that changed.

        Raises:
            UnsafeReloadRejected: If a field that requires a restart differs.
        """
        with self._commit_lock:
            old, changed = self.store.swap(candidate)
            if changed:
                self._notify(old, candidate, changed)
        return changed

    def add_listener(self, listener: ConfigListener) -> None:
        """Call ``listener(old, new, changed_paths)`` after each committed change.

        Listeners run on the committing thread, one commit at a time and in
        commit order. A listener must not wait on another thread that calls
        ``set``.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: ConfigListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, old: NodeConfig, new: NodeConfig, changed: list[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(old, new, changed)
            except Exception as e:
                logger.exception(f"Config listener error: {e}")

    async def start(self) -> None:
        """Start listening for reload events. Returns immediately."""
        self.trigger.start()

    async def stop(self) -> None:
        """Stop listening for reload events. The current config stays in place."""
        await self.trigger.stop()

    async def reload(self) -> ReloadResult:
        """Run one reload cycle now, as if the reload signal had arrived."""
        return await self.trigger.reload_once("manual")

    def get_reload_history(self, limit: int = 10) -> list[ReloadResult]:
        return self.trigger.get_reload_history(limit)
