"""Reload triggering: OS signal and config file polling.

Flow of one reload cycle:
1. Re-derive a candidate config (arguments + current file contents)
2. Submit it to the store, which validates and commits or rejects it
3. Log and record the outcome

A failed or rejected cycle leaves the current config in place.
"""

import asyncio
import contextlib
import logging
import signal
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from liveconf.config.loader import ReDerivationFailed
from liveconf.reload.validator import TagInvariantViolation, UnsafeReloadRejected
from liveconf.reload.watcher import ConfigWatcher

logger = logging.getLogger(__name__)

DEFAULT_RELOAD_SIGNAL: signal.Signals | None = getattr(signal, "SIGUSR1", None)


class ReloadStatus(Enum):
    """Outcome of a reload cycle."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class ReloadResult:
    """Result of a reload cycle."""

    status: ReloadStatus
    source: str
    changed: list[str] = field(default_factory=list)
    error_message: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class ReloadTrigger:
    """Turns reload requests into derive -> validate -> commit cycles.

    Requests come from the reload signal, from polling the config file, or
    from ``request()``. Requests arriving while a cycle runs collapse into a
    single pending cycle; the derive step always reads the latest file.
    """

    def __init__(
        self,
        derive: Callable[[], Any],
        submit: Callable[[Any], list[str]],
        config_path: str | Path | None = None,
        reload_signal: signal.Signals | None = DEFAULT_RELOAD_SIGNAL,
        poll_interval: float | None = None,
        history_size: int = 50,
    ):
        """Initialize the trigger.

        Args:
            derive: Builds a candidate config. Runs in a worker thread.
            submit: Validates and commits a candidate, returning changed paths.
            config_path: Config file to poll, if any.
            reload_signal: Signal that requests a reload. None disables it.
            poll_interval: Seconds between file checks. None or 0 disables polling.
            history_size: Number of results kept for diagnostics.
        """
        self._derive = derive
        self._submit = submit
        self.config_path = Path(config_path) if config_path else None
        self.reload_signal = reload_signal
        self.poll_interval = poll_interval or None

        # Baseline is taken now so edits made before start() are still seen.
        self._watcher = (
            ConfigWatcher(self.config_path)
            if self.config_path is not None and self.poll_interval
            else None
        )

        self._wake = asyncio.Event()
        self._pending_source = "manual"
        self._cycle_lock = asyncio.Lock()
        self._running = False
        self._task: asyncio.Task | None = None
        self._signal_loop: asyncio.AbstractEventLoop | None = None
        self._history: deque[ReloadResult] = deque(maxlen=history_size)

    @property
    def running(self) -> bool:
        return self._running

    def request(self, source: str = "manual") -> None:
        """Ask for a reload cycle. Must be called from the event loop thread."""
        logger.debug(f"Reload requested ({source})")
        self._pending_source = source
        self._wake.set()

    async def reload_once(self, source: str = "manual") -> ReloadResult:
        """Run one derive -> validate -> commit cycle.

        Never raises for bad config; the outcome is in the returned result.
        """
        async with self._cycle_lock:
            result = await self._cycle(source)
            self._history.append(result)
            return result

    async def _cycle(self, source: str) -> ReloadResult:
        try:
            candidate = await asyncio.to_thread(self._derive)
        except ReDerivationFailed as e:
            logger.error(f"Config reload ({source}) failed: {e}")
            return ReloadResult(ReloadStatus.FAILED, source, error_message=str(e))
        except Exception as e:
            logger.exception(f"Config reload ({source}) failed unexpectedly: {e}")
            return ReloadResult(ReloadStatus.FAILED, source, error_message=str(e))

        try:
            changed = self._submit(candidate)
        except UnsafeReloadRejected as e:
            logger.warning(f"Config reload ({source}) rejected: {e}")
            return ReloadResult(ReloadStatus.REJECTED, source, error_message=str(e))
        except TagInvariantViolation as e:
            logger.error(f"Config reload ({source}) rejected, schema mismatch: {e}")
            return ReloadResult(ReloadStatus.REJECTED, source, error_message=str(e))

        if not changed:
            logger.info(f"Config reload ({source}): no changes")
            return ReloadResult(ReloadStatus.UNCHANGED, source)

        logger.info(f"Config reloaded ({source}): {', '.join(changed)}")
        return ReloadResult(ReloadStatus.APPLIED, source, changed=changed)

    def start(self) -> None:
        """Start listening for reload requests in a background task.

        Must be called with a running event loop. Returns immediately.
        """
        if self._running:
            return
        loop = asyncio.get_running_loop()
        self._running = True
        # stop() leaves the wake flag set
        self._wake.clear()
        self._install_signal_handler(loop)
        self._task = asyncio.create_task(self._listen())
        logger.info("Reload trigger started")

    async def stop(self) -> None:
        """Stop listening. A cycle already running is allowed to finish."""
        if not self._running:
            return
        self._running = False
        self._remove_signal_handler()
        self._wake.set()

        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Reload trigger stopped")

    async def _listen(self) -> None:
        while self._running:
            if self._watcher is None:
                await self._wake.wait()
            else:
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval)
                except TimeoutError:
                    if self._watcher.check_changed():
                        self.request("file")
                    continue

            if not self._running:
                break
            self._wake.clear()
            await self.reload_once(self._pending_source)

    def _install_signal_handler(self, loop: asyncio.AbstractEventLoop) -> None:
        if self.reload_signal is None:
            return
        try:
            loop.add_signal_handler(self.reload_signal, self.request, "signal")
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.warning(f"Cannot listen for {self.reload_signal!r}: {e}")
            return
        self._signal_loop = loop
        logger.debug(f"Listening for {self.reload_signal!r}")

    def _remove_signal_handler(self) -> None:
        if self._signal_loop is None or self.reload_signal is None:
            return
        with contextlib.suppress(RuntimeError, ValueError):
            self._signal_loop.remove_signal_handler(self.reload_signal)
        self._signal_loop = None

    def get_reload_history(self, limit: int = 10) -> list[ReloadResult]:
        """Get recent reload results, oldest first.

        Args:
            limit: Maximum number of results to return.
        """
        return list(self._history)[-limit:]
