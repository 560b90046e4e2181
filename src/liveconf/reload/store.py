"""Holds the active configuration snapshot."""

import logging
import threading
from typing import Generic, TypeVar

from pydantic import BaseModel

from liveconf.reload.validator import ReloadValidator, default_validator

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=BaseModel)


class ConfigSnapshotStore(Generic[C]):
    """The current configuration, replaced only by validated whole snapshots.

    Readers get the published snapshot without locking. Writers are
    serialized so each candidate is validated against the snapshot it
    replaces.
    """

    def __init__(self, initial: C, validator: ReloadValidator | None = None):
        self.validator = validator or default_validator
        self._current: C = initial
        self._previous: C | None = None
        self._version = 0
        self._write_lock = threading.Lock()

    def get(self) -> C:
        """Return the current snapshot. Never blocks."""
        return self._current

    def set(self, candidate: C) -> list[str]:
        """Validate ``candidate`` against the current snapshot and install it.

        Args:
            candidate: The proposed snapshot.

        Returns:
            Dotted paths of the hot fields that changed. When nothing changed
            the current snapshot is kept as is.

        Raises:
            UnsafeReloadRejected: If a field that requires a restart differs.
            TagInvariantViolation: If the candidate has a different schema.
        """
        _, changed = self.swap(candidate)
        return changed

    def swap(self, candidate: C) -> tuple[C, list[str]]:
        """Like ``set``, but also return the snapshot that was current.

        The returned snapshot is the one ``candidate`` was validated
        against, even if other writers commit right afterwards.
        """
        with self._write_lock:
            current = self._current
            changed = self.validator.diff(current, candidate)
            if not changed:
                return current, changed

            self._previous = current
            self._current = candidate
            self._version += 1
            version = self._version

        logger.debug(f"Installed config version {version}: {', '.join(changed)}")
        return current, changed

    @property
    def previous(self) -> C | None:
        """The snapshot replaced by the last commit, if any."""
        return self._previous

    @property
    def version(self) -> int:
        """Number of commits since creation."""
        return self._version
