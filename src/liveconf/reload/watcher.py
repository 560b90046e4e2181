"""Change detection for the configuration file."""

import hashlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ConfigWatcher:
    """Watches a configuration file for changes.

    Uses modification time and size to notice a possible change, then a
    content hash to confirm it, so touching a file without editing it is
    not reported.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._last_stat: tuple[int, int] | None = None
        self._last_hash: str | None = None

        # Initialize state if file exists
        if self.path.exists():
            self._last_stat = self._stat()
            self._last_hash = self._compute_hash()

    def _stat(self) -> tuple[int, int] | None:
        try:
            st = self.path.stat()
        except OSError:
            return None
        return st.st_mtime_ns, st.st_size

    def _compute_hash(self) -> str | None:
        """Compute SHA256 hash of file content."""
        try:
            content = self.path.read_bytes()
        except OSError:
            return None
        return hashlib.sha256(content).hexdigest()

    def check_changed(self) -> bool:
        """Check if the config file has changed.

        Returns:
            True if the content differs from the last check. A file that
            disappears is not reported until it comes back changed.
        """
        stat = self._stat()
        if stat is None or stat == self._last_stat:
            return False
        self._last_stat = stat

        new_hash = self._compute_hash()
        if new_hash is None or new_hash == self._last_hash:
            return False

        self._last_hash = new_hash
        logger.debug(f"Config file {self.path} changed")
        return True
