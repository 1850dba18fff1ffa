"""Temporary workspace storage with time-based cleanup."""

from __future__ import annotations

import shutil
import tempfile
import time
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional

from .utils import get_logger

LOGGER = get_logger("splitwrangler.storage")


class TempStorage:
    """Creates per-operation directories and removes them once their TTL expires."""

    def __init__(self, root: Optional[Path] = None, clock: Callable[[], float] = time.time) -> None:
        self.root = Path(root) if root is not None else Path(tempfile.gettempdir()) / "splitwrangler"
        self._clock = clock
        self._expiry: Dict[Path, Optional[float]] = {}
        self._lock = Lock()

    def create_temp(self, prefix: str = "split_") -> Path:
        """Create and track a fresh directory under :attr:`root`."""

        self.root.mkdir(parents=True, exist_ok=True)
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=self.root))
        with self._lock:
            self._expiry[path] = None
        return path

    def schedule_cleanup(self, path: Path, ttl_seconds: float) -> None:
        """Mark ``path`` for removal ``ttl_seconds`` from now."""

        with self._lock:
            self._expiry[Path(path)] = self._clock() + ttl_seconds

    def purge_expired(self) -> int:
        """Remove every tracked path whose cleanup time has passed."""

        now = self._clock()
        with self._lock:
            expired = [path for path, when in self._expiry.items() if when is not None and when <= now]
            for path in expired:
                del self._expiry[path]
        for path in expired:
            self._delete(path)
        if expired:
            LOGGER.info("Purged %d expired workspaces", len(expired))
        return len(expired)

    def remove(self, path: Path) -> None:
        with self._lock:
            self._expiry.pop(Path(path), None)
        self._delete(Path(path))

    def cleanup_all(self) -> None:
        with self._lock:
            paths = list(self._expiry)
            self._expiry.clear()
        for path in paths:
            self._delete(path)

    def tracked(self) -> int:
        with self._lock:
            return len(self._expiry)

    @staticmethod
    def _delete(path: Path) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            LOGGER.warning("Could not remove workspace %s: %s", path, exc)


__all__ = ["TempStorage"]
