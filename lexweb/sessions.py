import logging
import os
import shutil
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional, Set

logger = logging.getLogger(__name__)


class SessionManager:
    """Hands out one scratch directory per request under a shared root."""

    def __init__(self, root: str):
        self.root = root
        self._active: Set[str] = set()
        self._lock = threading.Lock()

    def ensure_root(self) -> None:
        os.makedirs(self.root, exist_ok=True)

    def create(self) -> str:
        """Create a uniquely named session directory and return its path."""
        session_id = str(uuid.uuid4())
        workdir = os.path.join(self.root, session_id)
        os.mkdir(workdir)
        with self._lock:
            self._active.add(session_id)
        logger.debug("Created session %s", workdir)
        return workdir

    def destroy(self, workdir: str) -> None:
        """Remove a session directory; failures are logged, never raised."""
        with self._lock:
            self._active.discard(os.path.basename(workdir))
        try:
            shutil.rmtree(workdir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Cleanup error for %s: %s", workdir, e)
        else:
            logger.debug("Removed session %s", workdir)

    @contextmanager
    def session(self) -> Iterator[str]:
        workdir = self.create()
        try:
            yield workdir
        finally:
            self.destroy(workdir)

    def is_active(self, name: str) -> bool:
        with self._lock:
            return name in self._active

    def sweep(self, max_age: float, now: Optional[float] = None) -> List[str]:
        """Delete root entries older than ``max_age`` seconds.

        Sessions still owned by a request are skipped. Errors on one entry
        are logged and the sweep moves on to the next.
        """
        now = time.time() if now is None else now
        removed = []
        try:
            names = os.listdir(self.root)
        except OSError as e:
            logger.error("Cannot list scratch root %s: %s", self.root, e)
            return removed

        for name in names:
            if self.is_active(name):
                continue
            path = os.path.join(self.root, name)
            try:
                if now - os.stat(path).st_mtime <= max_age:
                    continue
                if os.path.isdir(path) and not os.path.islink(path):
                    shutil.rmtree(path)
                else:
                    os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error("Cleanup error for %s: %s", path, e)
                continue
            removed.append(name)

        if removed:
            logger.info("Swept %d stale entries from %s", len(removed), self.root)
        return removed


class Sweeper:
    """Periodically sweeps a session manager on a daemon timer."""

    def __init__(self, sessions: SessionManager, interval: float, max_age: float):
        self.sessions = sessions
        self.interval = interval
        self.max_age = max_age
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._stopped = True

    @property
    def running(self) -> bool:
        return not self._stopped

    def start(self) -> None:
        with self._lock:
            if not self._stopped:
                return
            self._stopped = False
            self._schedule()

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self) -> None:
        self._timer = threading.Timer(self.interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self) -> None:
        try:
            self.sessions.sweep(self.max_age)
        except Exception:
            logger.exception("Sweep of %s failed", self.sessions.root)
        with self._lock:
            if not self._stopped:
                self._schedule()
