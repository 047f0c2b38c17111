# sync/engine.py
"""
Cross-process snapshot sync.

SnapshotPoller   - re-reads the newest snapshot every `interval` seconds and
                   fires its callback on every tick (consumers are idempotent)
DebouncedWatcher - one watched file; bursts of change events collapse into a
                   single reload after a quiet period
SyncEngine       - owns both and stops them together

Callbacks go through a dispatcher (callable taking a zero-arg function) so a
GUI can run them on its own thread. After stop() returns nothing is delivered,
even if a read was already in flight.
"""
from __future__ import annotations
import enum
import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from shift_sync.data.data_manager import AppConfig
from shift_sync.data.file_lock import read_text_locked
from shift_sync.data.normalizer import normalize_report, default_report
from shift_sync.data.snapshot_locator import find_latest_snapshot
from shift_sync.exceptions import FileLockedError, ReportFormatError

_logger = logging.getLogger(__name__)

Dispatcher = Callable[[Callable[[], None]], None]


def inline_dispatcher(fn: Callable[[], None]) -> None:
    fn()


def read_json_with_retry(path: Path, attempts: int = 3, initial_delay: float = 0.1,
                         reader: Callable[[Path], str] = read_text_locked,
                         sleep: Callable[[float], None] = time.sleep,
                         raise_on_lock: bool = False):
    """
    Decoded JSON from `path`, or None.

    A locked file is retried `attempts` times, waiting initial_delay, then
    twice that, and so on. A missing, empty or undecodable file is not retried.
    """
    delay = initial_delay
    for attempt in range(1, attempts + 1):
        try:
            text = reader(path)
        except FileLockedError:
            if attempt >= attempts:
                _logger.warning("%s still locked after %d attempts, deferring", path, attempts)
                if raise_on_lock:
                    raise
                return None
            _logger.debug("%s locked (attempt %d/%d), retrying in %.3fs", path, attempt, attempts, delay)
            sleep(delay)
            delay *= 2
            continue
        except FileNotFoundError:
            return None
        except OSError as exc:
            _logger.warning("cannot read %s: %s", path, exc)
            return None
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            _logger.warning("%s is not valid JSON: %s", path, exc)
            return None
    return None


class SnapshotLoader:
    """Newest snapshot -> canonical report."""

    def __init__(self, reports_dir, manager_prefixes: Sequence[str] = (),
                 attempts: int = 3, initial_delay: float = 0.1,
                 reader: Callable[[Path], str] = read_text_locked,
                 sleep: Callable[[float], None] = time.sleep):
        self.reports_dir = Path(reports_dir)
        self.manager_prefixes = list(manager_prefixes)
        self.attempts = attempts
        self.initial_delay = initial_delay
        self._reader = reader
        self._sleep = sleep

    def load(self) -> Optional[dict]:
        """
        - no snapshot at all -> default report (normalizer is not called)
        - unreadable / not a report -> default report
        - still locked after retries -> None, caller waits for the next change
        """
        path = find_latest_snapshot(self.reports_dir)
        if path is None:
            return default_report()
        try:
            raw = read_json_with_retry(path, self.attempts, self.initial_delay,
                                       reader=self._reader, sleep=self._sleep, raise_on_lock=True)
        except FileLockedError:
            return None
        if raw is None:
            return default_report()
        try:
            return normalize_report(raw, self.manager_prefixes)
        except ReportFormatError as exc:
            _logger.warning("%s: %s", path.name, exc)
            return default_report()


class SnapshotPoller:
    def __init__(self, loader: SnapshotLoader, callback: Callable[[dict], None],
                 interval: float = 30.0, dispatcher: Optional[Dispatcher] = None):
        self.loader = loader
        self.callback = callback
        self.interval = interval
        self._dispatch = dispatcher or inline_dispatcher
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="snapshot-poller", daemon=True)
        self._thread.start()

    def _run(self):
        while not self._stop.is_set():
            try:
                self.poll_now()
            except Exception:
                _logger.exception("poll cycle failed")
            if self._stop.wait(self.interval):
                break

    def poll_now(self) -> bool:
        """One load + callback. Returns False when nothing was delivered."""
        report = self.loader.load()
        if report is None or self._stop.is_set():
            return False

        def deliver():
            if not self._stop.is_set():
                self.callback(report)
        self._dispatch(deliver)
        return True

    def stop(self, timeout: float = 5.0):
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
        self._thread = None


class WatchState(enum.Enum):
    IDLE = "idle"
    PENDING_RELOAD = "pending_reload"
    RELOADING = "reloading"
    STOPPED = "stopped"


class DebouncedWatcher:
    """
    IDLE -> PENDING_RELOAD on a change (timer (re)started)
    PENDING_RELOAD -> RELOADING when the quiet period passes
    RELOADING -> IDLE after the read; a change during the read goes back
    to PENDING_RELOAD instead.
    """

    def __init__(self, path, on_reload: Callable[[object], None], quiet_period: float = 0.5,
                 attempts: int = 3, initial_delay: float = 0.1,
                 dispatcher: Optional[Dispatcher] = None,
                 reader: Callable[[Path], str] = read_text_locked,
                 sleep: Callable[[float], None] = time.sleep):
        self.path = Path(path)
        self.on_reload = on_reload
        self.quiet_period = quiet_period
        self.attempts = attempts
        self.initial_delay = initial_delay
        self._dispatch = dispatcher or inline_dispatcher
        self._reader = reader
        self._sleep = sleep
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self.state = WatchState.IDLE
        self.reload_count = 0

    def notify_changed(self):
        with self._lock:
            if self.state is WatchState.STOPPED:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self.quiet_period, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self.state = WatchState.PENDING_RELOAD
            self._timer.start()

    def _fire(self, generation: int):
        with self._lock:
            if self.state is WatchState.STOPPED or generation != self._generation:
                return
            self._timer = None
            self.state = WatchState.RELOADING

        data = read_json_with_retry(self.path, self.attempts, self.initial_delay,
                                    reader=self._reader, sleep=self._sleep)

        with self._lock:
            if self.state is WatchState.STOPPED:
                return
            if self.state is WatchState.RELOADING:
                self.state = WatchState.IDLE
            if data is None:
                _logger.warning("reload of %s deferred until the next change", self.path.name)
                return
            self.reload_count += 1

        def deliver():
            if self.state is not WatchState.STOPPED:
                self.on_reload(data)
        self._dispatch(deliver)

    def stop(self):
        with self._lock:
            self.state = WatchState.STOPPED
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def resume(self):
        """STOPPED -> IDLE, so a restarted engine can reuse the watcher."""
        with self._lock:
            if self.state is WatchState.STOPPED:
                self.state = WatchState.IDLE


class MtimeObserver:
    """
    Toolkit-free change source: checks the file's mtime every `interval`
    seconds and calls notify() when it moves.
    """

    def __init__(self, path, notify: Callable[[], None], interval: float = 1.0):
        self.path = Path(path)
        self._notify = notify
        self.interval = interval
        self._last = self._mtime()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"mtime-{self.path.name}", daemon=True)
        self._thread.start()

    def _mtime(self):
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None

    def _run(self):
        while not self._stop.wait(self.interval):
            current = self._mtime()
            if current != self._last:
                self._last = current
                self._notify()

    def close(self):
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join(self.interval * 2)


ObserverFactory = Callable[[Path, Callable[[], None]], object]


class SyncEngine:
    """
    Reader-side sync for one process.

    observer_factory(path, notify) must return an object with close(); the
    Qt app passes QtFileWatcher, everything else gets MtimeObserver.
    """

    def __init__(self, config: AppConfig, on_report: Optional[Callable[[dict], None]] = None,
                 dispatcher: Optional[Dispatcher] = None,
                 observer_factory: Optional[ObserverFactory] = None):
        self.config = config
        self._dispatch = dispatcher or inline_dispatcher
        self._observer_factory = observer_factory or MtimeObserver
        self.loader = SnapshotLoader(config.reports_path, config.manager_role_prefixes,
                                     config.retry_attempts, config.retry_initial_delay_ms / 1000.0)
        self.poller: Optional[SnapshotPoller] = None
        if on_report is not None:
            self.poller = SnapshotPoller(self.loader, on_report, config.sync_interval_seconds, self._dispatch)
        self._watchers: List[DebouncedWatcher] = []
        self._observers: List[object] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def watch(self, path, callback: Callable[[object], None]) -> DebouncedWatcher:
        w = DebouncedWatcher(path, callback, self.config.debounce_ms / 1000.0,
                             self.config.retry_attempts, self.config.retry_initial_delay_ms / 1000.0,
                             dispatcher=self._dispatch)
        self._watchers.append(w)
        if self._running:
            self._observers.append(self._observer_factory(w.path, w.notify_changed))
        return w

    def start(self):
        if self._running:
            return
        self._running = True
        for w in self._watchers:
            w.resume()
            self._observers.append(self._observer_factory(w.path, w.notify_changed))
        if self.poller is not None and self.config.sync_enabled:
            self.poller.start()
        _logger.info("sync started: %s every %ss, %d watched files",
                     self.config.reports_directory, self.config.sync_interval_seconds, len(self._watchers))

    def stop(self):
        if not self._running:
            return
        self._running = False
        for obs in self._observers:
            try:
                obs.close()
            except (RuntimeError, OSError) as exc:
                _logger.warning("closing file observer failed: %s", exc)
        self._observers = []
        for w in self._watchers:
            w.stop()
        if self.poller is not None:
            self.poller.stop()
        _logger.info("sync stopped")

    def refresh_now(self) -> bool:
        if self.poller is None:
            return False
        return self.poller.poll_now()

    def set_poll_interval(self, seconds) -> bool:
        """Takes effect after the current wait."""
        if self.poller is None or not seconds or seconds <= 0:
            return False
        self.poller.interval = seconds
        return True
