# sync/qt_bridge.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, Signal, Slot, QFileSystemWatcher, Qt

_logger = logging.getLogger(__name__)


class QtDispatcher(QObject):
    """
    Callable dispatcher for SyncEngine. Functions handed in from any thread
    run on the thread that owns this object (the GUI thread).
    """
    _invoke = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._invoke.connect(self._run, Qt.QueuedConnection)

    @Slot(object)
    def _run(self, fn):
        fn()

    def __call__(self, fn: Callable[[], None]) -> None:
        self._invoke.emit(fn)


class QtFileWatcher(QObject):
    """
    QFileSystemWatcher on one file plus its directory.

    Atomic saves (write temp, rename over) drop the file from the watch list,
    so the path is added back whenever the directory reports a change and
    the file's mtime actually moved.
    """

    def __init__(self, path, notify: Callable[[], None], parent=None):
        super().__init__(parent)
        self._path = Path(path)
        self._notify = notify
        self._last_mtime = self._mtime()
        self._watcher = QFileSystemWatcher(self)
        if self._path.parent.is_dir():
            self._watcher.addPath(str(self._path.parent))
        if self._path.exists():
            self._watcher.addPath(str(self._path))
        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_dir_changed)

    def _mtime(self):
        try:
            return self._path.stat().st_mtime_ns
        except OSError:
            return None

    def _rewatch(self):
        p = str(self._path)
        if self._path.exists() and p not in self._watcher.files():
            self._watcher.addPath(p)

    def _on_file_changed(self, _changed: str):
        self._rewatch()
        self._last_mtime = self._mtime()
        self._notify()

    def _on_dir_changed(self, _changed: str):
        current = self._mtime()
        if current is None or current == self._last_mtime:
            return
        self._last_mtime = current
        self._rewatch()
        self._notify()

    def close(self):
        try:
            self._watcher.fileChanged.disconnect(self._on_file_changed)
            self._watcher.directoryChanged.disconnect(self._on_dir_changed)
        except (RuntimeError, TypeError):
            _logger.debug("watcher for %s already disconnected", self._path)
        paths = self._watcher.files() + self._watcher.directories()
        if paths:
            self._watcher.removePaths(paths)
        self.deleteLater()
