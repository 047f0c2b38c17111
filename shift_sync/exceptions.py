# exceptions.py


class ShiftSyncError(Exception):
    """Base class for errors raised inside the data and sync layers."""


class FileLockedError(ShiftSyncError):
    """The snapshot is held exclusively by the writer; try again later."""

    def __init__(self, path, message=None):
        self.path = path
        super().__init__(message or f"file is locked: {path}")


class ReportFormatError(ShiftSyncError):
    """A snapshot could not be interpreted as a report at all."""