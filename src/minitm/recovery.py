class MiniTMError(Exception):
    """Base exception for all minitm errors."""
    pass

class RecoverableError(MiniTMError):
    """An error that can be recovered from without data loss."""
    pass

class FatalError(MiniTMError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - from syntax errors in data formats, to just unknown data"""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class EntityNotFoundError(RecoverableError):
    """No project, task or subtask carries the requested identifier."""
    pass

class InvalidValueError(RecoverableError):
    """A name or title was blank after trimming."""
    pass

class SnapshotError(RecoverableError):
    """An import attempt failed; live state is untouched."""
    pass

class SnapshotFormatError(SnapshotError):
    """The decoded document is not a board snapshot."""
    pass

class SnapshotParseError(SnapshotError):
    """The import bytes are not valid JSON."""
    pass
