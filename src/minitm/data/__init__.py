"""
Data management submodule: storage of the live board, file I/O and backups.
"""

from .core import DataCore, BoardStore, STATE_FILENAME
from .backup import BackupManager

__all__ = [
    'DataCore',
    'BoardStore',
    'BackupManager',
    'STATE_FILENAME',
]
