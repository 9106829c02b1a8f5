"""
DataCore - locates the data directory and hands out the storage collaborators.

The board is persisted as one YAML document (`board.yml`). The store is a plain
key-value slot for the whole tree: it loads it, saves it, and treats an
unreadable file as "no prior state" rather than retrying.
"""
import os
from pathlib import Path
from typing import Optional, Union, Iterable, Callable

from minitm.recovery import FileOperationError
from minitm.models import BoardState
from minitm.logs import get_logger
from .io import atomic_write, load_model, DATA_YAML
from .backup import BackupManager

log = get_logger("data")

STATE_FILENAME = "board.yml"

class BoardStore:
    """Loads and saves the live board state."""

    def __init__(self, data_dir : Union[Path, str]):
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / STATE_FILENAME

    def load(self) -> Optional[BoardState]:
        """Return the stored board, or None when there is none to read."""
        try:
            state = load_model(BoardState, self.path)
        except FileOperationError as e:
            log.warning(f"Board storage unavailable, starting without prior state: {e}")
            return None

        if state is None:
            log.info(f"No stored board at {self.path}")
        else:
            log.debug(f"Loaded board with {len(state.projects)} project(s) from {self.path}")
        return state

    def save(self, state : BoardState) -> None:
        data = state.to_dict()
        atomic_write(DATA_YAML, self.path, data, create_dirs=True)

    def exists(self) -> bool:
        return self.path.exists()

class DataCore:
    USER_DATA_DIR = Path.home() / ".local" / "share" / "minitm" / "data"

    @staticmethod
    def get_data_dir(data_dir : Union[Path, str, None] = None) -> Path:
        """Resolve the data directory: explicit argument, then MINITM_DATA_DIR, then the user default."""
        if data_dir:
            return Path(data_dir)
        override = os.getenv("MINITM_DATA_DIR")
        if override:
            return Path(override)
        return DataCore.USER_DATA_DIR

    @staticmethod
    def get_store(data_dir : Union[Path, str, None] = None) -> BoardStore:
        return BoardStore(DataCore.get_data_dir(data_dir))

    @staticmethod
    def get_backup_manager(data_dir : Union[Path, str, None] = None) -> BackupManager:
        return BackupManager(DataCore.get_data_dir(data_dir), STATE_FILENAME)

    @staticmethod
    def get_board(data_dir : Union[Path, str, None] = None,
                  listeners : Iterable[Callable[[BoardState], None]] = ()):
        """Load (or seed) the board backed by the store in `data_dir`."""
        from minitm.board import Board
        return Board.load(DataCore.get_store(data_dir), listeners)
