import shutil
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List, Optional, Union

from minitm.recovery import CorruptionError, FileOperationError
from minitm.version import VERSION
from minitm.logs import get_logger
from .io import atomic_write, DATA_JSON, load_json_file

log = get_logger('data.backup')

METADATA_FILENAME = "backup.json"

class BackupManager:
    """Timestamped copies of the board state file, kept under `<data_dir>/backups`."""

    def __init__(self, data_dir : Union[Path, str], state_filename : str):
        self.data_dir = Path(data_dir)
        self.state_filename = state_filename
        self.backup_dir = self.data_dir / "backups"

    def _generate_backup_id(self, custom_name: Optional[str] = None) -> str:
        """Generate a backup ID with timestamp and optional custom name"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        if custom_name:
            # Sanitize custom name for filesystem
            safe_name = "".join(c for c in custom_name if c.isalnum() or c in ('-', '_')).strip()
            if safe_name:
                return f"{timestamp}_{safe_name}"
        return timestamp

    def _create_backup_metadata(self, backup_id: str, custom_name: Optional[str]) -> Dict[str, Any]:
        return {
            "backup_id": backup_id,
            "created_at": datetime.now().isoformat(),
            "source_path": str(self.data_dir / self.state_filename),
            "custom_name": custom_name,
            "files": [self.state_filename],
            "minitm_version": VERSION,
        }

    def create_backup(self, backup_name: Optional[str] = None) -> Path:
        """
        Copy the current state file into a new backup folder.

        Returns:
            Path to the created backup directory

        Raises:
            FileNotFoundError: There is no state file to back up yet.
        """
        source = self.data_dir / self.state_filename
        if not source.exists():
            raise FileNotFoundError(f"Nothing to back up: {source} does not exist")

        backup_id = self._generate_backup_id(backup_name)
        backup_path = self.backup_dir / backup_id
        try:
            backup_path.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, backup_path / self.state_filename)
        except OSError as e:
            raise FileOperationError(f"Could not create backup {backup_id}: {e}") from e

        atomic_write(DATA_JSON, backup_path / METADATA_FILENAME,
                     self._create_backup_metadata(backup_id, backup_name), create_dirs=True)
        log.info(f"Created backup {backup_id}")
        return backup_path

    def list_backups(self) -> List[Dict[str, Any]]:
        """List all available backups, newest first"""
        backups = []

        if not self.backup_dir.exists():
            return backups

        for backup_path in self.backup_dir.iterdir():
            if not backup_path.is_dir():
                continue
            try:
                metadata = load_json_file(backup_path / METADATA_FILENAME)
            except (CorruptionError, FileOperationError) as e:
                log.warning(f"Backup {backup_path.name} has unreadable metadata: {e}")
                metadata = None
            if metadata is None:
                # If metadata is missing or corrupted, create basic info from directory
                metadata = {
                    "backup_id": backup_path.name,
                    "created_at": "unknown",
                    "custom_name": None,
                    "files": [p.name for p in backup_path.iterdir() if p.name != METADATA_FILENAME],
                    "status": "metadata_corrupted",
                }
            metadata['backup_folder'] = backup_path
            backups.append(metadata)

        backups.sort(key=lambda x: x.get("created_at", ""), reverse=True)
        return backups

    def restore_backup(self, backup_id: str, create_safety_backup: bool = True) -> bool:
        """Restore the state file from a backup, keeping a safety copy of the current one."""
        backup_path = self.backup_dir / backup_id
        backed_up_state = backup_path / self.state_filename

        if not backed_up_state.exists():
            raise FileNotFoundError(f"Backup {backup_id} not found")

        target = self.data_dir / self.state_filename
        if create_safety_backup and target.exists():
            self.create_backup(f"pre_restore_{backup_id}")

        try:
            shutil.copy2(backed_up_state, target)
        except OSError as e:
            raise FileOperationError(f"Could not restore backup {backup_id}: {e}") from e

        log.info(f"Restored backup {backup_id}")
        return True

    def delete_backup(self, backup_id: str) -> bool:
        """Delete a specific backup"""
        backup_path = self.backup_dir / backup_id
        if backup_path.exists():
            shutil.rmtree(backup_path)
            return True
        return False

    def cleanup_old_backups(self, keep_count: int = 10) -> int:
        """Clean up old backups, keeping only the most recent ones"""
        backups = self.list_backups()
        deleted_count = 0

        for backup in backups[keep_count:]:
            if self.delete_backup(backup["backup_folder"].name):
                deleted_count += 1

        return deleted_count
