# ABOUTME: Backup utilities for files bwc overwrites (.mcp.json, config.json)
# ABOUTME: Timestamped copies with retention cleanup (keep last 5 per file stem)
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

# Pattern matches: {stem}_{YYYYMMDD}_{HHMMSS_ffffff}.{ext}
BACKUP_PATTERN = re.compile(r"^(.+?)_(\d{8}_\d{6}_\d{6})\.(.+)$")


def backup_prefix(source_path: Path) -> str:
    """Derive the backup prefix from a file name.

    Examples:
        >>> backup_prefix(Path(".mcp.json"))
        'mcp'
        >>> backup_prefix(Path("bwc.config.json"))
        'bwc-config'
    """
    stem = source_path.name.lstrip(".")
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    return stem.replace(".", "-").replace("_", "-") or "backup"


def create_backup(source_path: Path, backup_dir: Path) -> Path:
    """Create a timestamped backup of a file.

    ABOUTME: Backup format: {stem}_{YYYYMMDD}_{HHMMSS_ffffff}.{ext}
    ABOUTME: Uses shutil.copy2() to preserve file metadata
    ABOUTME: Creates backup_dir if it doesn't exist

    Args:
        source_path: Path to file to backup
        backup_dir: Directory where backup should be created

    Returns:
        Path to created backup file

    Raises:
        FileNotFoundError: If source_path doesn't exist
    """
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {source_path}")

    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    extension = source_path.suffix or ".bak"
    backup_path = backup_dir / f"{backup_prefix(source_path)}_{timestamp}{extension}"

    shutil.copy2(source_path, backup_path)
    logger.debug(f"Backed up {source_path} to {backup_path}")

    cleanup_old_backups(backup_dir)

    return backup_path


def get_backup_dir(home: Path | None = None) -> Path:
    """Get the default backup directory path (~/.bwc/backups, not created)."""
    return (home or Path.home()) / ".bwc" / "backups"


def cleanup_old_backups(backup_dir: Path, max_backups: int = 5) -> list[Path]:
    """Remove old backup files, keeping only the most recent per prefix.

    ABOUTME: Groups backups by prefix (before _timestamp), newest first
    ABOUTME: Logs warnings on errors but does not raise exceptions

    Args:
        backup_dir: Directory containing backup files
        max_backups: Maximum backups to keep per prefix

    Returns:
        List of paths that were deleted
    """
    deleted_files: list[Path] = []

    if not backup_dir.exists():
        return deleted_files

    backups_by_prefix: dict[str, list[tuple[str, Path]]] = {}

    for file_path in backup_dir.iterdir():
        if not file_path.is_file():
            continue

        match = BACKUP_PATTERN.match(file_path.name)
        if not match:
            continue

        backups_by_prefix.setdefault(match.group(1), []).append((match.group(2), file_path))

    for backups in backups_by_prefix.values():
        backups.sort(key=lambda x: x[0], reverse=True)

        for _, file_path in backups[max_backups:]:
            try:
                file_path.unlink()
                deleted_files.append(file_path)
                logger.debug(f"Deleted old backup: {file_path}")
            except OSError as e:
                logger.warning(f"Failed to delete old backup {file_path}: {e}")

    return deleted_files
