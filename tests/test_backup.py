# ABOUTME: Tests for backup utilities.
# ABOUTME: Covers create_backup, get_backup_dir, and cleanup_old_backups functions.
from pathlib import Path

import pytest

from bwc.utils.backup import backup_prefix, cleanup_old_backups, create_backup, get_backup_dir


class TestGetBackupDir:
    """Tests for get_backup_dir function."""

    def test_backup_dir_location(self, tmp_path):
        """Test that backup dir is ~/.bwc/backups."""
        assert get_backup_dir(tmp_path) == tmp_path / ".bwc" / "backups"

    def test_default_is_absolute(self):
        assert get_backup_dir().is_absolute()


class TestBackupPrefix:
    """Tests for backup_prefix function."""

    @pytest.mark.parametrize("name,prefix", [
        (".mcp.json", "mcp"),
        ("bwc.config.json", "bwc-config"),
        ("config.json", "config"),
    ])
    def test_prefixes(self, name, prefix):
        assert backup_prefix(Path(name)) == prefix


class TestCreateBackup:
    """Tests for create_backup function."""

    def test_creates_backup_file(self, tmp_path):
        """Test that backup file is created with the same content."""
        source = tmp_path / ".mcp.json"
        source.write_text('{"mcpServers": {}}')
        backup_dir = tmp_path / "backups"

        backup_path = create_backup(source, backup_dir)

        assert backup_path.exists()
        assert backup_path.parent == backup_dir
        assert backup_path.name.startswith("mcp_")
        assert backup_path.suffix == ".json"
        assert backup_path.read_text() == '{"mcpServers": {}}'

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            create_backup(tmp_path / "missing.json", tmp_path / "backups")


class TestCleanupOldBackups:
    """Tests for cleanup_old_backups function."""

    def _make(self, backup_dir: Path, prefix: str, count: int) -> list[Path]:
        backup_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for i in range(count):
            path = backup_dir / f"{prefix}_20250101_1200{i:02d}_000000.json"
            path.write_text("{}")
            paths.append(path)
        return paths

    def test_keeps_newest_five(self, tmp_path):
        paths = self._make(tmp_path, "mcp", 7)

        deleted = cleanup_old_backups(tmp_path)

        assert sorted(deleted) == sorted(paths[:2])
        assert all(p.exists() for p in paths[2:])

    def test_prefixes_counted_separately(self, tmp_path):
        self._make(tmp_path, "mcp", 5)
        self._make(tmp_path, "bwc-config", 5)
        assert cleanup_old_backups(tmp_path) == []

    def test_ignores_unrelated_files(self, tmp_path):
        (tmp_path / "notes.txt").write_text("keep")
        assert cleanup_old_backups(tmp_path, max_backups=0) == []
        assert (tmp_path / "notes.txt").exists()

    def test_missing_dir(self, tmp_path):
        assert cleanup_old_backups(tmp_path / "nope") == []
