from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


class Settings:
    """
    Central configuration for the upload history store.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties.
    """

    def __init__(self) -> None:
        # History file location
        self._history_file_path = Path(
            os.getenv("UPLOAD_HISTORY_FILE_PATH", "runtime/data/History.xml")
        )

        # Backup configuration
        backup_folder = os.getenv("UPLOAD_HISTORY_BACKUP_FOLDER") or None
        self._backup_folder = Path(backup_folder) if backup_folder else None
        self._create_backup = _env_flag("UPLOAD_HISTORY_CREATE_BACKUP")
        self._create_weekly_backup = _env_flag("UPLOAD_HISTORY_CREATE_WEEKLY_BACKUP")

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def history_file_path(self) -> Path:
        return self._history_file_path

    @property
    def backup_folder(self) -> Optional[Path]:
        return self._backup_folder

    # ------------------------------------------------------------------
    # Backup switches
    # ------------------------------------------------------------------

    @property
    def create_backup(self) -> bool:
        return self._create_backup

    @property
    def create_weekly_backup(self) -> bool:
        return self._create_weekly_backup


settings = Settings()
