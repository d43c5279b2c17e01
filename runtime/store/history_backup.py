"""BackupPolicy: best-effort copies of the history file after each append.

Two independent modes, both writing into ``backup_folder``:

- create_backup: overwrite ``<backup_folder>/<file name>`` every time
- create_weekly_backup: write ``<stem>-<week key><suffix>`` once per week

A failing step is logged and does not stop the other one; nothing here
raises to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from core.fileops.file_helpers import backup_file_weekly, copy_file, iso_week_key


logger = logging.getLogger(__name__)


@dataclass
class BackupPolicy:
    """Backup settings applied by HistoryStore after a successful append.

    Parameters
    ----------
    backup_folder:
        Destination folder. When empty, no backup is made regardless of the
        switches below.
    week_key:
        Maps "now" to the key that names a weekly backup. Two appends that
        produce the same key share one weekly backup.
    clock:
        Returns the current time; injectable for tests.
    """

    backup_folder: Optional[Union[str, Path]] = None
    create_backup: bool = False
    create_weekly_backup: bool = False
    week_key: Callable[[datetime], str] = iso_week_key
    clock: Callable[[], datetime] = datetime.now

    @property
    def enabled(self) -> bool:
        return bool(self.backup_folder) and (self.create_backup or self.create_weekly_backup)

    def run(self, file_path: Union[str, Path]) -> List[Path]:
        """Run the configured backup steps and return the paths written."""
        written: List[Path] = []
        if not self.enabled:
            return written

        if self.create_backup:
            try:
                dest = copy_file(file_path, self.backup_folder)
            except Exception:
                logger.exception(
                    "[HISTORY] Backup of %s into %s failed", file_path, self.backup_folder
                )
            else:
                if dest is not None:
                    written.append(dest)

        if self.create_weekly_backup:
            try:
                dest = backup_file_weekly(
                    file_path,
                    self.backup_folder,
                    week_key=self.week_key,
                    now=self.clock(),
                )
            except Exception:
                logger.exception(
                    "[HISTORY] Weekly backup of %s into %s failed",
                    file_path,
                    self.backup_folder,
                )
            else:
                if dest is not None:
                    written.append(dest)

        return written
