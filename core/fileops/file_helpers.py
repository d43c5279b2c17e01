"""
core.fileops.file_helpers

Small filesystem helpers used by the history store and its backup policy:

  - create_directory_from_file_path: make sure a file's parent folder exists
  - copy_file: verbatim copy into a destination folder
  - backup_file_weekly: copy into a destination folder at most once per week
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union


PathLike = Union[str, Path]


def iso_week_key(now: datetime) -> str:
    """Week key using the ISO calendar (weeks start on Monday), e.g. 2020-W01."""
    year, week, _ = now.isocalendar()
    return f"{year}-W{week:02d}"


def month_week_key(now: datetime) -> str:
    """Week key that also names the month, e.g. 2020-01-W01."""
    _, week, _ = now.isocalendar()
    return f"{now:%Y-%m}-W{week:02d}"


def create_directory_from_file_path(file_path: PathLike) -> None:
    """Create the parent directory of file_path if needed."""
    parent = Path(file_path).parent
    parent.mkdir(parents=True, exist_ok=True)


def copy_file(
    src_path: PathLike,
    destination_folder: PathLike,
    overwrite: bool = True,
) -> Optional[Path]:
    """
    Copy src_path into destination_folder, keeping its file name.

    Returns the destination path, or None if the source does not exist or
    the destination exists and overwrite is False.
    """
    src = Path(src_path)
    if not src.is_file():
        return None

    dest = Path(destination_folder) / src.name
    if dest.exists() and not overwrite:
        return None

    create_directory_from_file_path(dest)
    shutil.copy2(src, dest)
    return dest


def backup_file_weekly(
    src_path: PathLike,
    destination_folder: PathLike,
    week_key: Callable[[datetime], str] = iso_week_key,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """
    Copy src_path to <destination_folder>/<stem>-<week key><suffix>.

    A backup that already exists for the current week key is left alone,
    so the copy happens at most once per week. Returns the path written,
    or None when nothing was copied.
    """
    src = Path(src_path)
    if not src.is_file():
        return None

    now = now or datetime.now()
    dest = Path(destination_folder) / f"{src.stem}-{week_key(now)}{src.suffix}"
    if dest.exists():
        return None

    create_directory_from_file_path(dest)
    shutil.copy2(src, dest)
    return dest
