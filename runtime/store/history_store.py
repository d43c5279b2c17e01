"""HistoryStore: append-only XML log of uploaded / captured files.

On disk the log is a plain sequence of ``<HistoryItem>`` elements with no
enclosing root element, one batch per append:

    <HistoryItem>
        <Filename>a.png</Filename>
        <DateTimeUtc>2020-01-01T00:00:00.0000000Z</DateTimeUtc>
        <URL>http://x/a.png</URL>
    </HistoryItem>

The store is stateless between calls. Every load and append in the process
goes through one module-level lock, so batches written by different threads
never interleave. Other processes writing the same file are not coordinated.

Neither ``load`` nor ``append`` raises: read failures are reported through
the ``on_error`` callback and an empty result, write failures are logged and
reported as ``False``.
"""

import logging
import threading
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from configs.settings import Settings
from core.fileops.file_helpers import create_directory_from_file_path
from core.history.history_codec import encode_history_batch, read_history_items
from exceptions.exceptions import HistoryFileFormatException, InvalidHistoryItemException
from ..models.history_models import HistoryItem, validate_history_item
from .history_backup import BackupPolicy


logger = logging.getLogger(__name__)

# Shared by every HistoryStore in the process, whatever its path.
_HISTORY_LOCK = threading.Lock()

ErrorCallback = Callable[[Path, Exception], None]


class HistoryStore:
    """File-backed history log.

    Parameters
    ----------
    file_path:
        Location of the XML history file. An empty path disables the store:
        loads return nothing and appends return False.
    backup_policy:
        Optional BackupPolicy run after every successful append.
    on_error:
        Called as ``on_error(file_path, exc)`` when a load fails, so that a
        UI layer can tell the user. Defaults to no notification beyond the log.
    """

    def __init__(
        self,
        file_path: Optional[Union[str, Path]],
        backup_policy: Optional[BackupPolicy] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.file_path: Optional[Path] = Path(file_path) if file_path else None
        self.backup_policy = backup_policy
        self.on_error = on_error

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        on_error: Optional[ErrorCallback] = None,
    ) -> "HistoryStore":
        """Build a store from the central configuration."""
        policy = BackupPolicy(
            backup_folder=settings.backup_folder,
            create_backup=settings.create_backup,
            create_weekly_backup=settings.create_weekly_backup,
        )
        return cls(settings.history_file_path, backup_policy=policy, on_error=on_error)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load(self) -> List[HistoryItem]:
        """Return every history item in file order.

        A missing file (or no configured path) yields an empty list. On an
        I/O or parse failure the error is logged, passed to ``on_error``
        and an empty list is returned.
        """
        try:
            return self._read_items()
        except (OSError, HistoryFileFormatException) as e:
            logger.exception("[HISTORY] Error while reading history file %s", self.file_path)
            self._notify_error(e)
        return []

    # Name used by callers of the older history API.
    get_history_items = load

    def _read_items(self) -> List[HistoryItem]:
        if self.file_path is None:
            return []

        with _HISTORY_LOCK:
            if not self.file_path.is_file():
                return []

            with self.file_path.open("r", encoding="utf-8-sig") as f:
                try:
                    return read_history_items(f)
                except (ET.ParseError, UnicodeDecodeError) as e:
                    raise HistoryFileFormatException(str(self.file_path), str(e)) from e

    def _notify_error(self, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(self.file_path, error)
        except Exception:
            logger.exception("[HISTORY] Error callback failed for %s", self.file_path)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append(self, *items: HistoryItem) -> bool:
        """Write the items at the end of the file as one batch.

        No validation is done here; use ``append_history_item`` for records
        coming from the capture/upload workflow. Returns False when no path
        is configured or the write fails.
        """
        if self.file_path is None:
            return False

        try:
            # Encoded up front so a record that cannot be written leaves the
            # file untouched.
            batch = encode_history_batch(items).encode("utf-8")

            with _HISTORY_LOCK:
                create_directory_from_file_path(self.file_path)
                with self.file_path.open("ab") as f:
                    f.write(batch)

                if self.backup_policy is not None:
                    self.backup_policy.run(self.file_path)
        except (OSError, ValueError):
            logger.exception("[HISTORY] Error while appending to history file %s", self.file_path)
            return False

        return True

    def append_history_item(self, item: Optional[HistoryItem]) -> bool:
        """Validate and append a single item.

        Items missing a filename, a timestamp, or both URL and filepath are
        dropped: nothing is written and False is returned.
        """
        try:
            validate_history_item(item)
        except InvalidHistoryItemException as e:
            logger.debug("[HISTORY] Dropping history item: %s", e)
            return False
        return self.append(item)

    def append_history_items(self, items: Iterable[Optional[HistoryItem]]) -> bool:
        """Validate a batch and append the valid items contiguously.

        Returns False when no item survives validation.
        """
        valid: List[HistoryItem] = []
        for item in items:
            try:
                valid.append(validate_history_item(item))
            except InvalidHistoryItemException as e:
                logger.debug("[HISTORY] Dropping history item: %s", e)

        if not valid:
            return False
        return self.append(*valid)
