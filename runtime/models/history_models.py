"""
History record model for the upload history store.

A HistoryItem describes one captured/uploaded file:
- where it lives locally (filename, filepath)
- when it was produced (date_time, always UTC)
- where it was sent (type, host) and the URLs the destination returned
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from exceptions.exceptions import InvalidHistoryItemException


class HistoryItem(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    filename: str = ""
    filepath: str = ""
    date_time: Optional[datetime] = None  # None is the "no timestamp" value
    type: str = ""        # category tag, e.g. "Image", "File", "Text"
    host: str = ""        # upload destination name
    url: str = ""
    thumbnail_url: str = ""
    deletion_url: str = ""
    shortened_url: str = ""

    @field_validator(
        "filename",
        "filepath",
        "type",
        "host",
        "url",
        "thumbnail_url",
        "deletion_url",
        "shortened_url",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("date_time")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        # Naive timestamps are taken to be UTC already.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def validation_errors(self) -> List[str]:
        """Return the minimum-field rules this item fails (empty when valid)."""
        errors: List[str] = []
        if not self.filename:
            errors.append("filename is empty")
        if self.date_time is None:
            errors.append("date_time is not set")
        if not self.url and not self.filepath:
            errors.append("both url and filepath are empty")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()


def validate_history_item(item: Optional[HistoryItem]) -> HistoryItem:
    """Return the item unchanged, or raise InvalidHistoryItemException.

    A missing item (None) is rejected as well.
    """
    if item is None:
        raise InvalidHistoryItemException(["history item is missing"])
    errors = item.validation_errors()
    if errors:
        raise InvalidHistoryItemException(errors)
    return item
