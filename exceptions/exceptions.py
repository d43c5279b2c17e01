"""
Custom exceptions for the upload history store.

These exceptions are intentionally simple and descriptive.
They are used across:

  - runtime/models/
  - runtime/store/
  - core/history/

None of them escapes the public HistoryStore operations; they exist so the
internal steps can fail loudly and be caught in one place.
"""


class InvalidHistoryItemException(Exception):
    """
    Raised when a history item does not carry the minimum fields required
    to be appended (filename, timestamp and either a URL or a local path).

    The exception contains the list of failed rule descriptions.
    """

    def __init__(self, failed_rules):
        self.failed_rules = list(failed_rules)
        msg = "Invalid history item: " + "; ".join(str(r) for r in self.failed_rules)
        super().__init__(msg)


class HistoryFileFormatException(Exception):
    """
    Raised when a history file cannot be parsed as a sequence of XML elements.

    Example:
        '<HistoryItem><Filename>a.png</Filename></HistoryItem>'  ← expected
        '<HistoryItem><Filename>a.png</Fil'                      ← truncated, raises
    """

    def __init__(self, file_path, details=None):
        self.file_path = file_path
        self.details = details or "Malformed XML content."
        msg = f"Cannot read history file: {file_path}\nDetails: {self.details}"
        super().__init__(msg)
