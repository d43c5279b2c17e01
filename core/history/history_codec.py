"""
core.history.history_codec

Encode / decode HistoryItem records to and from their XML element form:

    <HistoryItem>
        <Filename>a.png</Filename>
        <DateTimeUtc>2020-01-01T00:00:00.0000000Z</DateTimeUtc>
        <URL>http://x/a.png</URL>
    </HistoryItem>

Used by:
  - runtime/store/history_store.py

Empty fields are never written and absent child elements decode to the
field default. Unknown child elements are ignored so that files written by
newer versions remain readable.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, TextIO, Tuple
from xml.sax.saxutils import escape

from runtime.models.history_models import HistoryItem


logger = logging.getLogger(__name__)

HISTORY_ITEM_TAG = "HistoryItem"

# Synthetic wrapper fed around the file content so that a bare sequence of
# sibling elements parses as one document.
_WRAPPER_TAG = "HistoryItems"

_READ_CHUNK_SIZE = 64 * 1024


# -------------------------------------------------------------------
# Field layout
# -------------------------------------------------------------------

# (xml tag, HistoryItem attribute) in the order they are written.
FIELD_ORDER: List[Tuple[str, str]] = [
    ("Filename", "filename"),
    ("Filepath", "filepath"),
    ("DateTimeUtc", "date_time"),
    ("Type", "type"),
    ("Host", "host"),
    ("URL", "url"),
    ("ThumbnailURL", "thumbnail_url"),
    ("DeletionURL", "deletion_url"),
    ("ShortenedURL", "shortened_url"),
]


# -------------------------------------------------------------------
# Timestamps
# -------------------------------------------------------------------

_DATETIME_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<time>\d{2}:\d{2}(?::\d{2})?)(?:\.(?P<frac>\d+))?)?"
    r"\s*(?P<tz>Z|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)


def format_datetime_utc(value: datetime) -> str:
    """
    Format a timestamp as round-trip ISO-8601 UTC text with seven fractional
    digits, e.g. 2020-01-01T00:00:00.0000000Z. Naive values are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
        f".{value.microsecond:06d}0Z"
    )


def parse_datetime_utc(text: Optional[str]) -> Optional[datetime]:
    """
    Parse ISO-8601 text into an aware UTC datetime.

    Accepts a 'Z' or numeric offset, any number of fractional digits
    (truncated to microseconds) and a missing time part. Text without an
    offset is treated as UTC. Returns None when the text cannot be parsed.
    """
    if not text:
        return None

    match = _DATETIME_RE.match(text.strip())
    if match is None:
        return None

    time_part = match.group("time") or "00:00:00"
    if time_part.count(":") == 1:
        time_part += ":00"

    normalized = f"{match.group('date')}T{time_part}"

    frac = match.group("frac")
    if frac:
        normalized += "." + frac[:6].ljust(6, "0")

    tz = match.group("tz")
    if tz is None or tz.upper() == "Z":
        normalized += "+00:00"
    elif ":" not in tz:
        normalized += f"{tz[:3]}:{tz[3:]}"
    else:
        normalized += tz

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return parsed.astimezone(timezone.utc)


# -------------------------------------------------------------------
# Decoding
# -------------------------------------------------------------------


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text_setter(attribute: str) -> Callable[[Dict[str, object], str], None]:
    def _set(values: Dict[str, object], text: str) -> None:
        values[attribute] = text

    return _set


def _set_date_time(values: Dict[str, object], text: str) -> None:
    parsed = parse_datetime_utc(text)
    if parsed is None:
        logger.debug("[HISTORY] Unparsable DateTimeUtc %r left unset", text)
        return
    values["date_time"] = parsed


_FIELD_SETTERS: Dict[str, Callable[[Dict[str, object], str], None]] = {
    tag: (_set_date_time if attribute == "date_time" else _text_setter(attribute))
    for tag, attribute in FIELD_ORDER
}


def decode_history_item(element: ET.Element) -> HistoryItem:
    """
    Build a HistoryItem from a <HistoryItem> element.

    Child order does not matter; unknown children are ignored.
    """
    values: Dict[str, object] = {}
    for child in element:
        setter = _FIELD_SETTERS.get(_local_name(child.tag))
        if setter is not None:
            setter(values, "".join(child.itertext()))
    return HistoryItem(**values)


# -------------------------------------------------------------------
# Encoding
# -------------------------------------------------------------------


# Characters outside the XML 1.0 Char production cannot be read back.
_ILLEGAL_XML_CHARS_RE = re.compile(
    "[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)


def _escape_text(tag: str, text: str) -> str:
    match = _ILLEGAL_XML_CHARS_RE.search(text)
    if match is not None:
        raise ValueError(
            f"Character {match.group()!r} in <{tag}> is not allowed in XML"
        )
    # A raw \r would come back as \n after parsing.
    return escape(text, {"\r": "&#13;"})


def _field_text(item: HistoryItem, attribute: str) -> str:
    value = getattr(item, attribute)
    if attribute == "date_time":
        return format_datetime_utc(value) if value is not None else ""
    return value or ""


def encode_history_item(item: HistoryItem, indent: int = 4) -> str:
    """Render one <HistoryItem> element, skipping empty fields.

    Raises ValueError when a field holds a character XML cannot carry.
    """
    pad = " " * indent
    lines = []
    for tag, attribute in FIELD_ORDER:
        text = _field_text(item, attribute)
        if text:
            lines.append(f"{pad}<{tag}>{_escape_text(tag, text)}</{tag}>")

    if not lines:
        return f"<{HISTORY_ITEM_TAG} />"
    return "\n".join([f"<{HISTORY_ITEM_TAG}>", *lines, f"</{HISTORY_ITEM_TAG}>"])


def encode_history_batch(items, indent: int = 4) -> str:
    """Render a batch of items followed by the trailing line break."""
    return "\n".join(encode_history_item(item, indent=indent) for item in items) + "\n"


# -------------------------------------------------------------------
# Streaming reader
# -------------------------------------------------------------------

_PROLOG_RE = re.compile(r"^\s*<\?xml[^>]*\?>")


def _drain(parser: ET.XMLPullParser, state: Dict[str, object]) -> Iterator[ET.Element]:
    for event, element in parser.read_events():
        if event == "start":
            if state["root"] is None:
                state["root"] = element
            state["depth"] += 1
            continue

        state["depth"] -= 1
        if state["depth"] != 1:
            continue

        # A complete top-level element.
        root = state["root"]
        if _local_name(element.tag) == HISTORY_ITEM_TAG:
            yield element
        else:
            logger.debug("[HISTORY] Skipping top-level <%s> element", element.tag)
        root.remove(element)


def iter_history_elements(stream: TextIO) -> Iterator[ET.Element]:
    """
    Stream top-level <HistoryItem> elements from a text stream.

    The content does not need a single enclosing root element. Other
    top-level elements and loose text are skipped. Raises ET.ParseError on
    malformed XML (including a truncated final element).
    """
    parser = ET.XMLPullParser(events=("start", "end"))
    state: Dict[str, object] = {"root": None, "depth": 0}

    parser.feed(f"<{_WRAPPER_TAG}>")
    first = True
    for chunk in iter(lambda: stream.read(_READ_CHUNK_SIZE), ""):
        if first:
            chunk = _PROLOG_RE.sub("", chunk.lstrip("\ufeff"), count=1)
            first = False
        parser.feed(chunk)
        yield from _drain(parser, state)

    parser.feed(f"</{_WRAPPER_TAG}>")
    parser.close()
    yield from _drain(parser, state)


def read_history_items(stream: TextIO) -> List[HistoryItem]:
    """Decode every <HistoryItem> in the stream, in file order."""
    return [decode_history_item(element) for element in iter_history_elements(stream)]
