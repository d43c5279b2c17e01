import io
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone

import pytest

from core.history.history_codec import (
    FIELD_ORDER,
    decode_history_item,
    encode_history_batch,
    encode_history_item,
    format_datetime_utc,
    iter_history_elements,
    parse_datetime_utc,
    read_history_items,
)
from runtime.models.history_models import HistoryItem

from conftest import make_item


UTC = timezone.utc


def _full_item():
    return HistoryItem(
        filename="shot.png",
        filepath="/home/user/shots/shot.png",
        date_time=datetime(2021, 6, 5, 14, 30, 15, 123456, tzinfo=UTC),
        type="Image",
        host="Imgur",
        url="https://i.example.com/shot.png",
        thumbnail_url="https://i.example.com/shot_t.png",
        deletion_url="https://example.com/delete/abc",
        shortened_url="https://exm.pl/x",
    )


# -------------------------------------------------------------------
# Timestamps
# -------------------------------------------------------------------


def test_format_datetime_uses_seven_fraction_digits():
    assert format_datetime_utc(datetime(2020, 1, 1, tzinfo=UTC)) == "2020-01-01T00:00:00.0000000Z"
    assert format_datetime_utc(datetime(2020, 1, 1, 0, 0, 0, 123456)) == "2020-01-01T00:00:00.1234560Z"


def test_format_datetime_converts_to_utc():
    plus_two = timezone(timedelta(hours=2))
    assert format_datetime_utc(datetime(2020, 1, 1, 2, tzinfo=plus_two)) == "2020-01-01T00:00:00.0000000Z"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2020-01-01T00:00:00Z", datetime(2020, 1, 1, tzinfo=UTC)),
        ("2020-01-01T00:00:00.1234567Z", datetime(2020, 1, 1, 0, 0, 0, 123456, tzinfo=UTC)),
        ("2020-01-01T02:00:00+02:00", datetime(2020, 1, 1, tzinfo=UTC)),
        ("2020-01-01T02:00:00+0200", datetime(2020, 1, 1, tzinfo=UTC)),
        ("2020-01-01 10:30", datetime(2020, 1, 1, 10, 30, tzinfo=UTC)),
        ("2020-01-01", datetime(2020, 1, 1, tzinfo=UTC)),
        ("  2020-01-01T00:00:00.5Z  ", datetime(2020, 1, 1, 0, 0, 0, 500000, tzinfo=UTC)),
    ],
)
def test_parse_datetime_accepts_iso_variants(text, expected):
    assert parse_datetime_utc(text) == expected


@pytest.mark.parametrize("text", ["", None, "yesterday", "2020-13-01T00:00:00Z", "01/01/2020"])
def test_parse_datetime_returns_none_on_garbage(text):
    assert parse_datetime_utc(text) is None


# -------------------------------------------------------------------
# Encoding / decoding
# -------------------------------------------------------------------


def test_encode_writes_fields_in_fixed_order_with_indent():
    text = encode_history_item(_full_item())
    lines = text.splitlines()

    assert lines[0] == "<HistoryItem>"
    assert lines[-1] == "</HistoryItem>"
    tags = [line.strip()[1:].split(">", 1)[0] for line in lines[1:-1]]
    assert tags == [tag for tag, _ in FIELD_ORDER]
    assert all(line.startswith("    <") for line in lines[1:-1])


def test_encode_omits_empty_fields():
    text = encode_history_item(HistoryItem(filename="a.png", url="http://x/a.png"))
    assert "<Filename>a.png</Filename>" in text
    assert "<URL>http://x/a.png</URL>" in text
    for tag in ("Filepath", "DateTimeUtc", "Type", "Host", "ThumbnailURL", "DeletionURL", "ShortenedURL"):
        assert f"<{tag}>" not in text


def test_encode_empty_item_is_self_closing():
    assert encode_history_item(HistoryItem()) == "<HistoryItem />"
    assert decode_history_item(ET.fromstring("<HistoryItem />")) == HistoryItem()


def test_encode_escapes_markup():
    item = make_item(filename="a&b<c>.png")
    text = encode_history_item(item)
    assert "a&amp;b&lt;c&gt;.png" in text
    assert decode_history_item(ET.fromstring(text)).filename == "a&b<c>.png"


def test_full_item_survives_encode_decode():
    item = _full_item()
    assert decode_history_item(ET.fromstring(encode_history_item(item))) == item


@pytest.mark.parametrize("attribute", [attr for _, attr in FIELD_ORDER if attr != "date_time"])
def test_single_field_survives_encode_decode(attribute):
    item = HistoryItem(**{attribute: "value-" + attribute})
    assert decode_history_item(ET.fromstring(encode_history_item(item))) == item


def test_decode_ignores_unknown_children_and_order():
    element = ET.fromstring(
        "<HistoryItem>"
        "<URL>http://x/a.png</URL>"
        "<Tags><Tag>one</Tag></Tags>"
        "<Filename>a.png</Filename>"
        "<DateTimeUtc>2020-01-01T00:00:00Z</DateTimeUtc>"
        "</HistoryItem>"
    )
    assert decode_history_item(element) == make_item()


def test_decode_bad_timestamp_keeps_other_fields():
    element = ET.fromstring(
        "<HistoryItem><Filename>a.png</Filename><DateTimeUtc>not a date</DateTimeUtc></HistoryItem>"
    )
    item = decode_history_item(element)
    assert item.filename == "a.png"
    assert item.date_time is None


def test_batch_ends_with_line_break():
    text = encode_history_batch([make_item(), make_item(filename="b.png")])
    assert text.endswith("</HistoryItem>\n")
    assert text.count("<HistoryItem>") == 2


# -------------------------------------------------------------------
# Streaming reader
# -------------------------------------------------------------------


def test_reader_accepts_sibling_elements_without_root():
    content = encode_history_batch([make_item()]) + encode_history_batch([make_item(filename="b.png")])
    items = read_history_items(io.StringIO(content))
    assert [i.filename for i in items] == ["a.png", "b.png"]


def test_reader_skips_other_top_level_elements():
    content = (
        "<Settings><Filename>nope.png</Filename></Settings>\n"
        + encode_history_batch([make_item()])
        + "stray text\n"
    )
    items = read_history_items(io.StringIO(content))
    assert items == [make_item()]


def test_reader_tolerates_xml_declaration():
    content = '<?xml version="1.0" encoding="utf-8"?>\n' + encode_history_batch([make_item()])
    assert read_history_items(io.StringIO(content)) == [make_item()]


def test_reader_raises_on_truncated_element():
    content = encode_history_batch([make_item()]) + "<HistoryItem>\n    <Filename>b.p"
    with pytest.raises(ET.ParseError):
        read_history_items(io.StringIO(content))


def test_reader_empty_stream_yields_nothing():
    assert list(iter_history_elements(io.StringIO(""))) == []


def test_carriage_return_survives_encode_decode():
    item = make_item(filename="a\r\nb.png", host="x\ry")
    text = encode_history_item(item)
    assert "&#13;" in text
    assert read_history_items(io.StringIO(text)) == [item]


@pytest.mark.parametrize("bad", ["bad\x01.png", "a\ud800.png", "x\ufffe"])
def test_encode_rejects_characters_xml_cannot_hold(bad):
    with pytest.raises(ValueError):
        encode_history_item(make_item(filename=bad))


def test_tab_and_newline_are_allowed():
    item = make_item(filename="a\tb\nc.png")
    assert read_history_items(io.StringIO(encode_history_item(item))) == [item]


def test_years_before_1000_are_zero_padded():
    value = datetime(999, 3, 4, 5, 6, 7, tzinfo=UTC)
    text = format_datetime_utc(value)
    assert text == "0999-03-04T05:06:07.0000000Z"
    assert parse_datetime_utc(text) == value
