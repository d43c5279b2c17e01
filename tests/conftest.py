from datetime import datetime, timezone

import pytest

from runtime.models.history_models import HistoryItem
from runtime.store.history_store import HistoryStore


def make_item(**overrides):
    values = {
        "filename": "a.png",
        "date_time": datetime(2020, 1, 1, tzinfo=timezone.utc),
        "url": "http://x/a.png",
    }
    values.update(overrides)
    return HistoryItem(**values)


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "data" / "History.xml"


@pytest.fixture
def load_errors():
    # records (file_path, exc) pairs passed to the store's error callback
    return []


@pytest.fixture
def store(history_path, load_errors):
    return HistoryStore(
        history_path,
        on_error=lambda path, exc: load_errors.append((path, exc)),
    )
