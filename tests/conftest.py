"""
Shared fixtures for ArtPulse tests.

Every test runs against InMemoryStore; nothing here touches a database,
an LLM provider or the network.
"""

from datetime import date, datetime, timezone

import pytest

from artpulse.data.config import Settings
from artpulse.data.store import InMemoryStore
from artpulse.exceptions import StoreError
from artpulse.notifications.notifier import LoggingNotificationSink


RUN_DATE = date(2026, 3, 10)
RUN_DAY_START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class BrokenScoringStore(InMemoryStore):
    """Store whose topic score writes fail."""

    def upsert_topic_score(self, score):
        raise StoreError("connection reset")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer environment variables out of the settings under test."""
    for key in (
        "STORE_BACKEND",
        "PIPELINE_ENABLE_ENRICHMENT",
        "PIPELINE_ENABLE_VISUAL",
        "PIPELINE_REFRESH_BENCHMARKS",
        "ENABLE_NOTIFICATIONS",
        "NOTIFY_WEBHOOK_URL",
        "LLM_PROVIDER",
        "APP_URL",
        "PIPELINE_PUBLISH_TOP_N",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings():
    return Settings(store_backend="memory")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sink():
    return LoggingNotificationSink()


def make_raw_row(
    index: int,
    term: str = "abstract painting",
    title: str = "Original Abstract Acrylic Painting on Canvas 24x36 Blue Gold Modern",
    price: float = 150,
    watchers=30,
    bids: int = 3,
    observed_at=RUN_DAY_START,
    **extra,
):
    """One raw source row; the url is unique per index."""
    row = {
        "url": f"https://www.ebay.com/itm/{200000 + index}",
        "title": title,
        "price": price,
        "bid_count": bids,
        "watcher_count": watchers,
        "search_term": term,
        "observed_at": observed_at.isoformat() if observed_at else None,
    }
    row.update(extra)
    return row


def seed_owner(store, owner_id="owner-1", count=12, term="abstract painting", **row_kwargs):
    """Owner with an interest term, an email and `count` raw rows."""
    store.add_owner(owner_id, email=f"{owner_id}@example.com", interest_terms=[term])
    store.add_raw_rows(owner_id, [make_raw_row(i, term=term, **row_kwargs) for i in range(count)])
