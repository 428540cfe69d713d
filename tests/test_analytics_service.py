import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from models.page_visit import PageVisit
from services.analytics_service import (
    AnalyticsUnavailableError,
    SummaryLoader,
    fetch_summary,
    record_page_view,
    summarize_visits,
)
from tests.fakes import FailingStorage
from utils.visitor_identity import InMemoryStorage, VisitorIdentityProvider, VISITOR_ID_KEY

NOW = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


def visit(page_path="/", created_at=NOW, n=0):
    return PageVisit(id=f"visit-{n}", page_path=page_path, visitor_id="v", created_at=created_at)


@pytest.fixture
def new_york_local_time(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class RecordingStore:
    def __init__(self):
        self.rows = []

    def insert(self, page_path, visitor_id, referrer, user_agent):
        row = PageVisit(id=str(len(self.rows)), page_path=page_path, visitor_id=visitor_id,
                        referrer=referrer, user_agent=user_agent, created_at=NOW)
        self.rows.append(row)
        return row


class FailingStore:
    def insert(self, *args, **kwargs):
        raise ConnectionError("network down")

    def fetch_all(self):
        raise ConnectionError("network down")


class StaticStore:
    def __init__(self, visits):
        self.visits = visits

    def fetch_all(self):
        return self.visits


def test_empty_log_summary():
    summary = summarize_visits([], now=NOW)

    assert summary.total_visits == 0
    assert summary.today_visits == 0
    assert summary.weekly_visits == 0
    assert summary.monthly_visits == 0
    assert summary.page_views == []
    assert summary.recent_visits == []
    assert len(summary.daily_visits) == 14
    assert all(d.count == 0 for d in summary.daily_visits)
    assert summary.daily_visits[0].date == date(2026, 10, 6)
    assert summary.daily_visits[-1].date == date(2026, 10, 19)
    assert summary.daily_visits[0].date_label == "Oct 6"
    assert summary.daily_visits[-1].date_label == "Oct 19"

def test_daily_buckets_cover_trailing_fourteen_days():
    visits = [
        visit(created_at=NOW, n=0),
        visit(created_at=NOW - timedelta(days=1), n=1),
        visit(created_at=NOW - timedelta(days=13), n=2),
        visit(created_at=NOW - timedelta(days=14), n=3),
    ]

    summary = summarize_visits(visits, now=NOW)
    counts = [d.count for d in summary.daily_visits]

    assert summary.total_visits == 4
    assert sum(counts) == 3
    assert counts[0] == 1
    assert counts[12] == 1
    assert counts[13] == 1

def test_window_counts():
    visits = [
        visit(created_at=NOW - timedelta(hours=1), n=0),
        visit(created_at=NOW - timedelta(hours=20), n=1),
        visit(created_at=NOW - timedelta(days=8), n=2),
        visit(created_at=NOW - timedelta(days=31), n=3),
    ]

    summary = summarize_visits(visits, now=NOW)

    assert summary.today_visits == 1
    assert summary.weekly_visits == 2
    assert summary.monthly_visits == 3
    assert summary.total_visits == 4

def test_today_starts_at_local_midnight_of_now():
    tz = timezone(timedelta(hours=-5))
    now = datetime(2026, 10, 19, 1, 0, tzinfo=tz)
    visits = [
        visit(created_at=datetime(2026, 10, 19, 0, 30, tzinfo=tz), n=0),
        visit(created_at=datetime(2026, 10, 18, 23, 30, tzinfo=tz), n=1),
    ]

    summary = summarize_visits(visits, now=now)

    assert summary.today_visits == 1
    assert summary.daily_visits[-1].count == 1
    assert summary.daily_visits[-2].count == 1

def test_naive_timestamps_are_read_as_utc():
    tz = timezone(timedelta(hours=3))
    now = datetime(2026, 10, 19, 1, 0, tzinfo=tz)
    # 21:30 UTC on the 18th is 00:30 on the 19th at +03:00
    naive = datetime(2026, 10, 18, 21, 30)

    summary = summarize_visits([visit(created_at=naive)], now=now)

    assert summary.today_visits == 1
    assert summary.daily_visits[-1].count == 1

def test_page_views_ties_keep_first_seen_order():
    order = ["/a", "/b", "/c", "/a", "/b", "/c", "/a", "/b", "/c", "/a", "/b", "/a", "/b"]
    visits = [visit(page_path=p, n=i) for i, p in enumerate(order)]

    summary = summarize_visits(visits, now=NOW)

    assert [(p.page_path, p.count) for p in summary.page_views] == [("/a", 5), ("/b", 5), ("/c", 3)]

def test_page_views_limited_to_top_ten():
    visits = []
    for i in range(12):
        for _ in range(12 - i):
            visits.append(visit(page_path=f"/page-{i}", n=len(visits)))

    summary = summarize_visits(visits, now=NOW)

    assert len(summary.page_views) == 10
    assert summary.page_views[0].page_path == "/page-0"
    assert summary.page_views[-1].page_path == "/page-9"

def test_recent_visits_are_first_twenty_of_newest_first_log():
    visits = [visit(created_at=NOW - timedelta(minutes=i), n=i) for i in range(25)]

    summary = summarize_visits(visits, now=NOW)

    assert summary.total_visits == 25
    assert [v.id for v in summary.recent_visits] == [f"visit-{i}" for i in range(20)]

def test_record_page_view_inserts_with_stored_identity():
    store = RecordingStore()
    identity = VisitorIdentityProvider(InMemoryStorage({VISITOR_ID_KEY: "visitor-1"}))

    result = record_page_view(store, identity, "/services", referrer="", user_agent="Mozilla/5.0")

    assert result is None
    [row] = store.rows
    assert row.page_path == "/services"
    assert row.visitor_id == "visitor-1"
    assert row.referrer is None
    assert row.user_agent == "Mozilla/5.0"

def test_record_page_view_swallows_store_failure():
    identity = VisitorIdentityProvider(InMemoryStorage())
    assert record_page_view(FailingStore(), identity, "/", None, "agent") is None

def test_record_page_view_swallows_identity_failure():
    store = RecordingStore()
    identity = VisitorIdentityProvider(FailingStorage())

    assert record_page_view(store, identity, "/", None, "agent") is None
    assert store.rows == []

def test_fetch_summary_reports_fetch_failure():
    with pytest.raises(AnalyticsUnavailableError):
        fetch_summary(FailingStore(), now=NOW)

def test_summary_loader_states():
    loader = SummaryLoader(StaticStore([visit(n=1), visit(n=2)]))
    assert loader.status == SummaryLoader.PENDING

    summary = loader.load(now=NOW)

    assert loader.status == SummaryLoader.LOADED
    assert summary.total_visits == 2

    failing = SummaryLoader(FailingStore())
    assert failing.load(now=NOW) is None
    assert failing.status == SummaryLoader.FAILED
    assert isinstance(failing.error, AnalyticsUnavailableError)

def test_system_local_buckets_use_offset_at_each_instant(new_york_local_time):
    # Clocks go forward on 2026-03-08; now is EDT, the visit was EST
    now = datetime(2026, 3, 10, 12, 0)
    visits = [visit(created_at=datetime(2026, 3, 6, 4, 30, tzinfo=timezone.utc))]

    summary = summarize_visits(visits, now=now)
    counts = {d.date: d.count for d in summary.daily_visits}

    assert counts[date(2026, 3, 5)] == 1
    assert counts[date(2026, 3, 6)] == 0
    assert summary.daily_visits[-1].date == date(2026, 3, 10)

def test_naive_database_timestamps_across_dst_change(new_york_local_time):
    now = datetime(2026, 3, 10, 12, 0)
    # 04:30 UTC on Mar 6 is 23:30 EST on Mar 5
    visits = [visit(created_at=datetime(2026, 3, 6, 4, 30))]

    summary = summarize_visits(visits, now=now)

    assert {d.date: d.count for d in summary.daily_visits}[date(2026, 3, 5)] == 1

def test_zoneinfo_now_buckets_across_dst_change():
    tz = ZoneInfo("America/New_York")
    now = datetime(2026, 3, 10, 12, 0, tzinfo=tz)
    visits = [visit(created_at=datetime(2026, 3, 6, 4, 30, tzinfo=timezone.utc))]

    summary = summarize_visits(visits, now=now)

    assert {d.date: d.count for d in summary.daily_visits}[date(2026, 3, 5)] == 1
