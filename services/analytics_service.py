"""
Page-visit analytics.

record_page_view() appends one event per navigation and never raises.
summarize_visits() reduces the full event log to the figures shown on the
admin analytics view; it is a pure function of the events and "now".
"""
from collections import Counter
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Sequence

from schemas.analytics import AnalyticsSummary, DailyVisitCount, PageViewCount
from schemas.page_visit import PageVisitResponse
from services.page_visit_store import PageVisitStore
from utils.logger_factory import new_logger
from utils.visitor_identity import VisitorIdentityProvider

TOP_PAGES_LIMIT = 10
DAILY_VISITS_DAYS = 14
RECENT_VISITS_LIMIT = 20
WEEK_WINDOW = timedelta(days=7)
MONTH_WINDOW = timedelta(days=30)


class AnalyticsUnavailableError(Exception):
    """The event log could not be fetched."""


def record_page_view(store: PageVisitStore, identity: VisitorIdentityProvider, page_path: str,
                     referrer: Optional[str] = None, user_agent: Optional[str] = None) -> None:
    """
    Record one page view. Best effort: any failure is logged at DEBUG and
    swallowed so analytics can never break navigation.
    """
    log = new_logger("record_page_view")
    try:
        visitor_id = identity.init()
        visit = store.insert(
            page_path=page_path,
            visitor_id=visitor_id,
            referrer=referrer or None,
            user_agent=user_agent,
        )
        log.debug(f"Recorded visit {visit.id} to {page_path}")
    except Exception as e:
        log.debug(f"Page tracking error for {page_path}: {type(e).__name__}: {str(e)}")


def _resolve_now(now: Optional[datetime]):
    """
    Return (now, tz). tz is None when now is in system local time, so that
    each timestamp is converted with the offset in force at that instant.
    """
    if now is None:
        return datetime.now().astimezone(), None
    if now.tzinfo is None:
        return now.astimezone(), None
    return now, now.tzinfo


def _as_local(timestamp: datetime, tz) -> datetime:
    # Naive timestamps come back from the database in UTC.
    # astimezone(None) converts to system local time at that instant.
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(tz)


def date_label(day) -> str:
    return f"{day.strftime('%b')} {day.day}"


def summarize_visits(visits: Sequence, now: Optional[datetime] = None) -> AnalyticsSummary:
    """
    Build the analytics summary from visits ordered newest first.

    Window counts use today's local midnight and fixed trailing 7 and 30 day
    windows. Daily buckets cover the 14 local calendar days ending today.
    """
    now, tz = _resolve_now(now)
    today = now.date()
    if tz is None:
        today_start = datetime.combine(today, time.min).astimezone()
    else:
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = now - WEEK_WINDOW
    month_start = now - MONTH_WINDOW

    local_times = [_as_local(v.created_at, tz) for v in visits]

    today_visits = sum(1 for t in local_times if t >= today_start)
    weekly_visits = sum(1 for t in local_times if t >= week_start)
    monthly_visits = sum(1 for t in local_times if t >= month_start)

    # most_common keeps first-seen order for equal counts
    page_counts = Counter(v.page_path for v in visits)
    page_views = [
        PageViewCount(page_path=page_path, count=count)
        for page_path, count in page_counts.most_common(TOP_PAGES_LIMIT)
    ]

    daily_counts = {}
    for days_ago in range(DAILY_VISITS_DAYS - 1, -1, -1):
        daily_counts[today - timedelta(days=days_ago)] = 0
    for t in local_times:
        day = t.date()
        if day in daily_counts:
            daily_counts[day] += 1
    daily_visits = [
        DailyVisitCount(date=day, date_label=date_label(day), count=count)
        for day, count in daily_counts.items()
    ]

    recent_visits = [PageVisitResponse.model_validate(v) for v in visits[:RECENT_VISITS_LIMIT]]

    return AnalyticsSummary(
        total_visits=len(visits),
        today_visits=today_visits,
        weekly_visits=weekly_visits,
        monthly_visits=monthly_visits,
        page_views=page_views,
        daily_visits=daily_visits,
        recent_visits=recent_visits,
    )


def fetch_summary(store: PageVisitStore, now: Optional[datetime] = None) -> AnalyticsSummary:
    log = new_logger("fetch_summary")
    try:
        visits = store.fetch_all()
    except Exception as e:
        log.error(f"Error fetching analytics: {type(e).__name__}: {str(e)}")
        raise AnalyticsUnavailableError("Failed to load page visits") from e
    return summarize_visits(visits, now=now)


class SummaryLoader:
    """
    Holds one summary request's outcome: pending until load() finishes, then
    loaded (with the summary) or failed (with the error).
    """

    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"

    def __init__(self, store: PageVisitStore):
        self.store = store
        self.status = self.PENDING
        self.summary: Optional[AnalyticsSummary] = None
        self.error: Optional[Exception] = None

    def load(self, now: Optional[datetime] = None) -> Optional[AnalyticsSummary]:
        try:
            self.summary = fetch_summary(self.store, now=now)
            self.status = self.LOADED
        except AnalyticsUnavailableError as e:
            self.error = e
            self.status = self.FAILED
        return self.summary
