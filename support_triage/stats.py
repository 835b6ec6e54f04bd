"""Inbox statistics for the dashboard API."""
import logging
from collections import Counter
from datetime import timedelta

from support_triage.store import EmailStore
from support_triage.utils import utcnow

logger = logging.getLogger("support_triage.stats")

SENTIMENTS = ("positive", "negative", "neutral")
PRIORITIES = ("urgent", "normal")
CATEGORIES = ("support", "query", "request", "help")
RECENT_HOURS = 24
RECENT_LIMIT = 10


def get_recent_emails(store: EmailStore, hours: int = RECENT_HOURS) -> list:
    """Emails received within the last ``hours``, newest first."""
    cutoff = utcnow() - timedelta(hours=hours)
    recent = [r for r in store.all() if r.received_date >= cutoff]
    recent.sort(key=lambda r: r.received_date, reverse=True)
    return recent


def get_email_stats(store: EmailStore) -> dict:
    """Headline counts, sentiment mix, recent activity and mean response time.

    ``avg_response_time`` is in hours, rounded to one decimal, or None when
    no reply has been sent yet.
    """
    records = store.all()
    sentiment = Counter(r.sentiment for r in records)
    response_times = [r.response_time for r in records if r.response_time is not None]
    avg_hours = None
    if response_times:
        avg_hours = round(sum(response_times) / len(response_times) / (1000 * 60 * 60), 1)

    recent = get_recent_emails(store)[:RECENT_LIMIT]
    return {
        "total_emails": len(records),
        "urgent_emails": sum(1 for r in records if r.priority == "urgent"),
        "pending_emails": sum(1 for r in records if r.status == "pending"),
        "resolved_emails": sum(1 for r in records if r.status == "resolved"),
        "sentiment_breakdown": {s: sentiment.get(s, 0) for s in SENTIMENTS},
        "recent_activity": [
            {
                "id": r.id,
                "subject": r.subject,
                "sender": r.sender_email,
                "priority": r.priority,
                "sentiment": r.sentiment,
                "received_date": r.received_date.isoformat(),
            }
            for r in recent
        ],
        "avg_response_time": avg_hours,
    }


def get_priority_breakdown(store: EmailStore) -> dict:
    """Per-priority totals with how many of each are still pending."""
    records = store.all()
    return {
        p: {
            "total": sum(1 for r in records if r.priority == p),
            "pending": sum(1 for r in records if r.priority == p and r.status == "pending"),
        }
        for p in PRIORITIES
    }


def get_category_breakdown(store: EmailStore) -> dict:
    counts = Counter(r.category for r in store.all())
    return {c: counts.get(c, 0) for c in CATEGORIES}


# bucket width and look-back window per timeline period
TIMELINE_PERIODS = {
    "day": ("%Y-%m-%d %H:00", timedelta(hours=24)),
    "week": ("%Y-%m-%d", timedelta(days=7)),
    "month": ("%G-W%V", timedelta(days=30)),
}
_SENTIMENT_SCORE = {"positive": 1, "neutral": 0, "negative": -1}


def get_timeline(store: EmailStore, period: str) -> dict:
    """Counts per hour (day), per day (week) or per ISO week (month), oldest bucket first.

    Raises ValueError for an unknown period.
    """
    if period not in TIMELINE_PERIODS:
        raise ValueError(f"Invalid period. Use: {', '.join(TIMELINE_PERIODS)}")
    fmt, window = TIMELINE_PERIODS[period]
    now = utcnow()
    since = now - window

    buckets = {}
    for r in store.all():
        if r.received_date < since:
            continue
        key = r.received_date.strftime(fmt)
        bucket = buckets.setdefault(key, {
            "bucket": key,
            "total_emails": 0,
            "urgent_emails": 0,
            "positive_emails": 0,
            "negative_emails": 0,
            "resolved_emails": 0,
        })
        bucket["total_emails"] += 1
        bucket["urgent_emails"] += r.priority == "urgent"
        bucket["positive_emails"] += r.sentiment == "positive"
        bucket["negative_emails"] += r.sentiment == "negative"
        bucket["resolved_emails"] += r.status == "resolved"

    timeline = [buckets[k] for k in sorted(buckets)]
    return {
        "period": period,
        "timeline": timeline,
        "summary": {
            "total_data_points": len(timeline),
            "date_range": {"from": since.isoformat(), "to": now.isoformat()},
        },
    }


def get_performance(store: EmailStore) -> dict:
    """Volume, resolution and response-time figures for the last day and week.

    ``avg_response_time`` (hours) only counts resolved emails. ``weekly_growth``
    compares the last day against the week's daily average, in percent.
    """
    records = store.all()
    now = utcnow()
    last_24h = sum(1 for r in records if r.received_date >= now - timedelta(hours=24))
    last_7d = sum(1 for r in records if r.received_date >= now - timedelta(days=7))
    resolved = [r for r in records if r.status == "resolved"]
    times = [r.response_time for r in resolved if r.response_time is not None]

    avg_hours = None
    if times:
        avg_hours = round(sum(times) / len(times) / (1000 * 60 * 60), 1)
    rate = round(len(resolved) / len(records) * 100, 1) if records else 0.0
    growth = round((last_24h * 7 / last_7d - 1) * 100, 1) if last_7d else 0.0
    return {
        "total_emails": len(records),
        "emails_last_24h": last_24h,
        "emails_last_7d": last_7d,
        "avg_response_time": avg_hours,
        "resolution_rate": rate,
        "urgent_emails_resolved": sum(1 for r in resolved if r.priority == "urgent"),
        "performance": {
            "daily_average": round(last_7d / 7, 1),
            "weekly_growth": growth,
        },
    }


def get_top_senders(store: EmailStore, limit: int = 10) -> list:
    """Senders by email count; ``avg_sentiment`` runs from -1 (negative) to 1 (positive)."""
    by_sender = {}
    for r in store.all():
        by_sender.setdefault(r.sender_email, []).append(r)

    senders = []
    for sender, records in by_sender.items():
        scores = [_SENTIMENT_SCORE.get(r.sentiment, 0) for r in records]
        senders.append({
            "sender_email": sender,
            "email_count": len(records),
            "urgent_count": sum(1 for r in records if r.priority == "urgent"),
            "last_email_date": max(r.received_date for r in records).isoformat(),
            "avg_sentiment": round(sum(scores) / len(scores), 2),
        })
    senders.sort(key=lambda s: s["email_count"], reverse=True)
    return senders[:limit]
