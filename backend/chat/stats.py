"""
Dashboard statistics over imported conversations.

Every aggregate honours the same period filter: either a calendar month
(``month`` + ``year``) or an inclusive date range (``start_date`` +
``end_date``). Results are cached per filter; the cache is invalidated by
bumping a version key whenever conversations or topics change.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db.models import Avg, Count, Max, Min, Sum
from django.db.models.functions import TruncDate

from chat.models import Conversation, Topic

logger = logging.getLogger("chat.stats")

STATS_VERSION_KEY = "chat:stats:version"
TOP_TOPICS = 15


@dataclass(frozen=True)
class PeriodFilter:
    month: Optional[int] = None
    year: Optional[int] = None
    start_date: Optional[object] = None
    end_date: Optional[object] = None

    @property
    def has_month(self):
        return self.month is not None and self.year is not None

    @property
    def has_range(self):
        return self.start_date is not None and self.end_date is not None

    def apply(self, queryset, prefix="", prefer="range"):
        """Filter a queryset; ``prefix`` reaches conversation fields through a relation."""
        order = ("range", "month") if prefer == "range" else ("month", "range")
        for kind in order:
            if kind == "range" and self.has_range:
                return queryset.filter(
                    **{
                        f"{prefix}created_at__date__gte": self.start_date,
                        f"{prefix}created_at__date__lte": self.end_date,
                    }
                )
            if kind == "month" and self.has_month:
                return queryset.filter(**{f"{prefix}month": self.month, f"{prefix}year": self.year})
        return queryset

    def cache_key(self):
        if self.has_range:
            return f"range:{self.start_date}:{self.end_date}"
        if self.has_month:
            return f"month:{self.year}-{self.month}"
        return "all"

    def as_dict(self):
        if self.has_range:
            return {"start_date": str(self.start_date), "end_date": str(self.end_date)}
        if self.has_month:
            return {"month": self.month, "year": self.year}
        return {}


def _stats_version():
    return cache.get_or_set(STATS_VERSION_KEY, 1, None)


def invalidate_stats_cache():
    try:
        cache.incr(STATS_VERSION_KEY)
    except ValueError:
        cache.set(STATS_VERSION_KEY, 2, None)


def _isoformat(value):
    return value.isoformat() if value is not None else None


def conversations_by_day(queryset):
    rows = (
        queryset.annotate(date=TruncDate("created_at"))
        .values("date")
        .annotate(count=Count("id"))
        .order_by("date")
    )
    return [{"date": _isoformat(row["date"]), "count": row["count"]} for row in rows]


def countries(queryset):
    rows = queryset.values("country").annotate(count=Count("id")).order_by("-count", "country")
    return [{"country": row["country"], "count": row["count"]} for row in rows]


def avg_messages_by_day(queryset):
    rows = (
        queryset.annotate(date=TruncDate("created_at"))
        .values("date")
        .annotate(avg_messages=Avg("message_count"))
        .order_by("date")
    )
    return [{"date": _isoformat(row["date"]), "avg_messages": round(float(row["avg_messages"] or 0), 2)} for row in rows]


def top_topics(period: PeriodFilter, limit=TOP_TOPICS):
    rows = (
        period.apply(Topic.objects.all(), prefix="conversation__")
        .values("topic_name")
        .annotate(count=Count("id"))
        .order_by("-count", "topic_name")[:limit]
    )
    return [{"topic_name": row["topic_name"], "count": row["count"]} for row in rows]


def general_stats(queryset):
    totals = queryset.aggregate(
        total_conversations=Count("id"),
        total_messages=Sum("message_count"),
        avg_messages_per_conversation=Avg("message_count"),
        first_conversation=Min("created_at"),
        last_conversation=Max("created_at"),
    )
    return {
        "total_conversations": totals["total_conversations"] or 0,
        "total_messages": totals["total_messages"] or 0,
        "avg_messages_per_conversation": round(float(totals["avg_messages_per_conversation"] or 0), 2),
        "first_conversation": _isoformat(totals["first_conversation"]),
        "last_conversation": _isoformat(totals["last_conversation"]),
    }


def compute_stats(period: PeriodFilter) -> dict:
    conversations = period.apply(Conversation.objects.all())
    return {
        "conversations_by_day": conversations_by_day(conversations),
        "countries": countries(conversations),
        "avg_messages_by_day": avg_messages_by_day(conversations),
        "topics": top_topics(period),
        "general": general_stats(conversations),
    }


def get_stats(period: PeriodFilter) -> dict:
    cache_key = f"chat:stats:v{_stats_version()}:{period.cache_key()}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    stats = compute_stats(period)
    cache.set(cache_key, stats, settings.STATS_CACHE_TIMEOUT)
    logger.debug("Computed stats for %s", period.cache_key())
    return stats
