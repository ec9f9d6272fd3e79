import calendar
from datetime import date

from django.db import transaction
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from reports.models import PublishedReport

YEAR_MIN, YEAR_MAX = 2000, 2100


def _as_date(value):
    if not value:
        return None
    text = str(value)
    try:
        parsed = parse_datetime(text)
        if parsed is not None:
            return parsed.date()
        return parse_date(text[:10])
    except ValueError:
        return None


def resolve_period(filters: dict, stats_data: dict):
    """
    ``(start, end, month, year)`` for a report.

    A month/year filter wins over a date range; without either the span of
    the stats themselves is used. Returns None when nothing yields a period.
    """
    filters = filters or {}
    month, year = filters.get("month"), filters.get("year")
    try:
        month, year = (int(month), int(year)) if month and year else (None, None)
    except (TypeError, ValueError):
        month, year = None, None
    if month and year and 1 <= month <= 12 and YEAR_MIN <= year <= YEAR_MAX:
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day), month, year

    start = _as_date(filters.get("start_date") or filters.get("startDate"))
    end = _as_date(filters.get("end_date") or filters.get("endDate"))
    if start and end:
        return start, end, None, None

    general = (stats_data or {}).get("general") or {}
    start = _as_date(general.get("first_conversation"))
    end = _as_date(general.get("last_conversation"))
    if start and end:
        return start, end, None, None
    return None


class PublishReportSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    filters = serializers.DictField(required=False, default=dict)
    stats_data = serializers.DictField()

    def validate(self, attrs):
        period = resolve_period(attrs.get("filters"), attrs["stats_data"])
        if period is None:
            raise serializers.ValidationError("No se pudo determinar el período del reporte")
        attrs["period_start"], attrs["period_end"], attrs["month"], attrs["year"] = period
        return attrs

    def create(self, validated_data):
        with transaction.atomic():
            report = PublishedReport.objects.create(
                title=validated_data["title"],
                period_start=validated_data["period_start"],
                period_end=validated_data["period_end"],
                month=validated_data["month"],
                year=validated_data["year"],
                stats_data=validated_data["stats_data"],
                published_by=validated_data.get("published_by"),
            )
            report.mark_latest()
        return report


class ReportSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = PublishedReport
        fields = ["id", "title", "period_start", "period_end", "published_at", "is_latest"]
        read_only_fields = fields


class ReportSerializer(serializers.ModelSerializer):
    published_by = serializers.SerializerMethodField()

    class Meta:
        model = PublishedReport
        fields = [
            "id",
            "title",
            "period_start",
            "period_end",
            "month",
            "year",
            "stats_data",
            "published_by",
            "published_at",
            "is_latest",
        ]
        read_only_fields = fields

    def get_published_by(self, obj):
        return obj.published_by.email if obj.published_by_id else None
