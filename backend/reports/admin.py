from django.contrib import admin
from django.db import transaction

from .models import PublishedReport


class PublishedReportAdmin(admin.ModelAdmin):
    list_display = ("title", "period_start", "period_end", "published_at", "published_by", "is_latest")
    list_filter = ("is_latest", "year")
    ordering = ("-published_at",)
    actions = ["make_latest"]

    def make_latest(self, request, queryset):
        report = queryset.order_by("-published_at").first()
        if report is not None:
            report.mark_latest()
    make_latest.short_description = "Mark as latest report"

    def delete_queryset(self, request, queryset):
        with transaction.atomic():
            had_latest = queryset.filter(is_latest=True).exists()
            super().delete_queryset(request, queryset)
            if had_latest:
                PublishedReport.promote_newest()


admin.site.register(PublishedReport, PublishedReportAdmin)
