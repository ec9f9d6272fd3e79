import uuid

from django.conf import settings
from django.db import models, transaction


class PublishedReport(models.Model):
    """A frozen snapshot of dashboard statistics, readable without login."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    period_start = models.DateField()
    period_end = models.DateField()
    month = models.PositiveSmallIntegerField(null=True, blank=True)
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    stats_data = models.JSONField(default=dict)
    published_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="published_reports"
    )
    published_at = models.DateTimeField(auto_now_add=True)
    is_latest = models.BooleanField(default=False)

    class Meta:
        ordering = ["-published_at"]

    def __str__(self):
        return self.title

    def mark_latest(self):
        with transaction.atomic():
            PublishedReport.objects.exclude(pk=self.pk).filter(is_latest=True).update(is_latest=False)
            if not self.is_latest:
                self.is_latest = True
                self.save(update_fields=["is_latest"])

    def delete(self, *args, **kwargs):
        with transaction.atomic():
            was_latest = self.is_latest
            result = super().delete(*args, **kwargs)
            if was_latest:
                PublishedReport.promote_newest()
        return result

    @classmethod
    def promote_newest(cls):
        """Make the most recently published report the latest one."""
        successor = cls.objects.order_by("-published_at").first()
        if successor is not None:
            successor.mark_latest()
        return successor
