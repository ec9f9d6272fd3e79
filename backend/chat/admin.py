from django.contrib import admin
from nested_admin.nested import NestedModelAdmin, NestedTabularInline

from .models import Conversation, Message, ProcessedFile, Topic
from .stats import invalidate_stats_cache


class MessageInline(NestedTabularInline):
    model = Message
    extra = 0
    fields = ("id", "role", "content", "score", "created_at", "message_type")
    readonly_fields = fields


class TopicInline(NestedTabularInline):
    model = Topic
    extra = 1
    fields = ("topic_name", "category", "relevance_score")


class ConversationAdmin(NestedModelAdmin):
    actions = ["clear_topics"]
    inlines = [TopicInline, MessageInline]
    list_display = ("id", "short_title", "country", "created_at", "message_count", "topic_count")
    list_filter = ("year", "month", "country")
    search_fields = ("id", "title")
    ordering = ("-created_at",)

    def short_title(self, obj):
        s = obj.title or ""
        return (s[:80] + "…") if len(s) > 80 else s
    short_title.short_description = "Title"

    def clear_topics(self, request, queryset):
        Topic.objects.filter(conversation__in=queryset).delete()
        invalidate_stats_cache()
    clear_topics.short_description = "Remove topics from selected conversations"


class ProcessedFileAdmin(admin.ModelAdmin):
    list_display = ("filename", "start_date", "end_date", "total_conversations", "processed_at", "uploaded_by")
    ordering = ("-processed_at",)


admin.site.register(Topic)
admin.site.register(Conversation, ConversationAdmin)
admin.site.register(ProcessedFile, ProcessedFileAdmin)
