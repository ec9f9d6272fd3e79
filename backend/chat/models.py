from django.conf import settings
from django.db import models


class Conversation(models.Model):
    """A single chatbot conversation as exported by the chatbot platform."""

    id = models.CharField(primary_key=True, max_length=64, editable=False)
    chatbot_id = models.CharField(max_length=64, blank=True, null=True)
    chatbot_name = models.CharField(max_length=200, blank=True, null=True)
    country = models.CharField(max_length=100, default="Unknown")
    created_at = models.DateTimeField(db_index=True)
    title = models.CharField(max_length=500, blank=True, null=True)
    message_count = models.PositiveIntegerField(default=0)
    min_score = models.FloatField(blank=True, null=True)
    source = models.CharField(max_length=100, blank=True, null=True)
    user_id_chat = models.CharField(max_length=128, blank=True, null=True)
    anonymous_id = models.CharField(max_length=128, blank=True, null=True)
    month = models.PositiveSmallIntegerField(db_index=True)
    year = models.PositiveSmallIntegerField(db_index=True)
    sentiment = models.CharField(max_length=50, blank=True, null=True)
    last_message_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["year", "month"], name="chat_conv_year_month_idx")]

    def __str__(self):
        return self.title or self.id

    def topic_count(self):
        return self.topics.count()

    topic_count.short_description = "Number of topics"


class Message(models.Model):
    id = models.CharField(primary_key=True, max_length=64, editable=False)
    conversation = models.ForeignKey(Conversation, related_name="messages", on_delete=models.CASCADE)
    role = models.CharField(max_length=20)
    content = models.TextField(blank=True, default="")
    score = models.FloatField(blank=True, null=True)
    created_at = models.DateTimeField()
    step_id = models.CharField(max_length=64, blank=True, null=True)
    message_type = models.CharField(max_length=30, default="text")

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.role}: {self.content[:20]}..."


class Topic(models.Model):
    """A topic label assigned to a conversation by the language model."""

    conversation = models.ForeignKey(Conversation, related_name="topics", on_delete=models.CASCADE)
    topic_name = models.CharField(max_length=200)
    category = models.CharField(max_length=100, blank=True, default="")
    relevance_score = models.FloatField(default=0.5)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-relevance_score", "topic_name"]
        constraints = [
            models.UniqueConstraint(fields=["conversation", "topic_name"], name="unique_conversation_topic"),
        ]

    def __str__(self):
        return self.topic_name


class ProcessedFile(models.Model):
    """One imported export file, keyed by the period it covers."""

    filename = models.CharField(max_length=100, unique=True)
    start_date = models.CharField(max_length=20)
    end_date = models.CharField(max_length=20)
    total_conversations = models.PositiveIntegerField(default=0)
    processed_at = models.DateTimeField(auto_now_add=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="processed_files"
    )

    class Meta:
        ordering = ["-processed_at"]

    def __str__(self):
        return self.filename
