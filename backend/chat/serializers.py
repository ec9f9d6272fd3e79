from rest_framework import serializers

from chat.models import Conversation, Message, Topic
from chat.stats import PeriodFilter


class PeriodFilterSerializer(serializers.Serializer):
    """Query-string period filter shared by the stats and conversation-id endpoints."""

    month = serializers.IntegerField(required=False, min_value=1, max_value=12)
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    without_topics = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must not be after end_date")
        return attrs

    def to_period(self) -> PeriodFilter:
        data = self.validated_data
        return PeriodFilter(
            month=data.get("month"),
            year=data.get("year"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
        )


class ExportUploadSerializer(serializers.Serializer):
    file = serializers.FileField()

    def validate_file(self, value):
        max_size = 50 * 1024 * 1024
        if value.size > max_size:
            raise serializers.ValidationError(f"File size exceeds maximum allowed size of {max_size // (1024 * 1024)}MB")
        return value


class TopicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Topic
        fields = ["topic_name", "category", "relevance_score"]


class MessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ["id", "role", "content", "score", "created_at", "step_id", "message_type"]
        read_only_fields = fields


class ConversationSerializer(serializers.ModelSerializer):
    messages = MessageSerializer(many=True, read_only=True)
    topics = TopicSerializer(many=True, read_only=True)

    class Meta:
        model = Conversation
        fields = [
            "id",
            "title",
            "chatbot_name",
            "country",
            "created_at",
            "message_count",
            "sentiment",
            "messages",
            "topics",
        ]
        read_only_fields = fields
