"""
Import of chatbot conversation exports.

An export covers one period (``startDateStr`` to ``endDateStr``) and is only
ever imported once; the period-derived filename is recorded in
``ProcessedFile`` and a second import of the same period is rejected.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import timezone as dt_timezone

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from chat.models import Conversation, Message, ProcessedFile
from chat.stats import invalidate_stats_cache

logger = logging.getLogger("chat.ingest")


class IngestError(Exception):
    """The export document is malformed."""


class DuplicateExportError(Exception):
    def __init__(self, filename):
        super().__init__(f"{filename} was already processed")
        self.filename = filename


@dataclass
class IngestResult:
    conversations_processed: int
    conversations_created: int
    messages_processed: int
    filename: str
    period: str

    def as_dict(self):
        return asdict(self)


def export_filename(document: dict) -> str:
    return f"{document.get('startDateStr')}_{document.get('endDateStr')}.json"


def _parse_timestamp(value, field):
    if value in (None, ""):
        return None
    try:
        parsed = parse_datetime(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise IngestError(f"Invalid timestamp for {field}: {value!r}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _float_or_none(value):
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_conversation(conv: dict, chatbot_name) -> Conversation:
    if not conv.get("id"):
        raise IngestError("Every conversation needs an id")
    created_at = _parse_timestamp(conv.get("created_at"), "created_at")
    if created_at is None:
        raise IngestError(f"Conversation {conv['id']} has no created_at")

    local = timezone.localtime(created_at)
    messages = conv.get("messages") or []
    return Conversation(
        id=str(conv["id"]),
        chatbot_id=conv.get("chatbot_id"),
        chatbot_name=chatbot_name,
        country=conv.get("country") or "Unknown",
        created_at=created_at,
        title=conv.get("title"),
        message_count=len(messages) if isinstance(messages, list) else 0,
        min_score=_float_or_none(conv.get("min_score")),
        source=conv.get("source"),
        user_id_chat=conv.get("user_id"),
        anonymous_id=conv.get("anonymous_id"),
        month=local.month,
        year=local.year,
        sentiment=conv.get("sentiment"),
        last_message_at=_parse_timestamp(conv.get("last_message_at"), "last_message_at"),
    )


def build_messages(conv: dict, conversation: Conversation):
    messages = conv.get("messages")
    if not isinstance(messages, list):
        return []

    built = []
    for msg in messages:
        # Greeting messages injected by the assistant carry no id.
        if not isinstance(msg, dict) or not msg.get("id"):
            continue
        built.append(
            Message(
                id=str(msg["id"]),
                conversation_id=conversation.id,
                role=msg.get("role") or "",
                content=msg.get("content") or "",
                score=_float_or_none(msg.get("score")),
                created_at=_parse_timestamp(msg.get("createdAt"), "createdAt") or conversation.created_at,
                step_id=msg.get("stepId") or None,
                message_type=msg.get("type") or "text",
            )
        )
    return built


def ingest_export(document, uploaded_by=None, force=False) -> IngestResult:
    """Store every conversation and message of an export in one transaction."""
    if not isinstance(document, dict) or not isinstance(document.get("conversations"), list):
        raise IngestError("Invalid JSON structure")

    filename = export_filename(document)
    start, end = document.get("startDateStr"), document.get("endDateStr")

    if not force and ProcessedFile.objects.filter(filename=filename).exists():
        raise DuplicateExportError(filename)

    conversations = {}
    messages = {}
    processed = 0
    messages_processed = 0
    for conv in document["conversations"]:
        if not isinstance(conv, dict):
            raise IngestError("Invalid JSON structure")
        conversation = build_conversation(conv, document.get("chatbotName"))
        processed += 1
        conversations.setdefault(conversation.id, conversation)
        built = build_messages(conv, conversation)
        messages_processed += len(built)
        for message in built:
            messages.setdefault(message.id, message)

    with transaction.atomic():
        existing = set(Conversation.objects.filter(pk__in=conversations.keys()).values_list("pk", flat=True))
        new_conversations = [c for pk, c in conversations.items() if pk not in existing]
        Conversation.objects.bulk_create(new_conversations, ignore_conflicts=True)

        existing_messages = set(Message.objects.filter(pk__in=messages.keys()).values_list("pk", flat=True))
        Message.objects.bulk_create(
            [m for pk, m in messages.items() if pk not in existing_messages], ignore_conflicts=True
        )

        ProcessedFile.objects.update_or_create(
            filename=filename,
            defaults={
                "start_date": start or "",
                "end_date": end or "",
                "total_conversations": processed,
                "uploaded_by": uploaded_by,
            },
        )

    invalidate_stats_cache()
    result = IngestResult(
        conversations_processed=processed,
        conversations_created=len(new_conversations),
        messages_processed=messages_processed,
        filename=filename,
        period=f"{start} a {end}",
    )
    logger.info(
        "Imported %s: %s conversations (%s new), %s messages",
        filename,
        result.conversations_processed,
        result.conversations_created,
        result.messages_processed,
    )
    return result
