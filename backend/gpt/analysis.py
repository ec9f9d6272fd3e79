"""
Topic labelling of conversations with a hosted language model.

Conversations are sent in batches; each batch is retried a few times on API
or parsing failures and then skipped, so one bad answer does not lose the
whole run.
"""

import logging
import time
from dataclasses import dataclass, field

from django.conf import settings
from django.db import transaction

from chat.models import Conversation, Message, Topic
from chat.stats import invalidate_stats_cache
from src.utils.gpt import (
    ConversationText,
    build_topic_prompt,
    extract_json,
    parse_topics,
    request_topics,
)

logger = logging.getLogger("gpt.topics")


class NoMessagesError(Exception):
    """None of the requested conversations has user messages."""


class TopicAnalysisFailed(Exception):
    """Every batch failed."""


@dataclass
class AnalysisResult:
    topics_saved: int = 0
    batches_total: int = 0
    batches_failed: int = 0
    topics: dict = field(default_factory=dict)

    @property
    def topics_analyzed(self):
        return len(self.topics)

    def as_dict(self):
        return {
            "success": True,
            "topics_analyzed": self.topics_analyzed,
            "topics_saved": self.topics_saved,
            "batches_total": self.batches_total,
            "batches_failed": self.batches_failed,
            "topics": sorted(self.topics.values(), key=lambda t: (-t["relevance"], t["name"])),
        }


def load_conversation_texts(conversation_ids) -> list[ConversationText]:
    """User messages of each conversation, in the order they were sent."""
    rows = (
        Message.objects.filter(conversation_id__in=conversation_ids, role="user")
        .select_related("conversation")
        .order_by("created_at")
    )
    texts = {}
    for msg in rows:
        conv = texts.get(msg.conversation_id)
        if conv is None:
            conv = texts[msg.conversation_id] = ConversationText(
                id=msg.conversation_id, title=msg.conversation.title or ""
            )
        conv.messages.append(msg.content)
    return list(texts.values())


def chunked(items, size):
    size = max(1, int(size))
    for start in range(0, len(items), size):
        yield items[start:start + size]


def analyze_batch(batch, client=None, model=None, max_retries=None, retry_delay=None):
    """Return ``{conversation_id: [TopicLabel]}`` for one batch, retrying on failure."""
    model = model or settings.OPENAI_TOPIC_MODEL
    max_retries = settings.TOPIC_MAX_RETRIES if max_retries is None else max_retries
    retry_delay = settings.TOPIC_RETRY_DELAY if retry_delay is None else retry_delay

    prompt = build_topic_prompt(batch, settings.TOPIC_DOMAIN)
    ids = [conv.id for conv in batch]

    attempt = 0
    while True:
        attempt += 1
        try:
            text = request_topics(prompt, model=model, client=client)
            return parse_topics(extract_json(text), ids)
        except Exception as exc:  # API errors and TopicExtractionError alike
            error = exc
        if attempt > max_retries:
            raise TopicAnalysisFailed(f"Batch of {len(ids)} failed after {attempt} attempts: {error}") from error
        logger.warning("Topic batch attempt %s failed: %s", attempt, error)
        if retry_delay:
            time.sleep(retry_delay)


def save_topics(labels_by_conversation) -> int:
    rows = [
        Topic(
            conversation_id=conv_id,
            topic_name=label.name,
            category=label.category,
            relevance_score=label.relevance,
        )
        for conv_id, labels in labels_by_conversation.items()
        for label in labels
    ]
    if not rows:
        return 0

    conv_ids = list(labels_by_conversation.keys())
    with transaction.atomic():
        before = Topic.objects.filter(conversation_id__in=conv_ids).count()
        Topic.objects.bulk_create(rows, ignore_conflicts=True)
        after = Topic.objects.filter(conversation_id__in=conv_ids).count()
    return after - before


def analyze_conversations(conversation_ids, client=None, batch_size=None) -> AnalysisResult:
    """Label the given conversations with topics and store them."""
    texts = load_conversation_texts(conversation_ids)
    if not texts:
        raise NoMessagesError("No se encontraron mensajes")

    batch_size = batch_size or settings.TOPIC_BATCH_SIZE
    result = AnalysisResult()
    for batch in chunked(texts, batch_size):
        result.batches_total += 1
        try:
            labels = analyze_batch(batch, client=client)
        except TopicAnalysisFailed as exc:
            result.batches_failed += 1
            logger.error("Skipping topic batch: %s", exc)
            continue

        result.topics_saved += save_topics(labels)
        for conv_labels in labels.values():
            for label in conv_labels:
                seen = result.topics.get(label.name)
                if seen is None or label.relevance > seen["relevance"]:
                    result.topics[label.name] = {
                        "name": label.name,
                        "category": label.category,
                        "relevance": label.relevance,
                    }

    if result.batches_failed == result.batches_total:
        raise TopicAnalysisFailed(f"All {result.batches_total} topic batches failed")

    invalidate_stats_cache()
    logger.info(
        "Topic analysis: %s conversations, %s topics, %s saved, %s/%s batches failed",
        len(texts),
        result.topics_analyzed,
        result.topics_saved,
        result.batches_failed,
        result.batches_total,
    )
    return result


def pending_conversation_ids(limit=None):
    """Conversations that have user messages but no topics yet, newest first."""
    queryset = (
        Conversation.objects.filter(topics__isnull=True, messages__role="user")
        .order_by("-created_at")
        .values_list("id", flat=True)
        .distinct()
    )
    if limit:
        queryset = queryset[:limit]
    return list(queryset)
