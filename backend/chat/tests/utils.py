from datetime import datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model

from chat.models import Conversation, Message, Topic

User = get_user_model()


def make_user(email="u@u.com", password="pass", role="viewer"):
    return User.objects.create_user(email=email, password=password, role=role)


def make_conversation(conv_id, created_at, country="Venezuela", messages=2, title=None, topics=()):
    conv = Conversation.objects.create(
        id=conv_id,
        created_at=created_at,
        country=country,
        title=title or f"Conversación {conv_id}",
        message_count=messages,
        month=created_at.month,
        year=created_at.year,
    )
    for index in range(messages):
        Message.objects.create(
            id=f"{conv_id}-m{index}",
            conversation=conv,
            role="user" if index % 2 == 0 else "assistant",
            content=f"mensaje {index}",
            created_at=created_at,
        )
    for name in topics:
        Topic.objects.create(conversation=conv, topic_name=name)
    return conv


def utc(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=dt_timezone.utc)


def export_document(start="2025-01-01", end="2025-01-31", conversations=None):
    if conversations is None:
        conversations = [
            {
                "id": "conv-1",
                "chatbot_id": "bot-1",
                "country": "Venezuela",
                "created_at": "2025-01-10T14:00:00Z",
                "title": "Bolívar",
                "messages": [
                    {"role": "assistant", "content": "¡Hola! ¿En qué puedo ayudarte?"},
                    {"id": "msg-1", "role": "user", "content": "¿Quién fue Simón Bolívar?",
                     "createdAt": "2025-01-10T14:00:05Z", "score": 0.9},
                    {"id": "msg-2", "role": "assistant", "content": "Fue el Libertador.",
                     "createdAt": "2025-01-10T14:00:09Z"},
                ],
            },
            {
                "id": "conv-2",
                "country": "",
                "created_at": "2025-01-11T15:30:00Z",
                "messages": [
                    {"id": "msg-3", "role": "user", "content": "Batalla de Carabobo",
                     "createdAt": "2025-01-11T15:30:02Z"},
                ],
            },
        ]
    return {
        "startDateStr": start,
        "endDateStr": end,
        "chatbotName": "Historia Bot",
        "conversations": conversations,
    }
