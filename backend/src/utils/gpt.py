import json
import re
from dataclasses import dataclass, field

from src.libs import get_client

TOPIC_PARAMS = dict(
    temperature=0.2,
    max_tokens=2000,
)

DEFAULT_RELEVANCE = 0.5

JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")


class TopicExtractionError(Exception):
    """The model response did not contain usable topic JSON."""


@dataclass
class ConversationText:
    id: str
    title: str
    messages: list = field(default_factory=list)


@dataclass
class TopicLabel:
    name: str
    category: str = ""
    relevance: float = DEFAULT_RELEVANCE


def build_topic_prompt(conversations: list[ConversationText], domain: str) -> str:
    summaries = "\n\n".join(
        f"Conversación [{conv.id}]: {conv.title or 'Sin título'}\nMensajes: {' | '.join(conv.messages)}"
        for conv in conversations
    )
    return f"""Analiza las siguientes conversaciones de un chatbot sobre {domain} y extrae los temas principales consultados.

{summaries}

Por favor, identifica los 10-15 temas más relevantes y agrúpalos por categoría temática (por ejemplo: personajes históricos, eventos, lugares, conceptos, etc.). Asigna a cada conversación, usando su identificador entre corchetes, los temas que trata.

Responde ÚNICAMENTE con un JSON en este formato:
{{
  "conversations": [
    {{
      "id": "identificador de la conversación",
      "topics": [
        {{
          "name": "Nombre del tema",
          "category": "Categoría",
          "relevance": 0.95
        }}
      ]
    }}
  ]
}}"""


def extract_json(text: str) -> dict:
    """Decode the outermost ``{...}`` block of a free-text model answer."""
    match = JSON_BLOCK_RE.search(text or "")
    if not match:
        raise TopicExtractionError("No JSON object found in model response")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise TopicExtractionError(f"Invalid JSON in model response: {exc}") from exc
    if not isinstance(payload, dict):
        raise TopicExtractionError("Model response JSON is not an object")
    return payload


def normalize_topic(entry) -> TopicLabel | None:
    if isinstance(entry, str):
        entry = {"name": entry}
    if not isinstance(entry, dict):
        return None

    name = str(entry.get("name") or "").strip()
    if not name:
        return None

    try:
        relevance = float(entry.get("relevance", DEFAULT_RELEVANCE))
    except (TypeError, ValueError):
        relevance = DEFAULT_RELEVANCE
    relevance = min(max(relevance, 0.0), 1.0)

    return TopicLabel(name=name[:200], category=str(entry.get("category") or "").strip()[:100], relevance=relevance)


def _labels(entries):
    if not isinstance(entries, list):
        return []
    return [label for label in (normalize_topic(e) for e in entries) if label is not None]


def parse_topics(payload: dict, conversation_ids: list[str]) -> dict[str, list[TopicLabel]]:
    """
    Map each conversation id of a batch to its topic labels.

    Accepts the per-conversation shape ``{"conversations": [{"id", "topics"}]}``
    and the flat ``{"topics": [...]}`` shape, whose topics apply to every
    conversation in the batch. Ids the model invented are ignored.
    """
    wanted = set(conversation_ids)

    if isinstance(payload.get("conversations"), list):
        result = {}
        for item in payload["conversations"]:
            if not isinstance(item, dict):
                continue
            conv_id = str(item.get("id", "")).strip().strip("[]")
            if conv_id in wanted:
                result.setdefault(conv_id, []).extend(_labels(item.get("topics")))
        return result

    if "topics" in payload:
        labels = _labels(payload["topics"])
        return {conv_id: list(labels) for conv_id in conversation_ids}

    raise TopicExtractionError("Model response has neither 'conversations' nor 'topics'")


def request_topics(prompt: str, model: str, client=None) -> str:
    client = client or get_client()
    response = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": "Eres un analista que clasifica conversaciones de un chatbot. Responde solo con JSON."},
            {"role": "user", "content": prompt},
        ],
        **TOPIC_PARAMS,
    )
    return response.choices[0].message.content or ""
