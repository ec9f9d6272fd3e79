import json
from io import StringIO
from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase

from chat.models import Topic
from chat.tests.utils import make_conversation, make_user, utc
from gpt.analysis import (
    NoMessagesError,
    TopicAnalysisFailed,
    analyze_conversations,
    load_conversation_texts,
    pending_conversation_ids,
)
from src.utils.gpt import (
    ConversationText,
    TopicExtractionError,
    build_topic_prompt,
    extract_json,
    parse_topics,
    request_topics,
)


def per_conversation_answer(*ids, name="Simón Bolívar"):
    return "Aquí está el análisis:\n" + json.dumps({
        "conversations": [
            {"id": f"[{conv_id}]", "topics": [{"name": name, "category": "Personajes", "relevance": 0.9}]}
            for conv_id in ids
        ]
    })


class TopicParsingTests(TestCase):
    def test_prompt_lists_each_conversation(self):
        prompt = build_topic_prompt(
            [ConversationText(id="a", title="", messages=["hola", "Bolívar"])], "Historia de Venezuela"
        )
        self.assertIn("Historia de Venezuela", prompt)
        self.assertIn("Conversación [a]: Sin título", prompt)
        self.assertIn("Mensajes: hola | Bolívar", prompt)

    def test_extract_json_from_prose(self):
        self.assertEqual(extract_json('Claro: {"topics": []} fin'), {"topics": []})
        with self.assertRaises(TopicExtractionError):
            extract_json("sin json")
        with self.assertRaises(TopicExtractionError):
            extract_json("{no: valid}")

    def test_per_conversation_shape(self):
        payload = {
            "conversations": [
                {"id": "[a]", "topics": [{"name": "Bolívar", "relevance": 3}, "Carabobo", {"category": "x"}]},
                {"id": "zzz", "topics": ["Inventado"]},
            ]
        }
        result = parse_topics(payload, ["a", "b"])
        self.assertEqual(list(result), ["a"])
        names = [(t.name, t.relevance) for t in result["a"]]
        self.assertEqual(names, [("Bolívar", 1.0), ("Carabobo", 0.5)])

    def test_flat_shape_applies_to_whole_batch(self):
        result = parse_topics({"topics": [{"name": "Guerra Federal", "category": "Eventos", "relevance": 0.7}]}, ["a", "b"])
        self.assertEqual(set(result), {"a", "b"})
        self.assertEqual(result["b"][0].category, "Eventos")

    def test_unknown_shape(self):
        with self.assertRaises(TopicExtractionError):
            parse_topics({"answer": 42}, ["a"])

    def test_request_topics_uses_chat_completions(self):
        client = MagicMock()
        client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content="{}"))]
        self.assertEqual(request_topics("prompt", model="gpt-test", client=client), "{}")
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-test")
        self.assertEqual(kwargs["messages"][-1], {"role": "user", "content": "prompt"})


@override_settings(TOPIC_RETRY_DELAY=0, TOPIC_MAX_RETRIES=2, TOPIC_BATCH_SIZE=2)
class AnalyzeConversationsTests(TestCase):
    def setUp(self):
        cache.clear()
        make_conversation("a", utc(2025, 1, 10), messages=3)
        make_conversation("b", utc(2025, 1, 11), messages=2)
        make_conversation("c", utc(2025, 1, 12), messages=2)

    def test_only_user_messages_are_sent(self):
        texts = {t.id: t for t in load_conversation_texts(["a", "b"])}
        self.assertEqual(texts["a"].messages, ["mensaje 0", "mensaje 2"])

    @patch("gpt.analysis.request_topics")
    def test_topics_are_saved_per_conversation(self, mock_request):
        mock_request.side_effect = lambda prompt, model, client=None: per_conversation_answer("a", "b", "c")

        result = analyze_conversations(["a", "b", "c"])

        self.assertEqual(mock_request.call_count, 2)
        self.assertEqual(result.batches_total, 2)
        self.assertEqual(result.batches_failed, 0)
        self.assertEqual(result.topics_saved, 3)
        self.assertEqual(result.topics_analyzed, 1)
        self.assertEqual(Topic.objects.filter(topic_name="Simón Bolívar").count(), 3)

    @patch("gpt.analysis.request_topics")
    def test_rerun_does_not_duplicate(self, mock_request):
        mock_request.return_value = per_conversation_answer("a")
        analyze_conversations(["a"])
        result = analyze_conversations(["a"])
        self.assertEqual(result.topics_saved, 0)
        self.assertEqual(Topic.objects.filter(conversation_id="a").count(), 1)

    @patch("gpt.analysis.request_topics")
    def test_failed_batch_is_retried_then_skipped(self, mock_request):
        # first batch (a, b) keeps failing, second batch (c) succeeds
        def answer(prompt, model, client=None):
            if "Conversación [c]" in prompt:
                return per_conversation_answer("c")
            raise RuntimeError("rate limited")

        mock_request.side_effect = answer
        result = analyze_conversations(["a", "b", "c"])

        self.assertEqual(mock_request.call_count, 4)
        self.assertEqual(result.batches_failed, 1)
        self.assertEqual(list(Topic.objects.values_list("conversation_id", flat=True)), ["c"])

    @patch("gpt.analysis.request_topics", return_value="no json here")
    def test_all_batches_failing_raises(self, mock_request):
        with self.assertRaises(TopicAnalysisFailed):
            analyze_conversations(["a"])
        self.assertEqual(mock_request.call_count, 3)
        self.assertFalse(Topic.objects.exists())

    def test_no_messages(self):
        with self.assertRaises(NoMessagesError):
            analyze_conversations(["missing"])

    def test_pending_conversations(self):
        Topic.objects.create(conversation_id="b", topic_name="Algo")
        self.assertEqual(pending_conversation_ids(), ["c", "a"])
        self.assertEqual(pending_conversation_ids(limit=1), ["c"])


@override_settings(TOPIC_RETRY_DELAY=0)
class AnalyzeTopicsApiTests(APITestCase):
    def setUp(self):
        make_conversation("a", utc(2025, 1, 10))
        self.url = reverse("gpt-analyze-topics")
        self.user = make_user()

    def test_requires_authentication(self):
        self.assertEqual(self.client.post(self.url, {"conversation_ids": ["a"]}, format="json").status_code, 401)

    def test_ids_must_be_a_list(self):
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"conversation_ids": "a"}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["error"], "conversation_ids debe ser un array")

    def test_unknown_conversations(self):
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"conversation_ids": ["zzz"]}, format="json")
        self.assertEqual(r.status_code, 404)

    @patch("gpt.analysis.request_topics")
    def test_success(self, mock_request):
        mock_request.return_value = per_conversation_answer("a")
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"conversation_ids": ["a"]}, format="json")
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data["success"])
        self.assertEqual(r.data["topics_saved"], 1)
        self.assertEqual(r.data["topics"][0]["name"], "Simón Bolívar")

    @patch("gpt.analysis.request_topics", side_effect=RuntimeError("boom"))
    def test_model_failure(self, mock_request):
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"conversation_ids": ["a"]}, format="json")
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.data["error"], "Error al analizar temas")


@override_settings(TOPIC_RETRY_DELAY=0, CELERY_TASK_ALWAYS_EAGER=True)
class AnalyzeTopicsCommandTests(TestCase):
    @patch("gpt.analysis.request_topics")
    def test_command_labels_pending(self, mock_request):
        make_conversation("a", utc(2025, 1, 10))
        make_conversation("b", utc(2025, 1, 11))
        mock_request.side_effect = lambda prompt, model, client=None: per_conversation_answer("a", "b")

        out = StringIO()
        call_command("analyze_topics", "--delay", "0", stdout=out)

        self.assertEqual(Topic.objects.count(), 2)
        self.assertIn("2 topics saved", out.getvalue())

    @patch("gpt.analysis.request_topics")
    def test_task(self, mock_request):
        from gpt.tasks import analyze_topics_task

        make_conversation("a", utc(2025, 1, 10))
        mock_request.return_value = per_conversation_answer("a")
        self.assertEqual(analyze_topics_task.apply(args=[["a"]]).get()["topics_saved"], 1)
