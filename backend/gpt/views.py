import logging

from django.http import JsonResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from gpt.analysis import NoMessagesError, TopicAnalysisFailed, analyze_conversations

activity_log = logging.getLogger("activity")
logger = logging.getLogger("gpt.topics")


@api_view(["GET"])
def gpt_root_view(request):
    return JsonResponse({"message": "GPT endpoint works!"})


@api_view(["POST"])
def analyze_topics(request):
    conversation_ids = request.data.get("conversation_ids")
    if not isinstance(conversation_ids, list):
        return Response({"error": "conversation_ids debe ser un array"}, status=status.HTTP_400_BAD_REQUEST)

    conversation_ids = [str(conv_id) for conv_id in conversation_ids if conv_id]
    try:
        result = analyze_conversations(conversation_ids)
    except NoMessagesError as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    except TopicAnalysisFailed as exc:
        logger.error("Topic analysis failed: %s", exc)
        return Response(
            {"error": "Error al analizar temas", "details": str(exc)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    activity_log.info(
        f'analyze_topics user="{request.user.id}" email="{request.user.email}" '
        f'conversations="{len(conversation_ids)}" saved="{result.topics_saved}"'
    )
    return Response(result.as_dict(), status=status.HTTP_200_OK)
