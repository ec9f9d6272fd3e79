import json
import logging

from django.http import HttpResponse
from rest_framework import generics, status
from rest_framework.decorators import api_view
from rest_framework.exceptions import ParseError, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.ingest import DuplicateExportError, IngestError, ingest_export
from chat.models import Conversation
from chat.serializers import ConversationSerializer, ExportUploadSerializer, PeriodFilterSerializer
from chat.stats import get_stats
from reports.charts import CHART_NAMES, render_chart

activity_log = logging.getLogger("activity")
logger = logging.getLogger("chat.ingest")

CONVERSATION_IDS_LIMIT = 200


@api_view(["GET"])
def chat_root_view(request):
    return Response({"message": "Chat works!"}, status=status.HTTP_200_OK)


class ExportUploadView(APIView):
    """
    POST /chat/upload/
    Import a conversation export, sent either as the JSON body or as a
    multipart ``file``. A period that was already imported is rejected with 409.
    """

    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def _read_document(self, request):
        if "file" not in request.FILES:
            return request.data
        serializer = ExportUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        raw = serializer.validated_data["file"].read()
        try:
            return json.loads(raw.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise IngestError(f"File is not valid JSON: {exc}")

    def post(self, request, *args, **kwargs):
        try:
            document = self._read_document(request)
            result = ingest_export(document, uploaded_by=request.user)
        except IngestError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except (ParseError, ValidationError):
            raise
        except DuplicateExportError as exc:
            return Response(
                {"error": "Este archivo ya fue procesado anteriormente", "filename": exc.filename},
                status=status.HTTP_409_CONFLICT,
            )
        except Exception as exc:
            logger.exception("Export import failed")
            return Response(
                {"error": "Error al procesar el archivo", "details": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        activity_log.info(
            f'upload user="{request.user.id}" email="{request.user.email}" '
            f'file="{result.filename}" conversations="{result.conversations_processed}"'
        )
        return Response(
            {"success": True, "message": "JSON procesado exitosamente", "stats": result.as_dict()},
            status=status.HTTP_200_OK,
        )


def _period_from_query(request):
    serializer = PeriodFilterSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer


@api_view(["GET"])
def stats_view(request):
    period = _period_from_query(request).to_period()
    return Response(get_stats(period), status=status.HTTP_200_OK)


@api_view(["GET"])
def stats_chart_view(request, chart):
    if chart not in CHART_NAMES:
        return Response({"detail": "Chart not found"}, status=status.HTTP_404_NOT_FOUND)

    period = _period_from_query(request).to_period()
    png = render_chart(chart, get_stats(period))
    if png is None:
        return Response({"detail": "No data for this chart"}, status=status.HTTP_404_NOT_FOUND)
    return HttpResponse(png, content_type="image/png")


@api_view(["GET"])
def conversation_ids_view(request):
    serializer = _period_from_query(request)
    period = serializer.to_period()

    queryset = period.apply(Conversation.objects.all(), prefer="month")
    if serializer.validated_data.get("without_topics"):
        queryset = queryset.filter(topics__isnull=True)

    ids = list(queryset.order_by("-created_at").values_list("id", flat=True)[:CONVERSATION_IDS_LIMIT])
    return Response({"conversation_ids": ids, "count": len(ids)}, status=status.HTTP_200_OK)


class ConversationDetailView(generics.RetrieveAPIView):
    """
    GET /chat/conversations/<id>/
    A single conversation with its messages and topics.
    """

    serializer_class = ConversationSerializer
    queryset = Conversation.objects.prefetch_related("messages", "topics")
