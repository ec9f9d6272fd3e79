import logging

from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404, render
from django.utils.http import content_disposition_header
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from reports.charts import CHART_NAMES, CHART_TITLES, png_to_data_uri, render_chart
from reports.documents import DOCX_CONTENT_TYPE, PDF_CONTENT_TYPE, ReportContent, build_docx, build_pdf
from reports.formatting import sanitize_filename
from reports.models import PublishedReport
from reports.permissions import IsAdminRole
from reports.serializers import PublishReportSerializer, ReportSerializer, ReportSummarySerializer

activity_log = logging.getLogger("activity")
logger = logging.getLogger("reports")

PUBLIC_LIST_LIMIT = 50


@api_view(["POST"])
def publish_report(request):
    serializer = PublishReportSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    report = serializer.save(published_by=request.user)

    activity_log.info(
        f'publish user="{request.user.id}" email="{request.user.email}" '
        f'report="{report.id}" title="{report.title}"'
    )
    return Response(
        {
            "success": True,
            "report_id": str(report.id),
            "published_at": report.published_at,
            "message": "Reporte publicado exitosamente",
        },
        status=status.HTTP_200_OK,
    )


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def public_reports(request):
    latest = PublishedReport.objects.filter(is_latest=True).order_by("-published_at").first()
    reports = PublishedReport.objects.order_by("-published_at")[:PUBLIC_LIST_LIMIT]
    return Response(
        {
            "latest": ReportSerializer(latest).data if latest else None,
            "all": ReportSummarySerializer(reports, many=True).data,
        },
        status=status.HTTP_200_OK,
    )


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def public_report_detail(request, pk):
    report = get_object_or_404(PublishedReport, pk=pk)
    return Response(ReportSerializer(report).data, status=status.HTTP_200_OK)


@api_view(["DELETE"])
@permission_classes([IsAdminRole])
def delete_report(request, pk):
    report = get_object_or_404(PublishedReport, pk=pk)
    report_id, report_title = str(report.id), report.title
    report.delete()

    activity_log.info(
        f'delete_report user="{request.user.id}" email="{request.user.email}" '
        f'report="{report_id}" title="{report_title}"'
    )
    return Response(
        {
            "success": True,
            "message": "Reporte eliminado exitosamente",
            "report_id": report_id,
            "report_title": report_title,
        },
        status=status.HTTP_200_OK,
    )


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def report_chart(request, pk, chart):
    if chart not in CHART_NAMES:
        raise Http404("Chart not found")
    report = get_object_or_404(PublishedReport, pk=pk)
    png = render_chart(chart, report.stats_data)
    if png is None:
        raise Http404("No data for this chart")
    return HttpResponse(png, content_type="image/png")


def _attachment(payload, content_type, filename):
    response = HttpResponse(payload, content_type=content_type)
    response["Content-Disposition"] = content_disposition_header(True, filename)
    return response


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def export_pdf(request, pk):
    report = get_object_or_404(PublishedReport, pk=pk)
    payload = build_pdf(ReportContent.from_report(report))
    logger.info("Exported report %s as PDF (%s bytes)", report.id, len(payload))
    return _attachment(payload, PDF_CONTENT_TYPE, f"{sanitize_filename(report.title)}.pdf")


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def export_docx(request, pk):
    report = get_object_or_404(PublishedReport, pk=pk)
    payload = build_docx(ReportContent.from_report(report))
    logger.info("Exported report %s as DOCX (%s bytes)", report.id, len(payload))
    return _attachment(payload, DOCX_CONTENT_TYPE, f"{sanitize_filename(report.title)}.docx")


def report_view(request, pk=None):
    """Browser page for one published report; the latest one without ``pk``."""
    if pk is None:
        report = (
            PublishedReport.objects.filter(is_latest=True).order_by("-published_at").first()
            or PublishedReport.objects.order_by("-published_at").first()
        )
    else:
        report = get_object_or_404(PublishedReport, pk=pk)

    context = {
        "report": report,
        "reports": PublishedReport.objects.order_by("-published_at")[:PUBLIC_LIST_LIMIT],
    }
    if report is not None:
        content = ReportContent.from_report(report)
        context["content"] = content
        context["charts"] = [
            {"title": CHART_TITLES[name], "src": png_to_data_uri(content.charts[name])}
            for name in CHART_NAMES
            if name in content.charts
        ]
    return render(request, "reports/report.html", context)
