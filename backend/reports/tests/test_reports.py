from datetime import date, datetime, timezone as dt_timezone

from django.contrib import admin
from django.test import RequestFactory, TestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from chat.tests.utils import make_user
from reports.admin import PublishedReportAdmin
from reports.charts import render_all, render_chart
from reports.documents import ReportContent, build_docx, build_pdf, headline_figures
from reports.formatting import format_date, format_datetime, format_number, sanitize_filename
from reports.models import PublishedReport
from reports.serializers import resolve_period

STATS = {
    "conversations_by_day": [{"date": "2025-01-10", "count": 2}, {"date": "2025-01-11", "count": 1}],
    "countries": [{"country": "Venezuela", "count": 2}, {"country": "", "count": 1}],
    "avg_messages_by_day": [{"date": "2025-01-10", "avg_messages": 3.0}, {"date": "2025-01-11", "avg_messages": 6.0}],
    "topics": [{"topic_name": "Simón Bolívar", "count": 2}, {"topic": "Carabobo", "count": 1}],
    "general": {
        "total_conversations": 1234,
        "total_messages": 5678,
        "avg_messages_per_conversation": 4.6,
        "first_conversation": "2025-01-10T12:00:00+00:00",
        "last_conversation": "2025-01-11T12:00:00+00:00",
    },
}


def make_report(title="Reporte Enero 2025", stats=None, latest=True):
    report = PublishedReport.objects.create(
        title=title,
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 31),
        month=1,
        year=2025,
        stats_data=STATS if stats is None else stats,
    )
    if latest:
        report.mark_latest()
    return report


class FormattingTests(TestCase):
    def test_dates(self):
        self.assertEqual(format_date("2025-01-05"), "05 ene 2025")
        self.assertEqual(format_date(date(2025, 9, 30)), "30 sept 2025")
        self.assertEqual(format_date(None), "")
        # America/Caracas is UTC-4
        self.assertEqual(format_datetime(datetime(2025, 3, 2, 18, 5, tzinfo=dt_timezone.utc)), "02 mar 2025 14:05")

    def test_numbers_and_filenames(self):
        self.assertEqual(format_number(1234567), "1.234.567")
        self.assertEqual(format_number(None), "0")
        self.assertEqual(sanitize_filename("Reporte Enero 2025"), "reporte-enero-2025")
        self.assertEqual(sanitize_filename("Análisis / Febrero"), "análisis-febrero")
        self.assertEqual(sanitize_filename("///"), "reporte")


class PeriodResolutionTests(TestCase):
    def test_month_and_year(self):
        self.assertEqual(resolve_period({"month": 2, "year": 2024}, {}), (date(2024, 2, 1), date(2024, 2, 29), 2, 2024))

    def test_date_range_either_spelling(self):
        expected = (date(2025, 1, 5), date(2025, 1, 20), None, None)
        self.assertEqual(resolve_period({"start_date": "2025-01-05", "end_date": "2025-01-20"}, {}), expected)
        self.assertEqual(resolve_period({"startDate": "2025-01-05", "endDate": "2025-01-20"}, {}), expected)

    def test_falls_back_to_stats_span(self):
        self.assertEqual(resolve_period({}, STATS), (date(2025, 1, 10), date(2025, 1, 11), None, None))

    def test_nothing_to_go_on(self):
        self.assertIsNone(resolve_period({}, {"general": {}}))

    def test_year_out_of_range_is_ignored(self):
        self.assertIsNone(resolve_period({"month": 1, "year": 10000}, {}))
        self.assertEqual(resolve_period({"month": 1, "year": 10000}, STATS)[0], date(2025, 1, 10))

    def test_impossible_dates_are_ignored(self):
        self.assertIsNone(resolve_period({"start_date": "2025-02-30", "end_date": "2025-03-01"}, {}))
        general = {"first_conversation": "2025-02-30T10:00:00Z", "last_conversation": "2025-03-01T10:00:00Z"}
        self.assertIsNone(resolve_period({}, {"general": general}))


class RenderingTests(TestCase):
    def test_all_charts_render(self):
        charts = render_all(STATS)
        self.assertEqual(set(charts), {"conversations", "countries", "topics", "average"})
        for png in charts.values():
            self.assertTrue(png.startswith(b"\x89PNG"))

    def test_chart_without_data_is_skipped(self):
        self.assertIsNone(render_chart("topics", {"topics": []}))
        self.assertEqual(render_all({}), {})

    def test_camel_case_sections(self):
        stats = {"conversationsByDay": STATS["conversations_by_day"]}
        self.assertIsNotNone(render_chart("conversations", stats))

    def test_headline_figures(self):
        self.assertEqual(
            headline_figures(STATS),
            [("1.234", "Conversaciones"), ("5.678", "Mensajes"), ("4.6", "Promedio"), ("2", "Países")],
        )

    def test_pdf_and_docx(self):
        content = ReportContent.from_report(make_report())
        self.assertTrue(build_pdf(content).startswith(b"%PDF"))
        self.assertTrue(build_docx(content).startswith(b"PK"))

    def test_documents_without_charts(self):
        content = ReportContent.from_report(make_report(stats={}))
        self.assertEqual(content.charts, {})
        self.assertTrue(build_pdf(content).startswith(b"%PDF"))
        self.assertTrue(build_docx(content).startswith(b"PK"))


class LatestReportTests(TestCase):
    def test_only_one_latest(self):
        first = make_report("Uno")
        second = make_report("Dos")
        first.refresh_from_db()
        self.assertFalse(first.is_latest)
        self.assertTrue(second.is_latest)
        self.assertEqual(PublishedReport.objects.filter(is_latest=True).count(), 1)

    def test_deleting_latest_promotes_next(self):
        first = make_report("Uno")
        second = make_report("Dos")
        second.delete()
        first.refresh_from_db()
        self.assertTrue(first.is_latest)

    def test_admin_bulk_delete_promotes_next(self):
        first = make_report("Uno")
        make_report("Dos")
        make_report("Tres")
        model_admin = PublishedReportAdmin(PublishedReport, admin.site)
        request = RequestFactory().post("/admin/reports/publishedreport/")

        model_admin.delete_queryset(request, PublishedReport.objects.exclude(pk=first.pk))

        first.refresh_from_db()
        self.assertTrue(first.is_latest)
        self.assertEqual(PublishedReport.objects.count(), 1)


class PublishApiTests(APITestCase):
    def setUp(self):
        self.user = make_user(email="pub@u.com")
        self.url = reverse("reports-publish")

    def test_requires_authentication(self):
        r = self.client.post(self.url, {"title": "x", "stats_data": STATS}, format="json")
        self.assertEqual(r.status_code, 401)

    def test_publish(self):
        older = make_report("Anterior")
        self.client.force_authenticate(self.user)
        r = self.client.post(
            self.url,
            {"title": "Reporte Enero", "filters": {"month": 1, "year": 2025}, "stats_data": STATS},
            format="json",
        )
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data["success"])

        report = PublishedReport.objects.get(pk=r.data["report_id"])
        self.assertEqual((report.period_start, report.period_end), (date(2025, 1, 1), date(2025, 1, 31)))
        self.assertEqual(report.published_by, self.user)
        self.assertTrue(report.is_latest)
        older.refresh_from_db()
        self.assertFalse(older.is_latest)

    def test_missing_fields(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.post(self.url, {"stats_data": STATS}, format="json").status_code, 400)
        self.assertEqual(self.client.post(self.url, {"title": "x"}, format="json").status_code, 400)

    def test_undeterminable_period(self):
        self.client.force_authenticate(self.user)
        r = self.client.post(self.url, {"title": "x", "stats_data": {"general": {}}}, format="json")
        self.assertEqual(r.status_code, 400)

    def test_year_out_of_range(self):
        self.client.force_authenticate(self.user)
        r = self.client.post(
            self.url,
            {"title": "x", "filters": {"month": 1, "year": 10000}, "stats_data": {"general": {}}},
            format="json",
        )
        self.assertEqual(r.status_code, 400)

    def test_impossible_conversation_date(self):
        self.client.force_authenticate(self.user)
        general = {"first_conversation": "2025-02-30T10:00:00Z", "last_conversation": "2025-03-01T10:00:00Z"}
        r = self.client.post(self.url, {"title": "x", "stats_data": {"general": general}}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertFalse(PublishedReport.objects.exists())


class PublicApiTests(APITestCase):
    def setUp(self):
        self.old = make_report("Diciembre")
        self.report = make_report("Reporte Enero 2025")

    def test_list_is_public(self):
        r = self.client.get(reverse("reports-public"))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["latest"]["id"], str(self.report.id))
        self.assertEqual(r.data["latest"]["stats_data"]["general"]["total_conversations"], 1234)
        self.assertEqual([item["title"] for item in r.data["all"]], ["Reporte Enero 2025", "Diciembre"])
        self.assertNotIn("stats_data", r.data["all"][0])

    def test_list_without_reports(self):
        PublishedReport.objects.all().delete()
        r = self.client.get(reverse("reports-public"))
        self.assertIsNone(r.data["latest"])
        self.assertEqual(r.data["all"], [])

    def test_detail(self):
        r = self.client.get(reverse("reports-public-detail", args=[self.old.pk]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["title"], "Diciembre")
        self.assertFalse(r.data["is_latest"])

    def test_detail_not_found(self):
        r = self.client.get(reverse("reports-public-detail", args=["00000000-0000-0000-0000-000000000000"]))
        self.assertEqual(r.status_code, 404)

    def test_chart(self):
        r = self.client.get(reverse("reports-chart", args=[self.report.pk, "countries"]))
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.content.startswith(b"\x89PNG"))
        self.assertEqual(self.client.get(reverse("reports-chart", args=[self.report.pk, "bogus"])).status_code, 404)

    def test_export_pdf(self):
        r = self.client.get(reverse("reports-export-pdf", args=[self.report.pk]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r["Content-Type"], "application/pdf")
        self.assertEqual(r["Content-Disposition"], 'attachment; filename="reporte-enero-2025.pdf"')
        self.assertTrue(r.content.startswith(b"%PDF"))

    def test_export_docx(self):
        r = self.client.get(reverse("reports-export-docx", args=[self.report.pk]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r["Content-Disposition"], 'attachment; filename="reporte-enero-2025.docx"')
        self.assertTrue(r.content.startswith(b"PK"))

    def test_export_filename_with_accents(self):
        report = make_report("Análisis Enero")
        r = self.client.get(reverse("reports-export-pdf", args=[report.pk]))
        self.assertEqual(r["Content-Disposition"], "attachment; filename*=utf-8''an%C3%A1lisis-enero.pdf")

    def test_html_view(self):
        r = self.client.get(reverse("reports-view-latest"))
        self.assertEqual(r.status_code, 200)
        self.assertContains(r, "Reporte Enero 2025")
        self.assertContains(r, "data:image/png;base64,")
        self.assertContains(r, reverse("reports-export-pdf", args=[self.report.pk]))

        r = self.client.get(reverse("reports-view", args=[self.old.pk]))
        self.assertContains(r, "Diciembre")

    def test_html_view_without_reports(self):
        PublishedReport.objects.all().delete()
        r = self.client.get(reverse("reports-view-latest"))
        self.assertContains(r, "Aún no se ha publicado ningún reporte.")


class DeleteApiTests(APITestCase):
    def setUp(self):
        self.first = make_report("Uno")
        self.second = make_report("Dos")

    def test_viewer_is_forbidden(self):
        self.client.force_authenticate(make_user(email="v@u.com", role="viewer"))
        r = self.client.delete(reverse("reports-delete", args=[self.second.pk]))
        self.assertEqual(r.status_code, 403)
        self.assertTrue(PublishedReport.objects.filter(pk=self.second.pk).exists())

    def test_anonymous(self):
        self.assertEqual(self.client.delete(reverse("reports-delete", args=[self.second.pk])).status_code, 401)

    def test_admin_deletes_latest(self):
        self.client.force_authenticate(make_user(email="a@u.com", role="admin"))
        r = self.client.delete(reverse("reports-delete", args=[self.second.pk]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["message"], "Reporte eliminado exitosamente")
        self.assertEqual(r.data["report_id"], str(self.second.pk))
        self.assertEqual(r.data["report_title"], "Dos")
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_latest)

    def test_unknown_report(self):
        self.client.force_authenticate(make_user(email="a@u.com", role="admin"))
        r = self.client.delete(reverse("reports-delete", args=["00000000-0000-0000-0000-000000000000"]))
        self.assertEqual(r.status_code, 404)
