from django.urls import path

from reports import views

urlpatterns = [
    path("publish/", views.publish_report, name="reports-publish"),
    path("public/", views.public_reports, name="reports-public"),
    path("public/<uuid:pk>/", views.public_report_detail, name="reports-public-detail"),
    path("public/<uuid:pk>/charts/<str:chart>.png", views.report_chart, name="reports-chart"),
    path("public/<uuid:pk>/export/pdf/", views.export_pdf, name="reports-export-pdf"),
    path("public/<uuid:pk>/export/docx/", views.export_docx, name="reports-export-docx"),
    path("<uuid:pk>/", views.delete_report, name="reports-delete"),
    path("view/", views.report_view, name="reports-view-latest"),
    path("view/<uuid:pk>/", views.report_view, name="reports-view"),
]
