"""
PDF and Word renditions of a published report.

Both documents carry the same content: a header with title, period and
publication time, a 2x2 table of headline figures and one section per chart
that has data.
"""

import io
from dataclasses import dataclass, field
from html import escape

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import HRFlowable, Image, KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from reports.charts import CHART_NAMES, CHART_TITLES, render_all
from reports.formatting import format_date, format_datetime, format_decimal, format_number

ACCENT = "#667eea"

PDF_CONTENT_TYPE = "application/pdf"
DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass
class ReportContent:
    title: str
    period: str
    published: str
    figures: list = field(default_factory=list)
    charts: dict = field(default_factory=dict)

    @classmethod
    def from_report(cls, report):
        stats = report.stats_data or {}
        return cls(
            title=report.title,
            period=f"{format_date(report.period_start)} - {format_date(report.period_end)}",
            published=format_datetime(report.published_at),
            figures=headline_figures(stats),
            charts=render_all(stats),
        )


def headline_figures(stats: dict):
    general = (stats or {}).get("general") or {}
    return [
        (format_number(general.get("total_conversations")), "Conversaciones"),
        (format_number(general.get("total_messages")), "Mensajes"),
        (format_decimal(general.get("avg_messages_per_conversation")), "Promedio"),
        (str(len((stats or {}).get("countries") or [])), "Países"),
    ]


def build_pdf(content: ReportContent) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=content.title,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("ReportTitle", parent=styles["Title"], fontName="Helvetica-Bold",
                                 fontSize=22, leading=26, textColor=colors.HexColor(ACCENT), alignment=TA_CENTER)
    meta_style = ParagraphStyle("Meta", parent=styles["BodyText"], fontSize=10, leading=14,
                                textColor=colors.HexColor("#666666"), alignment=TA_CENTER)
    figure_style = ParagraphStyle("Figure", parent=styles["BodyText"], fontName="Helvetica-Bold",
                                  fontSize=22, leading=26, textColor=colors.HexColor(ACCENT), alignment=TA_CENTER)
    label_style = ParagraphStyle("Label", parent=styles["BodyText"], fontSize=10,
                                 textColor=colors.HexColor("#666666"), alignment=TA_CENTER)
    heading = ParagraphStyle("Section", parent=styles["Heading2"], fontName="Helvetica-Bold",
                             fontSize=14, leading=18, textColor=colors.HexColor(ACCENT), spaceBefore=12, spaceAfter=8)

    story = [
        Paragraph(escape(content.title), title_style),
        Paragraph(f"Período: {content.period}", meta_style),
        Paragraph(f"Publicado: {content.published}", meta_style),
        Spacer(1, 4 * mm),
        HRFlowable(width="100%", thickness=2, color=colors.HexColor(ACCENT)),
        Spacer(1, 6 * mm),
    ]

    cells = [[Paragraph(value, figure_style), Paragraph(label, label_style)] for value, label in content.figures]
    table = Table(
        [[cells[0], cells[1]], [cells[2], cells[3]]],
        colWidths=[90 * mm, 90 * mm],
    )
    table.setStyle(TableStyle([
        ("BOX", (0, 0), (-1, -1), 1, colors.HexColor("#e0e0e0")),
        ("INNERGRID", (0, 0), (-1, -1), 1, colors.HexColor("#e0e0e0")),
        ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#fafafa")),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    story.append(table)

    for name in CHART_NAMES:
        png = content.charts.get(name)
        if png is None:
            continue
        width, height = ImageReader(io.BytesIO(png)).getSize()
        scale = min(170 * mm / width, 90 * mm / height)
        image = Image(io.BytesIO(png), width=width * scale, height=height * scale)
        story.append(KeepTogether([Paragraph(CHART_TITLES[name], heading), image]))

    doc.build(story)
    return buf.getvalue()


def build_docx(content: ReportContent) -> bytes:
    doc = Document()

    title = doc.add_heading(content.title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    for text in (f"Período: {content.period}", f"Publicado: {content.published}"):
        p = doc.add_paragraph(text)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    table = doc.add_table(rows=2, cols=2)
    table.style = "Table Grid"
    for index, (value, label) in enumerate(content.figures):
        cell = table.cell(index // 2, index % 2)
        cell.text = ""
        value_par = cell.paragraphs[0]
        value_par.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = value_par.add_run(value)
        run.bold = True
        run.font.size = Pt(20)
        run.font.color.rgb = RGBColor(0x66, 0x7E, 0xEA)
        label_par = cell.add_paragraph(label)
        label_par.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for name in CHART_NAMES:
        png = content.charts.get(name)
        if png is None:
            continue
        doc.add_heading(CHART_TITLES[name], level=2)
        doc.add_picture(io.BytesIO(png), width=Inches(6))

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
