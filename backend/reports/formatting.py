from datetime import date, datetime

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.utils.text import slugify

MONTHS_SHORT = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"]


def _to_date(value):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    parsed = parse_datetime(text)
    if parsed is not None:
        return _to_date(parsed)
    return parse_date(text[:10])


def _to_datetime(value):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return timezone.localtime(value) if timezone.is_aware(value) else value
    parsed = parse_datetime(str(value))
    if parsed is None:
        return None
    return timezone.localtime(parsed) if timezone.is_aware(parsed) else parsed


def format_date(value) -> str:
    d = _to_date(value)
    if d is None:
        return ""
    return f"{d.day:02d} {MONTHS_SHORT[d.month - 1]} {d.year}"


def format_short_date(value) -> str:
    d = _to_date(value)
    if d is None:
        return ""
    return f"{d.day:02d} {MONTHS_SHORT[d.month - 1]}"


def format_datetime(value) -> str:
    dt = _to_datetime(value)
    if dt is None:
        return ""
    return f"{format_date(dt)} {dt.hour:02d}:{dt.minute:02d}"


def format_number(value) -> str:
    try:
        return f"{int(float(value or 0)):,}".replace(",", ".")
    except (TypeError, ValueError):
        return "0"


def format_decimal(value, places=1) -> str:
    try:
        return f"{float(value or 0):.{places}f}"
    except (TypeError, ValueError):
        return f"{0:.{places}f}"


def sanitize_filename(name: str) -> str:
    return slugify(name or "", allow_unicode=True) or "reporte"
