import base64
import io

import matplotlib

# Force non-GUI backend before importing pyplot (important on servers)
matplotlib.use("Agg")

import matplotlib.pyplot as plt

from reports.formatting import format_short_date

CHART_NAMES = ("conversations", "countries", "topics", "average")

CHART_TITLES = {
    "conversations": "Conversaciones por Día",
    "countries": "Distribución por País",
    "topics": "Temas Principales",
    "average": "Promedio de Mensajes por Día",
}

PIE_COLORS = ["#667eea", "#764ba2", "#ed64a6", "#ff9a9e", "#fad0c4", "#a3e4d7", "#82ccdd"]


def stats_section(stats: dict, *keys):
    """First non-empty list among ``keys``; published reports may use camelCase keys."""
    for key in keys:
        value = (stats or {}).get(key)
        if value:
            return value
    return []


def _to_png(fig) -> bytes:
    buf = io.BytesIO()
    fig.tight_layout()
    fig.savefig(buf, format="png", dpi=110)
    plt.close(fig)
    return buf.getvalue()


def _bar(labels, values, color, edge, horizontal=False, decimals=0):
    fig, ax = plt.subplots(figsize=(8, 4.5))
    if horizontal:
        ax.barh(labels, values, color=color, edgecolor=edge, linewidth=1)
        ax.invert_yaxis()
        ax.set_xlim(left=0)
    else:
        ax.bar(labels, values, color=color, edgecolor=edge, linewidth=1)
        ax.set_ylim(bottom=0)
        plt.setp(ax.get_xticklabels(), rotation=30, ha="right")
    for rect, value in zip(ax.patches, values):
        text = f"{value:,.{decimals}f}"
        if horizontal:
            ax.annotate(text, xy=(rect.get_width(), rect.get_y() + rect.get_height() / 2),
                        xytext=(4, 0), textcoords="offset points", va="center", fontsize=8)
        else:
            ax.annotate(text, xy=(rect.get_x() + rect.get_width() / 2, rect.get_height()),
                        xytext=(0, 4), textcoords="offset points", ha="center", va="bottom", fontsize=8)
    ax.spines[["top", "right"]].set_visible(False)
    return fig


def conversations_chart(stats):
    data = stats_section(stats, "conversations_by_day", "conversationsByDay")
    if not data:
        return None
    labels = [format_short_date(item.get("date")) for item in data]
    values = [int(item.get("count") or 0) for item in data]
    return _to_png(_bar(labels, values, "#667eea", "#4c63d2"))


def countries_chart(stats):
    data = stats_section(stats, "countries")
    if not data:
        return None
    labels = [item.get("country") or "Desconocido" for item in data]
    values = [int(item.get("count") or 0) for item in data]
    fig, ax = plt.subplots(figsize=(6.5, 5))
    colors = [PIE_COLORS[i % len(PIE_COLORS)] for i in range(len(values))]
    ax.pie(values, colors=colors, autopct="%1.0f%%", startangle=90,
           wedgeprops={"edgecolor": "white", "linewidth": 2}, textprops={"fontsize": 8})
    ax.axis("equal")
    ax.legend(labels, loc="upper center", bbox_to_anchor=(0.5, -0.02), ncol=3, frameon=False, fontsize=8)
    return _to_png(fig)


def topics_chart(stats, limit=10):
    data = stats_section(stats, "topics")
    if not data:
        return None
    ranked = sorted(data, key=lambda item: -int(item.get("count") or 0))[:limit]
    labels = [item.get("topic_name") or item.get("topic") or "" for item in ranked]
    values = [int(item.get("count") or 0) for item in ranked]
    return _to_png(_bar(labels, values, "#ed64a6", "#d53f8c", horizontal=True))


def average_chart(stats):
    data = stats_section(stats, "avg_messages_by_day", "avgMessagesByDay")
    if not data:
        return None
    labels = [format_short_date(item.get("date")) for item in data]
    values = [round(float(item.get("avg_messages") or 0), 1) for item in data]
    return _to_png(_bar(labels, values, "#764ba2", "#5a3780", decimals=1))


RENDERERS = {
    "conversations": conversations_chart,
    "countries": countries_chart,
    "topics": topics_chart,
    "average": average_chart,
}


def render_chart(name, stats):
    """PNG bytes for one chart, or None when the stats hold no data for it."""
    return RENDERERS[name](stats)


def render_all(stats) -> dict:
    charts = {}
    for name in CHART_NAMES:
        png = render_chart(name, stats)
        if png is not None:
            charts[name] = png
    return charts


def png_to_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
