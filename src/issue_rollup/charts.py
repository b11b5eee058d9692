"""Markdown-embedded charts rendered by QuickChart."""

from __future__ import annotations

import json
from collections.abc import Mapping
from urllib.parse import quote

QUICKCHART_URL = "https://quickchart.io/chart"


def bar_chart(counts: Mapping[str, int], field_name: str, title: str) -> str:
    """Markdown image of a bar chart with one bar per key."""
    config = {
        "type": "bar",
        "data": {
            "labels": list(counts),
            "datasets": [{"label": field_name, "data": list(counts.values())}],
        },
        "options": {
            "title": {"display": True, "text": title},
            "legend": {"display": False},
        },
    }
    encoded = quote(json.dumps(config, ensure_ascii=False, separators=(",", ":")), safe="")
    return f"![{title}]({QUICKCHART_URL}?c={encoded})"
