"""Tests for QuickChart markdown."""

from __future__ import annotations

import json
from urllib.parse import unquote

from issue_rollup.charts import QUICKCHART_URL, bar_chart


def test_bar_chart():
    markdown = bar_chart({"Todo": 2, "Done": 5}, "Status", "Issues by Status")
    prefix = f"![Issues by Status]({QUICKCHART_URL}?c="
    assert markdown.startswith(prefix)
    assert markdown.endswith(")")

    config = json.loads(unquote(markdown[len(prefix) : -1]))
    assert config["type"] == "bar"
    assert config["data"]["labels"] == ["Todo", "Done"]
    assert config["data"]["datasets"][0] == {"label": "Status", "data": [2, 5]}
    assert config["options"]["title"]["text"] == "Issues by Status"
