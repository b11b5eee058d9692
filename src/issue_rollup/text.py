"""String helpers shared by field resolution, update detection, and rendering."""

from __future__ import annotations

import re

_STRIP_HTML_RE = re.compile(
    r"<script[\s\S]*?</script>|<style[\s\S]*?</style>|<!--[\s\S]*?-->|<[^>]*?>",
    re.IGNORECASE,
)
_HEADER_RE = re.compile(r"^#+\s+(.*)$", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")


def fuzzy(s: str) -> str:
    """Normalize a name for loose comparison: drop whitespace and underscores, uppercase."""
    return re.sub(r"[\s_]+", "", s).upper()


def title_case(s: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in s.lower().split(" "))


def to_snake_case(s: str) -> str:
    s = re.sub(r"[^a-zA-Z0-9_\s]", "", s).strip()
    s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
    return re.sub(r"\s+", "_", s).lower()


def strip_html(s: str) -> str:
    """Remove HTML tags, comments, and script/style blocks from markdown."""
    # Repeat until stable so nested fragments can't reassemble into a tag
    previous = None
    while previous != s:
        previous = s
        s = _STRIP_HTML_RE.sub("", s)
    return s


def _split_by_regex(markdown: str, regex: re.Pattern[str]) -> dict[str, str]:
    sections: dict[str, str] = {}
    matches = list(regex.finditer(markdown))
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(markdown)
        key = to_snake_case(match.group(1).strip())
        content = markdown[match.end() : end].strip()
        if key in sections:
            sections[key] = f"{sections[key]}\n\n{content}"
        else:
            sections[key] = content
    return sections


def split_markdown_by_headers(markdown: str) -> dict[str, str]:
    """Map snake_cased header text to the content below it (headers at line start only)."""
    return _split_by_regex(markdown, _HEADER_RE)


def split_markdown_by_bolded_text(markdown: str) -> dict[str, str]:
    """Map snake_cased bold text to the content following it, anywhere in the text."""
    return _split_by_regex(markdown, _BOLD_RE)


def headers(markdown: str) -> list[str]:
    return [m.group(1).strip() for m in _HEADER_RE.finditer(markdown)]


def bolded_text(markdown: str) -> list[str]:
    return [m.group(1).strip() for m in _BOLD_RE.finditer(markdown)]
