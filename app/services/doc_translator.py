"""Translate lightweight Markdown into Google Docs batchUpdate requests.

Offsets are absolute into the document body. A single cursor starts at the
insertion point and advances by every character a line inserts, so each
request already accounts for the text inserted before it in the batch.
"""

import re
from typing import Any, Dict, List, NamedTuple, Optional

from app.config import settings

# (named style, space above pt, space below pt)
HEADING_STYLES = {
    1: ("HEADING_1", 12, 6),
    2: ("HEADING_2", 10, 4),
    3: ("HEADING_3", 8, 3),
}

LOGO_WIDTH_PT = 120
LOGO_HEIGHT_PT = 60

INLINE_FORMATTING = re.compile(r"\*\*[^*]+\*\*|\*[^*]+\*")
BOLD_SPAN = re.compile(r"^\*\*([^*]+?)\*\*")
ITALIC_SPAN = re.compile(r"^\*([^*]+?)\*")
PLAIN_RUN = re.compile(r"^[^*]+")
H3_PREFIX = re.compile(r"^#{3,4} ")


class Segment(NamedTuple):
    """A run of visible text with its emphasis."""

    text: str
    bold: bool = False
    italic: bool = False


def parse_inline_formatting(line: str) -> List[Segment]:
    """
    Split a line into bold, italic and plain runs.

    Scans left to right without nesting. ``**X**`` wins over ``*X*``; any
    asterisk that does not close a span is kept as literal text.
    """
    segments = []
    remaining = line

    while remaining:
        match = BOLD_SPAN.match(remaining)
        if match:
            segments.append(Segment(match.group(1), bold=True))
            remaining = remaining[match.end():]
            continue

        match = ITALIC_SPAN.match(remaining)
        if match and not remaining.startswith("**"):
            segments.append(Segment(match.group(1), italic=True))
            remaining = remaining[match.end():]
            continue

        match = PLAIN_RUN.match(remaining)
        if match:
            segments.append(Segment(match.group(0)))
            remaining = remaining[match.end():]
            continue

        segments.append(Segment(remaining[0]))
        remaining = remaining[1:]

    return segments


def insert_text(index: int, text: str) -> Dict[str, Any]:
    return {"insertText": {"location": {"index": index}, "text": text}}


def insert_page_break(index: int) -> Dict[str, Any]:
    return {"insertPageBreak": {"location": {"index": index}}}


def heading_style(start: int, end: int, level: int) -> Dict[str, Any]:
    named_style, above, below = HEADING_STYLES[level]
    return {
        "updateParagraphStyle": {
            "range": {"startIndex": start, "endIndex": end},
            "paragraphStyle": {
                "namedStyleType": named_style,
                "spaceAbove": {"magnitude": above, "unit": "PT"},
                "spaceBelow": {"magnitude": below, "unit": "PT"},
            },
            "fields": "namedStyleType,spaceAbove,spaceBelow",
        }
    }


def text_style(start: int, end: int, style: str) -> Dict[str, Any]:
    return {
        "updateTextStyle": {
            "range": {"startIndex": start, "endIndex": end},
            "textStyle": {style: True},
            "fields": style,
        }
    }


def create_header_request() -> Dict[str, Any]:
    """Request that creates the default header region."""
    return {"createHeader": {"type": "DEFAULT"}}


def logo_requests(header_id: str, logo_url: str) -> List[Dict[str, Any]]:
    """Insert a logo at the start of a header and align it to the start edge."""
    return [
        {
            "insertInlineImage": {
                "location": {"segmentId": header_id, "index": 0},
                "uri": logo_url,
                "objectSize": {
                    "height": {"magnitude": LOGO_HEIGHT_PT, "unit": "PT"},
                    "width": {"magnitude": LOGO_WIDTH_PT, "unit": "PT"},
                },
            }
        },
        {
            "updateParagraphStyle": {
                "range": {"segmentId": header_id, "startIndex": 0, "endIndex": 1},
                "paragraphStyle": {"alignment": "START"},
                "fields": "alignment",
            }
        },
    ]


def doc_length(text: str) -> int:
    """Length in UTF-16 code units, the unit Docs API indexes use."""
    return len(text.encode("utf-16-le")) // 2


def _heading_level(line: str) -> int:
    if line.startswith("# "):
        return 1
    if line.startswith("## "):
        return 2
    if H3_PREFIX.match(line):
        return 3
    return 0


def _strip_heading(line: str, level: int) -> str:
    if level == 3:
        return H3_PREFIX.sub("", line, count=1).strip()
    return line.replace("#" * level + " ", "", 1).strip()


def markdown_to_requests(
    content: str,
    start_index: Optional[int] = None,
    page_break_marker: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Convert report text into an ordered list of batchUpdate requests.

    Args:
        content: Markdown-like report text
        start_index: Body insertion point (1 for a fresh document)
        page_break_marker: Line that stands for a page break

    Returns:
        List of request dicts for ``documents.batchUpdate``
    """
    cursor = settings.DOC_BODY_START_INDEX if start_index is None else start_index
    marker = page_break_marker or settings.PAGE_BREAK_MARKER
    requests = []

    for line in content.split("\n"):
        if line.strip() == "":
            requests.append(insert_text(cursor, "\n"))
            cursor += 1
            continue

        if line == marker:
            requests.append(insert_page_break(cursor))
            cursor += 1
            continue

        level = _heading_level(line)
        if level:
            title = _strip_heading(line, level)
            if not title:
                # Empty heading: a zero-length style range is rejected
                requests.append(insert_text(cursor, "\n"))
                cursor += 1
                continue
            text = title + "\n"
            requests.append(insert_text(cursor, text))
            requests.append(heading_style(cursor, cursor + doc_length(text) - 1, level))
            cursor += doc_length(text)
            continue

        if INLINE_FORMATTING.search(line):
            segments = parse_inline_formatting(line)
            text = "".join(segment.text for segment in segments) + "\n"
            requests.append(insert_text(cursor, text))

            offset = cursor
            for segment in segments:
                end = offset + doc_length(segment.text)
                if segment.bold:
                    requests.append(text_style(offset, end, "bold"))
                if segment.italic:
                    requests.append(text_style(offset, end, "italic"))
                offset = end

            cursor += doc_length(text)
            continue

        text = line + "\n"
        requests.append(insert_text(cursor, text))
        cursor += doc_length(text)

    return requests
