"""Tests for the Markdown to Docs request translator."""

from app.services.doc_translator import (
    Segment,
    create_header_request,
    logo_requests,
    markdown_to_requests,
    parse_inline_formatting,
)


def _inserted_text(requests):
    return "".join(r["insertText"]["text"] for r in requests if "insertText" in r)


def test_heading_one_range_covers_title():
    """Test that a level-1 heading styles exactly the title text."""
    requests = markdown_to_requests("# Title", start_index=1)

    assert requests[0] == {"insertText": {"location": {"index": 1}, "text": "Title\n"}}
    style = requests[1]["updateParagraphStyle"]
    assert style["range"] == {"startIndex": 1, "endIndex": 6}
    assert style["paragraphStyle"]["namedStyleType"] == "HEADING_1"
    assert style["paragraphStyle"]["spaceAbove"] == {"magnitude": 12, "unit": "PT"}
    assert style["paragraphStyle"]["spaceBelow"] == {"magnitude": 6, "unit": "PT"}


def test_heading_levels_and_spacing():
    """Test heading levels 2 to 4, with 3 and 4 sharing a style."""
    requests = markdown_to_requests("## Market\n### Size\n#### Growth", start_index=1)
    styles = [r["updateParagraphStyle"]["paragraphStyle"] for r in requests if "updateParagraphStyle" in r]

    assert [s["namedStyleType"] for s in styles] == ["HEADING_2", "HEADING_3", "HEADING_3"]
    assert styles[0]["spaceAbove"]["magnitude"] == 10
    assert styles[0]["spaceBelow"]["magnitude"] == 4
    assert styles[2]["spaceAbove"]["magnitude"] == 8
    assert styles[2]["spaceBelow"]["magnitude"] == 3
    assert _inserted_text(requests) == "Market\nSize\nGrowth\n"


def test_inline_bold_and_italic_offsets():
    """Test that emphasis ranges are relative to the line's start."""
    start = 10
    requests = markdown_to_requests("**A** and *B*\n", start_index=start)

    assert requests[0]["insertText"]["text"] == "A and B\n"
    bold = requests[1]["updateTextStyle"]
    italic = requests[2]["updateTextStyle"]
    assert bold["textStyle"] == {"bold": True}
    assert bold["range"] == {"startIndex": start + 0, "endIndex": start + 1}
    assert italic["textStyle"] == {"italic": True}
    assert italic["range"] == {"startIndex": start + 6, "endIndex": start + 7}


def test_unterminated_emphasis_is_literal():
    """Test that malformed emphasis falls back to plain text."""
    requests = markdown_to_requests("*unterminated", start_index=1)

    assert len(requests) == 1
    assert requests[0]["insertText"]["text"] == "*unterminated\n"


def test_parse_inline_keeps_stray_asterisks():
    """Test that unmatched markers are emitted, never dropped."""
    segments = parse_inline_formatting("**bold** and 2*3")

    assert "".join(s.text for s in segments) == "bold and 2*3"
    assert segments[0] == Segment("bold", bold=True)
    assert not any(s.italic for s in segments)


def test_bold_takes_precedence_over_italic():
    """Test that a double marker is read as bold."""
    segments = parse_inline_formatting("**bold** then *it*")

    assert segments[0] == Segment("bold", bold=True)
    assert segments[-1] == Segment("it", italic=True)


def test_blank_lines_and_page_break_advance_cursor():
    """Test the cursor across blank lines, page breaks and plain text."""
    requests = markdown_to_requests("One\n\n<pagebreak>\nTwo", start_index=1)

    assert requests[0] == {"insertText": {"location": {"index": 1}, "text": "One\n"}}
    assert requests[1] == {"insertText": {"location": {"index": 5}, "text": "\n"}}
    assert requests[2] == {"insertPageBreak": {"location": {"index": 6}}}
    assert requests[3] == {"insertText": {"location": {"index": 7}, "text": "Two\n"}}


def test_whitespace_only_line_is_blank():
    requests = markdown_to_requests("   ", start_index=1)

    assert requests == [{"insertText": {"location": {"index": 1}, "text": "\n"}}]


def test_offsets_account_for_all_earlier_insertions():
    """Test that each insert starts where the previous one ended."""
    content = "# Report\nIntro with **bold**.\n\n## Part\n<pagebreak>\nPlain *it*"
    requests = markdown_to_requests(content, start_index=1)

    cursor = 1
    for request in requests:
        if "insertText" in request:
            assert request["insertText"]["location"]["index"] == cursor
            cursor += len(request["insertText"]["text"])
        elif "insertPageBreak" in request:
            assert request["insertPageBreak"]["location"]["index"] == cursor
            cursor += 1


def test_offsets_count_utf16_units():
    """Test that characters outside the BMP count as two index units."""
    requests = markdown_to_requests("\U0001F680 **go**\nnext", start_index=1)

    bold = requests[1]["updateTextStyle"]["range"]
    assert bold == {"startIndex": 4, "endIndex": 6}
    assert requests[2]["insertText"]["location"]["index"] == 7


def test_logo_requests():
    """Test the header logo image and alignment requests."""
    assert create_header_request() == {"createHeader": {"type": "DEFAULT"}}

    image, align = logo_requests("kix.header1", "https://cdn.example/logo.png")

    assert image["insertInlineImage"]["location"] == {"segmentId": "kix.header1", "index": 0}
    assert image["insertInlineImage"]["objectSize"] == {
        "height": {"magnitude": 60, "unit": "PT"},
        "width": {"magnitude": 120, "unit": "PT"},
    }
    assert align["updateParagraphStyle"]["paragraphStyle"] == {"alignment": "START"}


def test_empty_heading_is_blank_line():
    """Test that a heading marker with no title emits no style request."""
    requests = markdown_to_requests("# \nBody", start_index=1)

    assert requests == [
        {"insertText": {"location": {"index": 1}, "text": "\n"}},
        {"insertText": {"location": {"index": 2}, "text": "Body\n"}},
    ]
