import pytest

from documents.application.export import export_document, to_markdown, to_plain_text
from documents.domain.entities import Document
from shared.exceptions import ValidationError


def _doc(content: str, title: str = "Meeting Notes") -> Document:
    return Document(id="d1", title=title, content=content, owner_id="o")


def test_html_export_wraps_content():
    exported = export_document(_doc("<p>hi</p>", title="A & B"), "html")
    assert exported.filename == "a___b.html"
    assert exported.media_type == "text/html"
    assert "<title>A &amp; B</title>" in exported.content
    assert "<p>hi</p>" in exported.content


def test_markdown_headings_and_emphasis():
    md = to_markdown("<h2>Plan</h2><p><strong>Bold</strong> and <em>soft</em></p>")
    assert md == "## Plan\n\n**Bold** and *soft*"


def test_markdown_lists():
    md = to_markdown("<ul><li>a</li><li>b</li></ul><ol><li>x</li><li>y</li></ol>")
    assert md == "- a\n- b\n\n1. x\n2. y"


def test_markdown_blockquote_and_entities():
    md = to_markdown("<blockquote>quoted &amp; kept</blockquote>")
    assert md == "> quoted & kept"


def test_plain_text_strips_tags():
    assert to_plain_text("<p>a&nbsp;b</p>\n\n\n\n<p>&lt;c&gt;</p>") == "a b\n\n<c>"


def test_export_file_names():
    assert export_document(_doc("x"), "markdown").filename == "meeting_notes.md"
    assert export_document(_doc("x"), "txt").filename == "meeting_notes.txt"


def test_unsupported_format():
    with pytest.raises(ValidationError):
        export_document(_doc("x"), "pdf")
