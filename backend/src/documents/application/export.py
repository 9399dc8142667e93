import html
import re
from dataclasses import dataclass

from documents.domain.entities import Document
from shared.exceptions import ValidationError

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        body {{ font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }}
        h1, h2, h3 {{ color: #333; }}
        p {{ line-height: 1.6; }}
        ul, ol {{ margin-left: 20px; }}
        blockquote {{ border-left: 4px solid #ccc; margin-left: 0; padding-left: 20px; color: #666; }}
    </style>
</head>
<body>
    {content}
</body>
</html>"""

_TAG = re.compile(r"<[^>]*>")
_BLANK_LINES = re.compile(r"\n{3,}")
_LIST_ITEM = re.compile(r"<li[^>]*>(.*?)</li>", re.IGNORECASE)

_MARKDOWN_RULES = [
    (re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE), r"# \1\n\n"),
    (re.compile(r"<h2[^>]*>(.*?)</h2>", re.IGNORECASE), r"## \1\n\n"),
    (re.compile(r"<h3[^>]*>(.*?)</h3>", re.IGNORECASE), r"### \1\n\n"),
    (re.compile(r"<p[^>]*>(.*?)</p>", re.IGNORECASE), r"\1\n\n"),
    (re.compile(r"<strong[^>]*>(.*?)</strong>", re.IGNORECASE), r"**\1**"),
    (re.compile(r"<em[^>]*>(.*?)</em>", re.IGNORECASE), r"*\1*"),
]
_UNORDERED = re.compile(r"<ul[^>]*>(.*?)</ul>", re.IGNORECASE | re.DOTALL)
_ORDERED = re.compile(r"<ol[^>]*>(.*?)</ol>", re.IGNORECASE | re.DOTALL)
_BLOCKQUOTE = re.compile(r"<blockquote[^>]*>(.*?)</blockquote>", re.IGNORECASE)


@dataclass(frozen=True)
class ExportedDocument:
    content: str
    filename: str
    media_type: str


def export_document(document: Document, fmt: str) -> ExportedDocument:
    stem = re.sub(r"[^a-z0-9]", "_", document.title, flags=re.IGNORECASE).lower()
    if fmt == "html":
        body = HTML_TEMPLATE.format(title=html.escape(document.title), content=document.content)
        return ExportedDocument(body, f"{stem}.html", "text/html")
    if fmt == "markdown":
        return ExportedDocument(to_markdown(document.content), f"{stem}.md", "text/markdown")
    if fmt == "txt":
        return ExportedDocument(to_plain_text(document.content), f"{stem}.txt", "text/plain")
    raise ValidationError("Unsupported export format")


def to_markdown(content: str) -> str:
    text = content
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    text = _UNORDERED.sub(lambda m: _LIST_ITEM.sub(r"- \1\n", m.group(1)) + "\n", text)
    text = _ORDERED.sub(_numbered_list, text)
    text = _BLOCKQUOTE.sub(r"> \1\n\n", text)
    return _strip_markup(text)


def to_plain_text(content: str) -> str:
    return _strip_markup(content)


def _numbered_list(match: re.Match) -> str:
    items = _LIST_ITEM.findall(match.group(1))
    return "".join(f"{i}. {item}\n" for i, item in enumerate(items, start=1)) + "\n"


def _strip_markup(text: str) -> str:
    text = _TAG.sub("", text)
    text = (
        text.replace("&nbsp;", " ")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&amp;", "&")
    )
    return _BLANK_LINES.sub("\n\n", text).strip()
