"""
Markup Converter

Turns the markdown report into the XHTML storage format expected by
Confluence, recovering the page title from the report's front matter.
"""

import re
from typing import Optional
from datetime import date

import structlog
from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.deflist import deflist_plugin
from pydantic import BaseModel

from ..errors import ConversionError

logger = structlog.get_logger(__name__)

TITLE_PATTERN = re.compile(r"---\ntitle: (.*)\n---\n")

_renderer: Optional[MarkdownIt] = None


class Publication(BaseModel):
    """Title and converted body ready for the publish endpoint"""
    title: str
    body: str


def extract_title(document: str) -> tuple[str, str]:
    """
    Remove the front matter block from a document.

    Expects the document to start like:
        ---
        title: Some Title
        ---

    Returns:
        Tuple of (body without front matter, title or "" if none was found)
    """
    match = TITLE_PATTERN.search(document)
    title = match.group(1) if match else ""
    return TITLE_PATTERN.sub("", document), title


def fallback_title(today: Optional[date] = None) -> str:
    """Title used when the document carries none"""
    today = today or date.today()
    return f"On-Call Report {today.strftime('%Y-%m-%d')}"


def get_renderer() -> MarkdownIt:
    """
    Get the shared CommonMark renderer.

    GFM tables, strikethrough and bare URL links, definition lists,
    heading anchors; void elements are closed (XHTML).
    """
    global _renderer
    if _renderer is None:
        _renderer = (
            MarkdownIt("commonmark", {"xhtmlOut": True, "linkify": True})
            .enable(["table", "strikethrough", "linkify"])
            .use(deflist_plugin)
            .use(anchors_plugin, max_level=6)
        )
    return _renderer


def convert_markdown(body: str) -> str:
    """
    Convert markdown into XHTML.

    Raises:
        ConversionError: if the converter fails
    """
    try:
        return get_renderer().render(body)
    except Exception as e:
        raise ConversionError(f"error converting markdown: {e}") from e


def prepare_publication(document: str, today: Optional[date] = None) -> Publication:
    """Split off the title and convert the remaining body"""
    body, title = extract_title(document)
    if not title:
        title = fallback_title(today)
        logger.warning("No title found in report, using fallback", title=title)

    converted = convert_markdown(body)
    logger.info(
        "Report converted",
        title=title,
        markdown_length=len(body),
        xhtml_length=len(converted),
    )
    return Publication(title=title, body=converted)
