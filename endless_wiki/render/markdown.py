"""Structured markup strategy: CommonMark to a safe HTML subset."""

from markdown_it import MarkdownIt

# Raw HTML in the source is escaped rather than passed through
_md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])


def render_markdown(text: str) -> str:
    """Convert markdown text to HTML.

    Literal text is escaped, only recognised constructs become tags, and
    links with unsafe schemes are left as plain text by the parser.
    """
    return _md.render(text)
