"""Point generated hyperlinks at the internal article route."""

import html
import re
from urllib.parse import quote, unquote

INTERNAL_BASE = "/wiki/"

_ANCHOR_HREF = re.compile(r"""(<a\b[^>]*?\bhref=)(["'])(.*?)\2""", re.IGNORECASE | re.DOTALL)


def article_href(topic: str, base: str = INTERNAL_BASE) -> str:
    """Build the internal route for a topic as a single path segment."""
    return base + quote(topic, safe="")


def rewrite_links(markup: str, base: str = INTERNAL_BASE) -> str:
    """Rewrite anchor targets so every link opens another generated article.

    Targets already under ``base`` and in-page fragments are left alone, so
    the rewrite is idempotent. Anything else, absolute URLs included, becomes
    ``base`` plus the percent-encoded target.

    Args:
        markup: Rendered HTML
        base: Internal article route prefix

    Returns:
        HTML with rewritten anchors
    """

    def _rewrite(match: re.Match) -> str:
        prefix, quote_char, raw_target = match.groups()
        target = html.unescape(raw_target)
        if not target or target.startswith("#") or target.startswith(base):
            return match.group(0)
        return f"{prefix}{quote_char}{article_href(unquote(target), base)}{quote_char}"

    return _ANCHOR_HREF.sub(_rewrite, markup)
