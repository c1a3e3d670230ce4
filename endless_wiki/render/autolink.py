"""Auto-linking strategy: every meaningful word links to its own article."""

import html
import re
import string
import unicodedata

from .links import INTERNAL_BASE, article_href
from .sections import render_lines

MIN_LINK_LENGTH = 3

# Function words never worth an article. Matched case-insensitively.
STOP_WORDS: frozenset[str] = frozenset({
    # articles and determiners
    "a", "an", "the", "this", "that", "these", "those", "some", "any", "each",
    "every", "such",
    # prepositions
    "about", "above", "across", "after", "against", "along", "among", "around",
    "at", "before", "behind", "below", "beneath", "beside", "between", "beyond",
    "by", "despite", "down", "during", "except", "for", "from", "in", "inside",
    "into", "like", "near", "of", "off", "on", "onto", "out", "outside", "over",
    "past", "since", "through", "throughout", "to", "toward", "towards",
    "under", "until", "up", "upon", "with", "within", "without", "via",
    # pronouns
    "i", "me", "my", "mine", "myself", "you", "your", "yours", "yourself",
    "he", "him", "his", "himself", "she", "her", "hers", "herself", "it",
    "its", "itself", "we", "us", "our", "ours", "ourselves", "they", "them",
    "their", "theirs", "themselves", "who", "whom", "whose", "which", "what",
    # auxiliary and modal verbs
    "am", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "having", "do", "does", "did", "will", "would", "shall", "should",
    "can", "could", "may", "might", "must",
    # conjunctions
    "and", "but", "or", "nor", "so", "yet", "because", "although", "though",
    "while", "whereas", "if", "unless", "than", "then", "when", "where",
    "whether", "as", "also", "not",
})

_WHITESPACE = re.compile(r"(\s+)")


def _is_punctuation(char: str) -> bool:
    # ASCII punctuation plus every Unicode P* category (curly quotes, dashes)
    return char in string.punctuation or unicodedata.category(char).startswith("P")


def _split_punctuation(word: str) -> tuple[str, str, str]:
    """Split a word into leading punctuation, core, trailing punctuation."""
    start, end = 0, len(word)
    while start < end and _is_punctuation(word[start]):
        start += 1
    while end > start and _is_punctuation(word[end - 1]):
        end -= 1
    return word[:start], word[start:end], word[end:]


def link_word(word: str, base: str = INTERNAL_BASE) -> str:
    """Turn one whitespace-delimited word into escaped HTML, linked if eligible.

    Surrounding punctuation stays outside the anchor; the route uses the
    stripped word with its original case.
    """
    prefix, stripped, suffix = _split_punctuation(word)
    if len(stripped) < MIN_LINK_LENGTH or stripped.lower() in STOP_WORDS:
        return html.escape(word)

    return (
        f"{html.escape(prefix)}"
        f'<a href="{article_href(stripped, base)}">{html.escape(stripped)}</a>'
        f"{html.escape(suffix)}"
    )


def autolink_line(line: str) -> str:
    """Link every eligible word in a line, preserving its whitespace."""
    return "".join(
        token if not token or token.isspace() else link_word(token)
        for token in _WHITESPACE.split(line)
    )


def render_autolinked(text: str) -> str:
    """Render plain text as sections with eligible words auto-linked."""
    return render_lines(text, autolink_line)
