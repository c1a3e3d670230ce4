"""Heuristic sectioning for plain text without structure markers."""

import html
from typing import Callable

HEADING_MAX_LENGTH = 100

BLANK = "blank"
HEADING = "heading"
PARAGRAPH = "paragraph"


def classify_line(line: str) -> str:
    """Classify a single line as blank, heading or paragraph.

    A line is a heading when it ends with a colon, or when it is shorter than
    HEADING_MAX_LENGTH, has no period and starts with a character that is
    already upper case (digits and symbols count).
    """
    stripped = line.strip()
    if not stripped:
        return BLANK
    if stripped.endswith(":"):
        return HEADING
    if (
        len(stripped) < HEADING_MAX_LENGTH
        and "." not in stripped
        and stripped[0] == stripped[0].upper()
    ):
        return HEADING
    return PARAGRAPH


def render_lines(text: str, render_content: Callable[[str], str]) -> str:
    """Render text line by line, wrapping each line by its classification.

    Args:
        text: Full raw text
        render_content: Turns a stripped line into safe inline HTML

    Returns:
        One HTML element per source line, newline separated
    """
    rendered = []
    for line in text.splitlines():
        kind = classify_line(line)
        if kind == BLANK:
            rendered.append("<br>")
        elif kind == HEADING:
            rendered.append(f"<h2>{render_content(line.strip())}</h2>")
        else:
            rendered.append(f"<p>{render_content(line.strip())}</p>")
    return "\n".join(rendered)


def render_sections(text: str) -> str:
    """Render plain text as headings and paragraphs, all content escaped."""
    return render_lines(text, html.escape)
