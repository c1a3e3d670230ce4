"""Markup renderers paired with the prompt style each one expects.

The backend is told how to format its output and the matching renderer
turns that output into HTML. Sessions only ever see a RenderStrategy, so
they work the same whichever one is configured.
"""

from dataclasses import dataclass
from typing import Callable

from .autolink import STOP_WORDS, render_autolinked
from .links import INTERNAL_BASE, article_href, rewrite_links
from .markdown import render_markdown
from .sections import classify_line, render_sections

MARKDOWN_PROMPT = """You are a wiki article generator. Write a comprehensive, informative article about "{topic}" in markdown format.

Requirements:
- Write in a neutral, encyclopedic style
- Organise the article into sections with markdown headers (## Section Name)
- Use markdown formatting such as **bold**, *italic* and lists
- Add subsections where they help
- Link related subjects with markdown links whose target is the subject name, wrapped in angle brackets, e.g. [Roman Empire](<Roman Empire>)
- Output only the article text, with no follow-up questions

Write the article now:"""

PLAIN_TEXT_PROMPT = """You are a wiki article generator. Write a comprehensive, informative article about "{topic}" in plain text.

Requirements:
- Write in a neutral, encyclopedic style
- Do not use markdown or any other markup
- Put each section title on its own line, ending with a colon
- Separate paragraphs with a blank line
- Output only the article text, with no follow-up questions

Write the article now:"""


@dataclass(frozen=True)
class RenderStrategy:
    """A renderer and the instruction template that makes the backend feed it."""
    name: str
    prompt_template: str
    render: Callable[[str], str]

    def build_prompt(self, topic: str) -> str:
        return self.prompt_template.format(topic=topic)


STRATEGIES: dict[str, RenderStrategy] = {
    "markdown": RenderStrategy("markdown", MARKDOWN_PROMPT, render_markdown),
    "sections": RenderStrategy("sections", PLAIN_TEXT_PROMPT, render_sections),
    "autolink": RenderStrategy("autolink", PLAIN_TEXT_PROMPT, render_autolinked),
}


def get_strategy(name: str) -> RenderStrategy:
    """Look up a strategy by name.

    Raises:
        ValueError: If no strategy has that name
    """
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown render strategy: {name}") from None


def render_snapshot(strategy: RenderStrategy, text: str, base: str = INTERNAL_BASE) -> str:
    """Render the full buffer and point its links at the internal route."""
    return rewrite_links(strategy.render(text), base)


__all__ = [
    "INTERNAL_BASE",
    "STOP_WORDS",
    "STRATEGIES",
    "RenderStrategy",
    "article_href",
    "classify_line",
    "get_strategy",
    "render_autolinked",
    "render_markdown",
    "render_sections",
    "render_snapshot",
    "rewrite_links",
]
