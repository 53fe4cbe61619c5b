"""Markdown + LaTeX rendering of question prompts and options.

Math is left in place as ``$...$`` / ``$$...$$`` for MathJax to typeset on
the client; only the markdown is converted here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML block fragment."""

        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single-line option label without a wrapping paragraph."""

        return self._markdown.renderInline(markdown_text.strip())


# Shared instance; MarkdownIt is safe to reuse for read-only renders.
renderer = MarkdownMathRenderer()
