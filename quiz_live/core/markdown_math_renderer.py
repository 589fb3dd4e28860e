"""Markdown + LaTeX rendering of question prompts, shared by Qt and web clients.

Architecture note:
    The renderer converts the same source markup into HTML and relies on
    MathJax at display time, so the teacher console and the student page show
    identical prompts. Fill-in-blank markers are swapped for numbered
    placeholders before markdown runs, otherwise a run of underscores could be
    read as emphasis or a horizontal rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from markdown_it import MarkdownIt

from quiz_live.constants.session_constants import BLANK_MARKER_PATTERN

_MATHJAX_SCRIPT = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"

_BLANK_RE = re.compile(BLANK_MARKER_PATTERN)
_PLACEHOLDER_RE = re.compile(r"\[\[blank:(\d+)\]\]")


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments or full documents."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_prompt(self, prompt: str) -> str:
        """Render a question prompt, turning each ``___`` into a numbered blank slot."""

        counter = iter(range(len(_BLANK_RE.findall(prompt))))
        tokenized = _BLANK_RE.sub(lambda _m: f"[[blank:{next(counter)}]]", prompt)
        html = self.render_fragment(tokenized)
        return _PLACEHOLDER_RE.sub(
            lambda m: f'<span class="blank-slot" data-blank="{m.group(1)}">____</span>', html
        )

    def wrap_with_mathjax(self, body_html: str, title: str = "QuizLive") -> str:
        """Wrap a fragment inside a minimal HTML document that loads MathJax."""

        return f"""<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>{title}</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      body {{ font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 1rem; }}
      .question-html {{ font-size: 1.1rem; line-height: 1.5; }}
      .blank-slot {{ border-bottom: 2px solid currentColor; padding: 0 1.5rem; }}
    </style>
    <script>
      window.MathJax = {{ tex: {{ inlineMath: [['$','$']], displayMath: [['$$','$$']] }}, svg: {{ fontCache: 'global' }} }};
    </script>
    <script defer src=\"{_MATHJAX_SCRIPT}\"></script>
  </head>
  <body>
    <div class=\"question-html\">{body_html}</div>
  </body>
</html>"""

    def render_full_document(self, prompt: str, title: str = "QuizLive") -> str:
        return self.wrap_with_mathjax(self.render_prompt(prompt), title=title)


# MarkdownIt is safe for concurrent read-only renders, so the API threads and
# the Qt thread share this instance.
renderer = MarkdownMathRenderer()
