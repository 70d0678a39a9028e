from __future__ import annotations
import html
import re

HEADINGS = (
    (re.compile(r"^###\s+"), "h3"),
    (re.compile(r"^##\s+"), "h2"),
    (re.compile(r"^#\s+"), "h1"),
)

INLINE = (
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"`(.+?)`"), r"<code>\1</code>"),
)


def _esc(text: str) -> str:
    # only & < > ; quotes never reach an attribute here
    return html.escape(text, quote=False)


def render_line(line: str) -> str:
    for pattern, tag in HEADINGS:
        match = pattern.match(line)
        if match:
            return f"<{tag}>{_esc(line[match.end():])}</{tag}>"

    escaped = _esc(line)
    if not escaped.strip():
        return "<br/>"

    for pattern, repl in INLINE:
        escaped = pattern.sub(repl, escaped)
    return f"<p>{escaped}</p>"


def render(source: str | None) -> str:
    """
    Render note text into a small, safe HTML subset for preview.

    - ``#``, ``##``, ``###`` headings
    - ``**bold**``, ``*italic*``, `` `code` ``
    - blank lines become ``<br/>``, everything else a ``<p>``

    Lines are rendered independently; there are no multi-line blocks.
    """
    return "\n".join(render_line(line) for line in (source or "").split("\n"))
