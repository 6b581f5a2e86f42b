from __future__ import annotations

import textwrap
from html.parser import HTMLParser
from typing import List, Protocol


class Renderer(Protocol):
    def render(self, raw: bytes, line_width: int) -> str:
        ...


class _HtmlToParagraphs(HTMLParser):
    block = {"p", "div", "section", "article", "blockquote", "br", "tr", "pre"}
    heading = {"h1", "h2", "h3", "h4", "h5", "h6"}
    bullet = {"li"}
    hidden = {"script", "style", "head", "title"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.paragraphs: List[str] = [""]
        self.hidden_depth = 0
        self.pending_space = False

    def _break(self) -> None:
        self.pending_space = False
        if self.paragraphs[-1].strip():
            self.paragraphs.append("")

    def handle_starttag(self, tag, attrs):
        if tag in self.hidden:
            self.hidden_depth += 1
        elif tag in self.block or tag in self.heading:
            self._break()
        elif tag in self.bullet:
            self._break()
            self.paragraphs[-1] = "- "
        elif tag == "img":
            alt = dict(attrs).get("alt")
            if alt:
                self.paragraphs[-1] += f"[{alt}]"

    def handle_endtag(self, tag):
        if tag in self.hidden:
            self.hidden_depth = max(0, self.hidden_depth - 1)
        elif tag in self.block or tag in self.heading or tag in self.bullet:
            self._break()

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)
        if tag == "br":
            self._break()

    def handle_data(self, data):
        if self.hidden_depth:
            return
        text = " ".join(data.split())
        if not text:
            if data:
                self.pending_space = True
            return
        current = self.paragraphs[-1]
        if current and not current.endswith(" ") and (self.pending_space or data[:1].isspace()):
            current += " "
        self.paragraphs[-1] = current + text
        self.pending_space = data[-1:].isspace()


class HtmlTextRenderer:
    """
    Turns (X)HTML page markup into plain text wrapped to the terminal width.
    Block elements become separate paragraphs; list items get a "- " bullet.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def render(self, raw: bytes, line_width: int) -> str:
        markup = raw.decode(self.encoding, errors="replace")
        parser = _HtmlToParagraphs()
        parser.feed(markup)
        parser.close()

        width = max(1, line_width)
        lines: List[str] = []
        for paragraph in parser.paragraphs:
            paragraph = paragraph.strip()
            if not paragraph:
                continue
            if lines:
                lines.append("")
            lines.extend(textwrap.wrap(paragraph, width=width) or [""])
        return "\n".join(lines)
