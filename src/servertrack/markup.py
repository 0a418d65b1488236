from __future__ import annotations

import html
from collections.abc import Iterable
from dataclasses import dataclass

from servertrack.styles import FontStyle, resolve_color, resolve_font

TAG_KINDS = ("color", "font")
MAX_DEPTH = 32


@dataclass(slots=True, frozen=True)
class Text:
    text: str


@dataclass(slots=True, frozen=True)
class LineBreak:
    pass


@dataclass(slots=True, frozen=True)
class Styled:
    kind: str
    children: tuple[Node, ...]
    color: str | None = None
    font: FontStyle | None = None


Node = Text | LineBreak | Styled


class _Builder:
    def __init__(self) -> None:
        self.nodes: list[Node] = []
        self._pending: list[str] = []

    def text(self, chunk: str) -> None:
        if chunk:
            self._pending.append(chunk)

    def styled(self, node: Styled) -> None:
        self.flush()
        self.nodes.append(node)

    def flush(self) -> None:
        if not self._pending:
            return
        lines = "".join(self._pending).split("\n")
        self._pending.clear()
        for i, line in enumerate(lines):
            if i > 0:
                self.nodes.append(LineBreak())
            if line:
                self.nodes.append(Text(line))


def _find_next_tag(text: str, pos: int) -> tuple[int, str] | None:
    best: tuple[int, str] | None = None
    for kind in TAG_KINDS:
        at = text.find(f"[{kind}=", pos)
        if at != -1 and (best is None or at < best[0]):
            best = (at, kind)
    return best


def _make_styled(kind: str, value: str, children: list[Node]) -> Styled:
    if kind == "color":
        return Styled(kind=kind, children=tuple(children), color=resolve_color(value))
    return Styled(kind=kind, children=tuple(children), font=resolve_font(value))


def _parse(text: str, depth: int, max_depth: int) -> list[Node]:
    out = _Builder()
    if depth >= max_depth:
        out.text(text)
        out.flush()
        return out.nodes

    pos = 0
    while pos < len(text):
        found = _find_next_tag(text, pos)
        if found is None:
            out.text(text[pos:])
            break
        start, kind = found
        out.text(text[pos:start])

        value_start = start + len(kind) + 2
        value_end = text.find("]", value_start)
        if value_end != -1:
            close_tag = f"[/{kind}]"
            close_at = text.find(close_tag, value_end + 1)
            if close_at != -1:
                children = _parse(text[value_end + 1 : close_at], depth + 1, max_depth)
                out.styled(_make_styled(kind, text[value_start:value_end], children))
                pos = close_at + len(close_tag)
                continue

        # Unterminated tag: keep the bracket as text and rescan right after it.
        out.text(text[start])
        pos = start + 1

    out.flush()
    return out.nodes


def parse_markup(text: str, max_depth: int = MAX_DEPTH) -> list[Node]:
    """Parse ``[color=..]`` / ``[font=..]`` markup into a node list.

    Malformed tags never raise, they degrade to literal text. Newlines become
    ``LineBreak`` nodes at every nesting level.
    """
    return _parse(text or "", 0, max_depth)


def _render(nodes: Iterable[Node], parts: list[str]) -> None:
    for node in nodes:
        if isinstance(node, Text):
            parts.append(html.escape(node.text))
        elif isinstance(node, LineBreak):
            parts.append("<br>")
        else:
            if node.color is not None:
                style = f"color: {node.color}"
            elif node.font is not None:
                style = node.font.css()
            else:
                style = ""
            if style:
                parts.append(f'<span style="{html.escape(style)}">')
                _render(node.children, parts)
                parts.append("</span>")
            else:
                _render(node.children, parts)


def render_html(nodes: Iterable[Node]) -> str:
    parts: list[str] = []
    _render(nodes, parts)
    return "".join(parts)


def _plain(nodes: Iterable[Node], parts: list[str]) -> None:
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.text)
        elif isinstance(node, LineBreak):
            parts.append("\n")
        else:
            _plain(node.children, parts)


def strip_markup(text: str) -> str:
    parts: list[str] = []
    _plain(parse_markup(text), parts)
    return "".join(parts)
