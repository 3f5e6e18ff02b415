"""Line-driven Markdown block parser.

``BlockParser.parse`` walks the document once, top to bottom, and yields
blocks as soon as they are complete. Callers render each block before the
parser reads the next line, so anything recorded while rendering (such as
link reference definitions) is visible to later blocks only.
"""

import re
from collections.abc import Iterator

from .models import Block, BlockKind
from .tables import is_delimiter_row, parse_table

_REFERENCE_RE = re.compile(
    r"^ {0,3}\[([^\]]+)\]:\s*(<[^>]*>|\S+)"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*$"
)
_ATX_RE = re.compile(r"^(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_BULLET_RE = re.compile(r"^( *)([-*+])(?:[ \t]+(.*)|[ \t]*)$")
_ORDERED_RE = re.compile(r"^( *)(\d{1,9})([.)])(?:[ \t]+(.*)|[ \t]*)$")
_QUOTE_RE = re.compile(r"^ {0,3}>")

FENCES = ("```", "~~~")


def indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def is_thematic_break(line: str) -> bool:
    marker = None
    count = 0
    for c in line:
        if c in " \t":
            continue
        if c not in "-*_":
            return False
        if marker is None:
            marker = c
        if c != marker:
            return False
        count += 1
    return count >= 3


def setext_level(line: str) -> int:
    """1 for ``===``, 2 for ``---`` underlines, else 0."""
    stripped = line.strip()
    if stripped and set(stripped) == {"="}:
        return 1
    if stripped and set(stripped) == {"-"}:
        return 2
    return 0


def parse_atx_heading(line: str) -> tuple[int, str] | None:
    m = _ATX_RE.match(line.strip())
    if not m:
        return None
    text = (m.group(2) or "").strip()
    if text and set(text) == {"#"}:
        text = ""
    return len(m.group(1)), text


def parse_list_marker(line: str) -> tuple[int, str, bool, str, int] | None:
    """Return (indent, marker, ordered, text, content column) for a list item."""
    m = _BULLET_RE.match(line)
    if m:
        indent, marker, text = len(m.group(1)), m.group(2), m.group(3) or ""
        return indent, marker, False, text.strip(), indent + len(marker) + 1
    m = _ORDERED_RE.match(line)
    if m:
        indent = len(m.group(1))
        marker = m.group(2) + m.group(3)
        text = m.group(4) or ""
        return indent, marker, True, text.strip(), indent + len(marker) + 1
    return None


def parse_blockquote(line: str) -> tuple[int, str]:
    """Nesting level and content of a ``>`` line."""
    rest = line.strip()
    level = 0
    while rest.startswith(">"):
        level += 1
        rest = rest[1:].lstrip(" \t")
    return level, rest.strip()


def parse_reference(line: str) -> tuple[str, str] | None:
    m = _REFERENCE_RE.match(line)
    if not m:
        return None
    destination = m.group(2)
    if destination.startswith("<") and destination.endswith(">"):
        destination = destination[1:-1]
    return m.group(1).strip(), destination


class BlockParser:
    """Classifies lines into blocks while carrying multi-line state."""

    def __init__(self) -> None:
        self.paragraph: list[str] = []

        self.code_lines: list[str] | None = None
        self.code_fence: str | None = None  # None while an indented block is open
        self.code_language: str | None = None

        self.table_header: str | None = None
        self.table_delimiter: str | None = None
        self.table_rows: list[str] = []
        self.pending_header: str | None = None

        self.list_active = False
        self.list_level = 0
        self.list_marker_indent = 0
        self.list_content_indent = 0
        self.list_loose = False
        self.blank_pending = False

    # -- flushing -------------------------------------------------------

    def _flush_paragraph(self) -> Iterator[Block]:
        if self.pending_header is not None:
            self.paragraph.append(self.pending_header.strip())
            self.pending_header = None
        if self.paragraph:
            text = " ".join(self.paragraph)
            self.paragraph = []
            yield Block(kind=BlockKind.PARAGRAPH, text=text)

    def _flush_code(self) -> Iterator[Block]:
        if self.code_lines is None:
            return
        lines = self.code_lines
        fenced = self.code_fence is not None
        language = self.code_language
        self.code_lines = None
        self.code_fence = None
        self.code_language = None

        while lines and not lines[-1].strip():
            lines.pop()
        if not lines:
            return
        yield Block(
            kind=BlockKind.FENCED_CODE if fenced else BlockKind.INDENTED_CODE,
            text="\n".join(lines),
            language=language,
        )

    def _flush_table(self) -> Iterator[Block]:
        if self.table_header is None:
            return
        table = parse_table(self.table_header, self.table_delimiter, self.table_rows)
        self.table_header = None
        self.table_delimiter = None
        self.table_rows = []
        yield Block(kind=BlockKind.TABLE, table=table)

    def _end_list(self) -> None:
        self.list_active = False
        self.list_loose = False
        self.blank_pending = False

    # -- per-line classification ---------------------------------------

    def _code_line(self, line: str) -> Iterator[Block] | None:
        """Handle a line while a code block is open.

        Returns None when the line closed an indented block and still needs
        normal classification.
        """
        if self.code_fence is not None:
            if line.strip().startswith(self.code_fence):
                return self._flush_code()
            self.code_lines.append(line)
            return iter(())
        if not line.strip():
            self.code_lines.append("")
            return iter(())
        if indent_width(line) >= 4:
            self.code_lines.append(line[4:])
            return iter(())
        return None

    def feed(self, raw_line: str) -> Iterator[Block]:
        line = raw_line.rstrip("\r").expandtabs(4)
        trimmed = line.strip()

        if self.code_lines is not None:
            handled = self._code_line(line)
            if handled is not None:
                yield from handled
                return
            yield from self._flush_code()

        if self.table_header is not None:
            if trimmed and "|" in trimmed:
                self.table_rows.append(line)
                return
            yield from self._flush_table()

        if self.pending_header is not None:
            if is_delimiter_row(trimmed):
                self.table_header = self.pending_header
                self.table_delimiter = trimmed
                self.pending_header = None
                return
            self.paragraph.append(self.pending_header.strip())
            self.pending_header = None

        if not self.paragraph:
            reference = parse_reference(line)
            if reference is not None:
                label, destination = reference
                yield Block(
                    kind=BlockKind.REFERENCE_DEFINITION,
                    label=label,
                    destination=destination,
                )
                return

        fence = next((f for f in FENCES if trimmed.startswith(f)), None)
        if fence is not None:
            yield from self._flush_paragraph()
            self._end_list()
            info = trimmed[len(fence):].strip().strip(fence[0]).strip()
            self.code_lines = []
            self.code_fence = fence
            self.code_language = info.split()[0] if info else None
            return

        list_item = parse_list_marker(line)
        quote = _QUOTE_RE.match(line) is not None

        if (
            indent_width(line) >= 4
            and trimmed
            and not self.paragraph
            and not self.list_active
            and list_item is None
            and not quote
        ):
            self.code_lines = [line[4:]]
            self.code_fence = None
            self.code_language = None
            return

        if not trimmed:
            yield from self._flush_paragraph()
            if self.list_active:
                self.blank_pending = True
            return

        if self.paragraph and not self.list_active:
            level = setext_level(trimmed)
            if level:
                text = " ".join(self.paragraph)
                self.paragraph = []
                yield Block(kind=BlockKind.HEADING, level=level, text=text)
                return

        if is_thematic_break(trimmed):
            yield from self._flush_paragraph()
            self._end_list()
            yield Block(kind=BlockKind.THEMATIC_BREAK)
            return

        if quote:
            yield from self._flush_paragraph()
            self._end_list()
            level, text = parse_blockquote(line)
            yield Block(kind=BlockKind.BLOCKQUOTE, level=level, text=text)
            return

        if list_item is not None:
            yield from self._flush_paragraph()
            indent, marker, ordered, text, content_indent = list_item
            if self.list_active and self.blank_pending:
                self.list_loose = True
            level = indent // 2
            yield Block(
                kind=BlockKind.LIST_ITEM,
                text=text,
                level=level,
                marker=marker,
                ordered=ordered,
                loose=self.list_loose,
            )
            self.list_active = True
            self.list_level = level
            self.list_marker_indent = indent
            self.list_content_indent = content_indent
            self.blank_pending = False
            return

        if self.list_active:
            indent = indent_width(line)
            if indent >= self.list_content_indent or indent >= self.list_marker_indent + 2:
                separated = self.blank_pending
                self.blank_pending = False
                yield Block(
                    kind=BlockKind.LIST_ITEM,
                    text=trimmed,
                    level=self.list_level,
                    continuation=True,
                    loose=separated,
                )
                return
            self._end_list()

        heading = parse_atx_heading(trimmed) if trimmed.startswith("#") else None
        if heading is not None:
            yield from self._flush_paragraph()
            level, text = heading
            yield Block(kind=BlockKind.HEADING, level=level, text=text)
            return

        if "|" in trimmed and not self.paragraph:
            self.pending_header = line
            return

        self.paragraph.append(trimmed)

    def finish(self) -> Iterator[Block]:
        """Flush whatever is still open at end of input."""
        yield from self._flush_code()
        yield from self._flush_table()
        yield from self._flush_paragraph()
        self._end_list()

    def parse(self, text: str) -> Iterator[Block]:
        for line in text.split("\n"):
            yield from self.feed(line)
        yield from self.finish()


def parse_blocks(text: str) -> Iterator[Block]:
    return BlockParser().parse(text)
