"""Markdown bytes to PDF bytes."""

import time

from ..logger import logger
from .blocks import BlockParser
from .highlight import lexer_for
from .inline import ReferenceMap, styled_words
from .layout import RenderContext
from .models import Block, BlockKind, CodeToken, LayoutSettings, Style, StyledWord
from .pdf_writer import build_pdf
from .tables import format_table


def _split_tokens(tokens: list[CodeToken], width: int) -> list[list[CodeToken]]:
    """Hard-wrap a token line into chunks of at most ``width`` characters."""
    chunks: list[list[CodeToken]] = [[]]
    used = 0
    for token in tokens:
        text = token.text
        while text:
            room = width - used
            if room <= 0:
                chunks.append([])
                used = 0
                room = width
            piece, text = text[:room], text[room:]
            chunks[-1].append(CodeToken(text=piece, kind=token.kind))
            used += len(piece)
    return chunks


class MarkdownRenderer:
    """Draws parsed blocks onto pages through a RenderContext."""

    def __init__(self, settings: LayoutSettings | None = None):
        self.settings = settings or LayoutSettings()
        self.ctx = RenderContext(self.settings)
        self.references = ReferenceMap()
        # text x-position of the most recent list item per nesting level
        self._list_text_x: dict[int, float] = {}

    # -- block handlers -------------------------------------------------

    def render_paragraph(self, block: Block) -> None:
        s = self.settings
        words = styled_words(block.text, self.references)
        if not words:
            return
        self.ctx.draw_wrapped(
            words, s.margin_left, s.body_font_size, s.body_line_height, s.body_max_chars
        )
        self.ctx.skip(s.paragraph_gap)

    def render_heading(self, block: Block) -> None:
        s = self.settings
        words = styled_words(block.text, self.references)
        if words:
            size = s.heading_size(block.level)
            self.ctx.draw_wrapped(
                words, s.margin_left, size, size + 6, s.heading_budget(block.level)
            )
        self.ctx.skip(s.heading_gap)

    def render_code(self, block: Block) -> None:
        s = self.settings
        lex = lexer_for(block.language if block.kind == BlockKind.FENCED_CODE else None)
        self.ctx.skip(s.code_gap_before)
        for line in block.text.split("\n"):
            tokens = lex(line.expandtabs(4))
            for chunk in _split_tokens(tokens, s.code_max_chars):
                self.ctx.draw_code_line(chunk, s.margin_left, s.code_font_size, s.code_line_height)
        self.ctx.skip(s.code_gap_after)

    def render_list_item(self, block: Block) -> None:
        s = self.settings
        if block.loose:
            self.ctx.skip(s.loose_list_gap)

        marker_x = s.margin_left + block.level * s.list_indent
        words = styled_words(block.text, self.references)

        if block.continuation:
            text_x = self._list_text_x.get(block.level, marker_x + s.list_indent)
            if words:
                budget = self.ctx.max_chars_at(text_x, s.body_max_chars, s.body_font_size)
                self.ctx.draw_wrapped(
                    words, text_x, s.body_font_size, s.body_line_height, budget
                )
            return

        marker = block.marker if block.ordered else "-"
        marker_width = self.ctx.word_width(marker + " ", s.body_font_size)
        text_x = marker_x + max(marker_width, s.list_indent)
        self._list_text_x[block.level] = text_x
        for deeper in [lvl for lvl in self._list_text_x if lvl > block.level]:
            del self._list_text_x[deeper]

        budget = self.ctx.max_chars_at(marker_x, s.body_max_chars, s.body_font_size)
        self.ctx.draw_wrapped(
            [StyledWord(text=marker)] + words,
            marker_x,
            s.body_font_size,
            s.body_line_height,
            budget,
            hanging_x=text_x,
        )

    def render_blockquote(self, block: Block) -> None:
        s = self.settings
        level = max(block.level, 1)
        x = s.margin_left + level * s.blockquote_indent
        size = s.body_font_size
        line_height = s.body_line_height
        words = styled_words(block.text, self.references)
        if not words:
            self.ctx.skip(s.paragraph_gap)
            return

        def rule(baseline: float) -> None:
            top = baseline + size
            bottom = baseline + size - line_height
            for depth in range(level):
                bar_x = s.margin_left + depth * s.blockquote_indent + s.blockquote_indent / 2
                self.ctx.draw_vertical_rule(bar_x, top, bottom)

        budget = self.ctx.max_chars_at(x, s.body_max_chars, size)
        self.ctx.draw_wrapped(words, x, size, line_height, budget, on_line=rule)

    def render_thematic_break(self, block: Block) -> None:
        s = self.settings
        self.ctx.ensure_space(s.rule_space)
        self.ctx.draw_horizontal_rule(
            s.margin_left, s.page_width - s.margin_right, self.ctx.cursor_y
        )
        self.ctx.skip(s.rule_advance)

    def render_table(self, block: Block) -> None:
        s = self.settings
        for line in format_table(block.table, s.table_max_chars):
            self.ctx.draw_text_line(
                line, s.margin_left, s.table_font_size, s.table_line_height, Style.MONO
            )
        self.ctx.skip(s.paragraph_gap)

    def record_reference(self, block: Block) -> None:
        self.references.add(block.label, block.destination)

    # -- driver ---------------------------------------------------------

    def render_block(self, block: Block) -> None:
        handlers = {
            BlockKind.PARAGRAPH: self.render_paragraph,
            BlockKind.HEADING: self.render_heading,
            BlockKind.FENCED_CODE: self.render_code,
            BlockKind.INDENTED_CODE: self.render_code,
            BlockKind.LIST_ITEM: self.render_list_item,
            BlockKind.BLOCKQUOTE: self.render_blockquote,
            BlockKind.THEMATIC_BREAK: self.render_thematic_break,
            BlockKind.TABLE: self.render_table,
            BlockKind.REFERENCE_DEFINITION: self.record_reference,
        }
        if block.kind not in (BlockKind.LIST_ITEM, BlockKind.REFERENCE_DEFINITION):
            self._list_text_x.clear()
        handlers[block.kind](block)

    def render(self, text: str) -> bytes:
        for block in BlockParser().parse(text):
            self.render_block(block)

        if not self.ctx.has_page:
            s = self.settings
            self.ctx.draw_text_line(
                s.empty_placeholder, s.margin_left, s.body_font_size, s.body_line_height
            )

        pages = self.ctx.finish()
        return build_pdf(pages, self.settings)


def render_markdown(markdown: bytes, settings: LayoutSettings | None = None) -> bytes:
    """Render a Markdown byte buffer into a complete PDF byte buffer.

    Input bytes are decoded one-to-one, so non-ASCII bytes pass through to
    the content streams unchanged. Never fails on malformed Markdown.
    """
    start = time.perf_counter()
    renderer = MarkdownRenderer(settings)
    pdf = renderer.render(markdown.decode("latin-1"))
    logger.debug(
        "markdown rendered",
        input_bytes=len(markdown),
        output_bytes=len(pdf),
        references=len(renderer.references),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return pdf
