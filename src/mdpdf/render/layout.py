"""Text layout and pagination.

A RenderContext belongs to exactly one conversion. It owns the finished
pages, the page being drawn and the vertical cursor; every drawing call
goes through it, so per-page link annotations never leak between calls.
"""

from collections.abc import Callable

from .highlight import TOKEN_COLORS
from .models import CodeToken, LayoutSettings, LinkAnnotation, Page, Style, StyledWord, TokenKind

FONT_FOR_STYLE = {
    Style.REGULAR: "/F1",
    Style.BOLD: "/F2",
    Style.ITALIC: "/F3",
    Style.BOLD_ITALIC: "/F4",
    Style.MONO: "/F5",
    Style.LINK: "/F1",
}

LINK_COLOR = (0.0, 0.0, 0.8)


def escape_pdf_text(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace("(", "\\(")
        .replace(")", "\\)")
        .replace("\r", "\\r")
    )


def fmt_number(value: float) -> str:
    """Compact, deterministic number formatting for operators."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _rgb(color: tuple[float, float, float]) -> str:
    return " ".join(fmt_number(c) for c in color) + " rg"


class RenderContext:
    """Cursor, current page and finished pages for one conversion."""

    def __init__(self, settings: LayoutSettings):
        self.settings = settings
        self.pages: list[Page] = []
        self.page: Page | None = None
        self.cursor_y: float = settings.top_y

    @property
    def has_page(self) -> bool:
        return self.page is not None

    def _new_page(self) -> None:
        self.page = Page()
        self.cursor_y = self.settings.top_y

    def _finalize_page(self) -> None:
        if self.page is not None:
            self.pages.append(self.page)
            self.page = None

    def ensure_space(self, line_height: float) -> Page:
        """Make sure a line of ``line_height`` fits, breaking the page if not."""
        if self.page is None:
            self._new_page()
        elif self.cursor_y - line_height < self.settings.margin_bottom:
            self._finalize_page()
            self._new_page()
        return self.page

    def skip(self, dy: float) -> None:
        """Vertical gap between blocks."""
        self.cursor_y -= dy

    def max_chars_at(self, x: float, base: int, font_size: float) -> int:
        """Character budget ``base`` reduced by the indentation at ``x``."""
        indent = max(0.0, x - self.settings.margin_left)
        lost = int(indent // (font_size * self.settings.char_width_ratio))
        return max(8, base - lost)

    def word_width(self, text: str, font_size: float) -> float:
        return len(text) * font_size * self.settings.char_width_ratio

    def draw_styled_line(self, words: list[StyledWord], x: float, font_size: float) -> None:
        """Draw one line of words at the cursor; the caller ensured space."""
        page = self.page
        y = self.cursor_y
        ops = [f"BT 1 0 0 1 {fmt_number(x)} {fmt_number(y)} Tm\n"]
        current: Style | None = None
        pen_x = x
        space = self.word_width(" ", font_size)

        for idx, word in enumerate(words):
            font = FONT_FOR_STYLE[word.style]
            if current is None or FONT_FOR_STYLE[current] != font:
                ops.append(f"{font} {fmt_number(font_size)} Tf\n")
            current = word.style

            if idx:
                ops.append("( ) Tj\n")
                pen_x += space

            escaped = escape_pdf_text(word.text)
            if word.style == Style.LINK:
                ops.append(f"{_rgb(LINK_COLOR)}\n({escaped}) Tj\n0 g\n")
            else:
                ops.append(f"({escaped}) Tj\n")

            width = self.word_width(word.text, font_size)
            if word.style == Style.LINK and word.link:
                page.annotations.append(
                    LinkAnnotation(
                        x1=round(pen_x, 2),
                        y1=round(y - font_size * 0.25, 2),
                        x2=round(pen_x + width, 2),
                        y2=round(y + font_size * 0.9, 2),
                        url=word.link,
                    )
                )
            pen_x += width

        ops.append("ET\n")
        page.operators.append("".join(ops))

    def draw_wrapped(
        self,
        words: list[StyledWord],
        x: float,
        font_size: float,
        line_height: float,
        max_chars: int,
        hanging_x: float | None = None,
        on_line: Callable[[float], None] | None = None,
    ) -> int:
        """Greedy word wrap under a character budget.

        Continuation lines start at ``hanging_x`` when given. ``on_line`` is
        called with each line's baseline after it is drawn, on the page it
        was drawn on. Returns the number of lines drawn.
        """
        lines = 0
        line_words: list[StyledWord] = []
        line_chars = 0

        def emit() -> None:
            nonlocal lines
            self.ensure_space(line_height)
            baseline = self.cursor_y
            start_x = x if lines == 0 or hanging_x is None else hanging_x
            self.draw_styled_line(line_words, start_x, font_size)
            if on_line is not None:
                on_line(baseline)
            self.cursor_y -= line_height
            lines += 1

        for word in words:
            if not line_words:
                line_words = [word]
                line_chars = len(word.text)
                continue
            if line_chars + 1 + len(word.text) <= max_chars:
                line_words.append(word)
                line_chars += 1 + len(word.text)
                continue
            emit()
            line_words = [word]
            line_chars = len(word.text)

        if line_words:
            emit()
        return lines

    def draw_text_line(
        self,
        text: str,
        x: float,
        font_size: float,
        line_height: float,
        style: Style = Style.REGULAR,
    ) -> None:
        self.ensure_space(line_height)
        self.page.operators.append(
            f"BT {FONT_FOR_STYLE[style]} {fmt_number(font_size)} Tf "
            f"1 0 0 1 {fmt_number(x)} {fmt_number(self.cursor_y)} Tm "
            f"({escape_pdf_text(text)}) Tj ET\n"
        )
        self.cursor_y -= line_height

    def draw_code_line(
        self,
        tokens: list[CodeToken],
        x: float,
        font_size: float,
        line_height: float,
    ) -> None:
        """Draw highlighted tokens in the monospaced font."""
        self.ensure_space(line_height)
        if tokens:
            ops = [
                f"BT {FONT_FOR_STYLE[Style.MONO]} {fmt_number(font_size)} Tf "
                f"1 0 0 1 {fmt_number(x)} {fmt_number(self.cursor_y)} Tm\n"
            ]
            color = TOKEN_COLORS[TokenKind.NORMAL]
            for token in tokens:
                token_color = TOKEN_COLORS[token.kind]
                if token_color != color:
                    ops.append(f"{_rgb(token_color)}\n")
                    color = token_color
                ops.append(f"({escape_pdf_text(token.text)}) Tj\n")
            if color != TOKEN_COLORS[TokenKind.NORMAL]:
                ops.append("0 g\n")
            ops.append("ET\n")
            self.page.operators.append("".join(ops))
        self.cursor_y -= line_height

    def draw_horizontal_rule(self, x1: float, x2: float, y: float) -> None:
        self.page.operators.append(
            f"q 1 w {fmt_number(x1)} {fmt_number(y)} m {fmt_number(x2)} {fmt_number(y)} l S Q\n"
        )

    def draw_vertical_rule(self, x: float, y_top: float, y_bottom: float) -> None:
        self.page.operators.append(
            f"q 0.6 G 2 w {fmt_number(x)} {fmt_number(y_top)} m "
            f"{fmt_number(x)} {fmt_number(y_bottom)} l S Q\n"
        )

    def finish(self) -> list[Page]:
        """Finalize the current page and hand over all pages."""
        self._finalize_page()
        pages, self.pages = self.pages, []
        return pages
