"""Shared data models for the Markdown rendering pipeline."""

import os
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SettingsError(RuntimeError):
    """Raised when layout settings cannot be loaded."""

    pass


class Style(str, Enum):
    REGULAR = "regular"
    BOLD = "bold"
    ITALIC = "italic"
    BOLD_ITALIC = "bold_italic"
    MONO = "mono"
    LINK = "link"


class TokenKind(str, Enum):
    NORMAL = "normal"
    KEYWORD = "keyword"
    COMMAND = "command"
    OPTION = "option"
    STRING = "string"
    NUMBER = "number"
    COMMENT = "comment"


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class BlockKind(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    FENCED_CODE = "fenced_code"
    INDENTED_CODE = "indented_code"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    THEMATIC_BREAK = "thematic_break"
    TABLE = "table"
    REFERENCE_DEFINITION = "reference_definition"


class StyledWord(BaseModel):
    """A whitespace-delimited word with the style active at its start."""

    text: str
    style: Style = Style.REGULAR
    link: str | None = None  # annotation destination, link words only


class CodeToken(BaseModel):
    text: str
    kind: TokenKind = TokenKind.NORMAL


class TableData(BaseModel):
    """A pipe table with its column alignments."""

    headers: list[str]
    rows: list[list[str]] = Field(default_factory=list)
    alignments: list[Alignment] = Field(default_factory=list)


class Block(BaseModel):
    """A classified unit of input emitted by the block parser.

    Only the fields relevant to ``kind`` are set:
        heading: text, level
        fenced_code / indented_code: text, language (fenced only)
        list_item: text, level, marker, ordered, loose, continuation
        blockquote: text, level
        table: table
        reference_definition: label, destination
    """

    kind: BlockKind
    text: str = ""
    level: int = 0
    language: str | None = None
    marker: str | None = None
    ordered: bool = False
    loose: bool = False
    continuation: bool = False
    table: TableData | None = None
    label: str | None = None
    destination: str | None = None


class LinkAnnotation(BaseModel):
    """Clickable rectangle in page coordinates."""

    x1: float
    y1: float
    x2: float
    y2: float
    url: str


class Page(BaseModel):
    """Content-stream operators and link annotations for one page."""

    operators: list[str] = Field(default_factory=list)
    annotations: list[LinkAnnotation] = Field(default_factory=list)

    def content(self) -> bytes:
        # latin-1 keeps input bytes 1:1
        return "".join(self.operators).encode("latin-1")


class LayoutSettings(BaseModel):
    """Layout constants for one conversion. Units are PDF points."""

    page_width: int = Field(default=612, gt=0)
    page_height: int = Field(default=792, gt=0)
    margin_left: int = Field(default=54, ge=0)
    margin_right: int = Field(default=54, ge=0)
    margin_top: int = Field(default=54, ge=0)
    margin_bottom: int = Field(default=54, ge=0)

    body_font_size: int = Field(default=12, gt=0)
    body_line_height: int = Field(default=16, gt=0)
    body_max_chars: int = Field(default=80, gt=0)
    paragraph_gap: int = Field(default=4, ge=0)

    heading_sizes: tuple[int, int, int] = (24, 18, 14)
    heading_max_chars: tuple[int, int, int] = (40, 55, 70)
    heading_gap: int = Field(default=6, ge=0)

    code_font_size: int = Field(default=11, gt=0)
    code_line_height: int = Field(default=14, gt=0)
    code_max_chars: int = Field(default=84, gt=0)
    code_gap_before: int = Field(default=2, ge=0)
    code_gap_after: int = Field(default=6, ge=0)

    table_font_size: int = Field(default=10, gt=0)
    table_line_height: int = Field(default=13, gt=0)
    table_max_chars: int = Field(default=84, gt=0)

    list_indent: int = Field(default=18, ge=0)
    loose_list_gap: int = Field(default=6, ge=0)
    blockquote_indent: int = Field(default=14, ge=0)
    rule_space: int = Field(default=16, gt=0)
    rule_advance: int = Field(default=20, gt=0)

    # Approximate glyph width as a fraction of the font size
    char_width_ratio: float = Field(default=0.5, gt=0, le=1)
    empty_placeholder: str = "(empty document)"

    @model_validator(mode="after")
    def check_printable_area(self) -> "LayoutSettings":
        if self.margin_top + self.margin_bottom >= self.page_height:
            raise ValueError("vertical margins leave no room on the page")
        if self.margin_left + self.margin_right >= self.page_width:
            raise ValueError("horizontal margins leave no room on the page")
        return self

    @classmethod
    def from_env(cls) -> "LayoutSettings":
        """Build settings with page geometry overridden from MDPDF_* variables.

        Raises:
            SettingsError: If a variable is not an integer or is out of range.
        """
        overrides: dict[str, int] = {}
        try:
            if os.getenv("MDPDF_PAGE_WIDTH"):
                overrides["page_width"] = int(os.environ["MDPDF_PAGE_WIDTH"])
            if os.getenv("MDPDF_PAGE_HEIGHT"):
                overrides["page_height"] = int(os.environ["MDPDF_PAGE_HEIGHT"])
            if os.getenv("MDPDF_MARGIN"):
                margin = int(os.environ["MDPDF_MARGIN"])
                overrides.update(
                    margin_left=margin,
                    margin_right=margin,
                    margin_top=margin,
                    margin_bottom=margin,
                )
            return cls(**overrides)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too
            raise SettingsError(f"Invalid layout settings in environment: {e}") from e

    def heading_size(self, level: int) -> int:
        return self.heading_sizes[min(max(level, 1), 3) - 1]

    def heading_budget(self, level: int) -> int:
        return self.heading_max_chars[min(max(level, 1), 3) - 1]

    @property
    def top_y(self) -> int:
        return self.page_height - self.margin_top
