from .models import (
    Alignment,
    Block,
    BlockKind,
    CodeToken,
    LayoutSettings,
    LinkAnnotation,
    Page,
    SettingsError,
    Style,
    StyledWord,
    TableData,
    TokenKind,
)
from .inline import ReferenceMap, styled_words
from .highlight import highlight_line
from .tables import format_table, parse_table
from .blocks import BlockParser, parse_blocks
from .layout import RenderContext
from .pdf_writer import PdfWriter, build_pdf
from .renderer import MarkdownRenderer, render_markdown
from .converter import (
    ConversionError,
    InputReadError,
    OutputWriteError,
    convert_file,
    default_output_path,
)

__all__ = [
    # Models
    "Alignment",
    "Block",
    "BlockKind",
    "CodeToken",
    "LayoutSettings",
    "LinkAnnotation",
    "Page",
    "SettingsError",
    "Style",
    "StyledWord",
    "TableData",
    "TokenKind",
    # Inline styling
    "ReferenceMap",
    "styled_words",
    # Code highlighting
    "highlight_line",
    # Tables
    "format_table",
    "parse_table",
    # Block parsing
    "BlockParser",
    "parse_blocks",
    # Layout
    "RenderContext",
    # PDF output
    "PdfWriter",
    "build_pdf",
    # Rendering
    "MarkdownRenderer",
    "render_markdown",
    # Files
    "ConversionError",
    "InputReadError",
    "OutputWriteError",
    "convert_file",
    "default_output_path",
]
