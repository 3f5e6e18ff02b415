"""File-level conversion around the in-memory renderer."""

import time
from pathlib import Path

from ..logger import clear_context, logger, set_context
from .models import LayoutSettings
from .renderer import render_markdown


class ConversionError(RuntimeError):
    """Raised when a conversion cannot read its input or write its output."""

    pass


class InputReadError(ConversionError):
    pass


class OutputWriteError(ConversionError):
    pass


def default_output_path(input_path: str) -> str:
    """Swap the basename's extension for ``.pdf``, or append it.

    Only a dot inside the final path component counts, so
    ``dir.v2/README`` becomes ``dir.v2/README.pdf``.
    """
    sep_idx = max(input_path.rfind("/"), input_path.rfind("\\"))
    basename_start = sep_idx + 1
    dot = input_path.rfind(".", basename_start)
    if dot == -1:
        return f"{input_path}.pdf"
    return f"{input_path[:dot]}.pdf"


def convert_file(
    input_path: str | Path,
    output_path: str | Path | None = None,
    settings: LayoutSettings | None = None,
) -> Path:
    """Read a Markdown file, render it and write the PDF next to it.

    Args:
        input_path: Markdown file to read.
        output_path: Destination; derived from ``input_path`` when omitted.
        settings: Layout constants; defaults apply when omitted.

    Returns:
        Path of the written PDF.

    Raises:
        InputReadError: If the input cannot be read.
        OutputWriteError: If the output cannot be written.
    """
    input_path = Path(input_path)
    output_path = Path(output_path or default_output_path(str(input_path)))
    set_context(input_path=str(input_path), output_path=str(output_path))

    try:
        start = time.perf_counter()
        try:
            markdown = input_path.read_bytes()
        except OSError as e:
            logger.error("failed to read markdown", error=str(e))
            raise InputReadError(f"Cannot read {input_path}: {e}") from e

        pdf = render_markdown(markdown, settings)

        try:
            output_path.write_bytes(pdf)
        except OSError as e:
            logger.error("failed to write pdf", error=str(e))
            raise OutputWriteError(f"Cannot write {output_path}: {e}") from e

        logger.info(
            "pdf written",
            input_bytes=len(markdown),
            output_bytes=len(pdf),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return output_path
    finally:
        clear_context()
