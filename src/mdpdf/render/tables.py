"""Pipe table parsing and fixed-width formatting."""

from .models import Alignment, TableData

DELIMITER_CHARS = frozenset("-:| ")


def split_row(line: str) -> list[str]:
    """Split a pipe-delimited row into trimmed cells.

    One optional leading and one optional trailing pipe are dropped first.
    """
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def is_delimiter_row(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    return (
        all(c in DELIMITER_CHARS for c in stripped)
        and "-" in stripped
        and "|" in stripped
    )


def parse_alignments(line: str) -> list[Alignment]:
    alignments = []
    for cell in split_row(line):
        if len(cell) > 1 and cell.startswith(":") and cell.endswith(":"):
            alignments.append(Alignment.CENTER)
        elif cell.endswith(":"):
            alignments.append(Alignment.RIGHT)
        else:
            alignments.append(Alignment.LEFT)
    return alignments


def parse_table(header: str, delimiter: str, rows: list[str] | None = None) -> TableData:
    headers = split_row(header)
    alignments = parse_alignments(delimiter)[: len(headers)]
    alignments += [Alignment.LEFT] * (len(headers) - len(alignments))
    return TableData(
        headers=headers,
        rows=[split_row(row) for row in rows or []],
        alignments=alignments,
    )


def _normalize_row(row: list[str], columns: int) -> list[str]:
    return (row + [""] * columns)[:columns]


def column_widths(table: TableData, max_chars: int) -> list[int]:
    """Per-column widths that keep the rendered line within ``max_chars``."""
    columns = len(table.headers)
    widths = [max(1, len(cell)) for cell in table.headers]
    for row in table.rows:
        for idx, cell in enumerate(_normalize_row(row, columns)):
            widths[idx] = max(widths[idx], len(cell))

    # "| " + " | " between columns + " |"
    separators = 3 * (columns - 1) + 4
    if sum(widths) + separators <= max_chars:
        return widths

    remaining = max(columns, max_chars - separators)
    capped = list(widths)
    left = columns
    for idx in sorted(range(columns), key=lambda k: (widths[k], k)):
        share = max(1, remaining // left)
        capped[idx] = min(widths[idx], share)
        remaining -= capped[idx]
        left -= 1
    return capped


def _fit(cell: str, width: int, alignment: Alignment) -> str:
    cell = cell[:width]
    if alignment == Alignment.RIGHT:
        return cell.rjust(width)
    if alignment == Alignment.CENTER:
        return cell.center(width)
    return cell.ljust(width)


def format_row(cells: list[str], widths: list[int], alignments: list[Alignment]) -> str:
    fitted = [
        _fit(cell, width, alignment)
        for cell, width, alignment in zip(cells, widths, alignments)
    ]
    return "| " + " | ".join(fitted) + " |"


def format_table(table: TableData, max_chars: int) -> list[str]:
    """Render the table as monospaced lines: header, rule, rows."""
    columns = len(table.headers)
    widths = column_widths(table, max_chars)
    lines = [format_row(table.headers, widths, table.alignments)]
    lines.append("|" + "|".join("-" * (w + 2) for w in widths) + "|")
    for row in table.rows:
        lines.append(format_row(_normalize_row(row, columns), widths, table.alignments))
    return lines
