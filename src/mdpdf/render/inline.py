"""Inline styling: emphasis, code spans, escapes and link resolution."""

import re

from .models import Style, StyledWord

ESCAPABLE = "*_\\`"
WHITESPACE = " \t\n\r\f\v"
URL_SCHEMES = ("http://", "https://", "ftp://", "mailto:")

# Link labels longer than this never match a reference (CommonMark limit)
MAX_LABEL_LENGTH = 999

# Punctuation that may wrap a bare URL inside running text
_URL_TRIM = "()<>[].,;:!?\"'"
_URL_OPENERS = "(<[\"'"

_AUTOLINK_RE = re.compile(r"<([A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")
_DISPLAY_REF_RE = re.compile(r"\[[^\[\]]+\][.,;:!?]*")


class Verbatim(str):
    """Text copied into the current word without emphasis or escape handling."""


class ReferenceMap:
    """Link reference definitions seen so far in the document.

    Labels are matched case-insensitively after trimming. The first
    definition of a label wins.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    @staticmethod
    def normalize(label: str) -> str:
        return label.strip().lower()

    def add(self, label: str, destination: str) -> None:
        key = self.normalize(label)
        if key:
            self._entries.setdefault(key, destination)

    def get(self, label: str) -> str | None:
        return self._entries.get(self.normalize(label))

    def __contains__(self, label: str) -> bool:
        return self.normalize(label) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _style_from_flags(bold: bool, italic: bool) -> Style:
    if bold and italic:
        return Style.BOLD_ITALIC
    if bold:
        return Style.BOLD
    if italic:
        return Style.ITALIC
    return Style.REGULAR


def _is_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def _underscore_allowed(text: str, idx: int, length: int) -> bool:
    prev_alnum = idx > 0 and _is_alnum(text[idx - 1])
    nxt = idx + length
    next_alnum = nxt < len(text) and _is_alnum(text[nxt])
    return not (prev_alnum and next_alnum)


def _can_toggle(text: str, idx: int, length: int) -> bool:
    if text[idx] == "*":
        return True
    return _underscore_allowed(text, idx, length)


def _bracket_pairs(text: str, open_ch: str, close_ch: str) -> dict[int, int]:
    """Map each opening bracket index to the index of its closing bracket.

    One pass with a stack; escaped characters are skipped and unmatched
    openers are left out of the map.
    """
    pairs: dict[int, int] = {}
    stack: list[int] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == open_ch:
            stack.append(i)
        elif ch == close_ch and stack:
            pairs[stack.pop()] = i
        i += 1
    return pairs


def _inline_destination(raw: str) -> str:
    """Destination from the inside of ``(...)``, dropping any title."""
    raw = raw.strip()
    if raw.startswith("<") and ">" in raw:
        return raw[1 : raw.index(">")]
    return raw.split()[0] if raw else ""


def _resolve_bracket(
    text: str,
    start: int,
    references: ReferenceMap,
    squares: dict[int, int],
    parens: dict[int, int],
) -> tuple[str, str, int] | None:
    """Resolve link markup whose ``[`` is at ``start``.

    Returns (display, destination, end index) or None when the markup is
    incomplete or the reference is unknown.
    """
    close = squares.get(start)
    if close is None:
        return None
    after = close + 1

    if after < len(text) and text[after] == "(":
        paren = parens.get(after)
        if paren is None:
            return None
        destination = _inline_destination(text[after + 1 : paren])
        if not destination:
            return None
        return text[start + 1 : close], destination, paren + 1

    if after < len(text) and text[after] == "[":
        label_end = text.find("]", after + 1)
        if label_end == -1 or label_end - after - 1 > MAX_LABEL_LENGTH:
            return None
        label = text[after + 1 : label_end]
        end = label_end + 1
    else:
        label = ""
        end = after

    if not label.strip():
        if close - start - 1 > MAX_LABEL_LENGTH:
            return None
        label = text[start + 1 : close]
    destination = references.get(label)
    if destination is None:
        return None
    return text[start + 1 : close], destination, end


def resolve_links(
    text: str, references: ReferenceMap
) -> list[str | Verbatim | StyledWord]:
    """Rewrite link markup outside code spans.

    Returns text segments interleaved with embedded-link words. Resolved
    links become ``display (destination)`` with the destination carried
    as a :class:`Verbatim` segment; links whose display starts with ``!``
    become a single link-styled word.
    """
    segments: list[str | Verbatim | StyledWord] = []
    buf: list[str] = []
    in_code = False
    i = 0
    n = len(text)
    squares = _bracket_pairs(text, "[", "]")
    parens = _bracket_pairs(text, "(", ")")

    def emit(*parts: str | StyledWord) -> None:
        nonlocal buf
        if buf:
            segments.append("".join(buf))
            buf = []
        segments.extend(parts)

    while i < n:
        ch = text[i]

        if ch == "`":
            in_code = not in_code
            buf.append(ch)
            i += 1
            continue

        if in_code:
            buf.append(ch)
            i += 1
            continue

        if ch == "\\" and i + 1 < n:
            buf.append(text[i : i + 2])
            i += 2
            continue

        if ch == "<":
            m = _AUTOLINK_RE.match(text, i)
            if m:
                emit(Verbatim(m.group(1)))
                i = m.end()
                continue

        bang = ch == "!" and i + 1 < n and text[i + 1] == "["
        if ch == "[" or bang:
            start = i + 1 if bang else i
            resolved = _resolve_bracket(text, start, references, squares, parens)
            if resolved is not None:
                display, destination, end = resolved
                stripped = display.strip()
                if bang or stripped.startswith("!"):
                    name = stripped.lstrip("!").strip() or destination
                    emit(StyledWord(text=name, style=Style.LINK, link=destination))
                elif stripped == destination:
                    emit(Verbatim(destination))
                else:
                    buf.append(f"{display} (")
                    emit(Verbatim(destination))
                    buf.append(")")
                i = end
                continue

        buf.append(ch)
        i += 1

    if buf:
        segments.append("".join(buf))
    return segments


def classify_word(word: StyledWord) -> StyledWord:
    """Mark bare URLs and display-only ``[Name]`` references as links."""
    if word.style in (Style.MONO, Style.LINK):
        return word

    stripped = word.text.strip(_URL_TRIM)
    if stripped.lower().startswith(URL_SCHEMES):
        return StyledWord(text=word.text, style=Style.LINK, link=stripped)

    if _DISPLAY_REF_RE.fullmatch(word.text):
        return StyledWord(text=word.text, style=Style.LINK)

    return word


def _url_run_end(text: str, start: int) -> int:
    """End of a bare URL beginning at ``start``, or ``start`` when none does.

    Opening punctuation before the scheme belongs to the run. Trailing
    asterisks are left for emphasis handling.
    """
    n = len(text)
    j = start
    while j < n and text[j] in _URL_OPENERS:
        j += 1
    if not text[j : j + 8].lower().startswith(URL_SCHEMES):
        return start
    end = j
    while end < n and text[end] not in WHITESPACE and text[end] != "`":
        end += 1
    while end > j and text[end - 1] == "*":
        end -= 1
    return end


class _WordScanner:
    """Splits text into words while tracking emphasis and code state."""

    def __init__(self) -> None:
        self.words: list[StyledWord] = []
        self.bold = False
        self.italic = False
        self.in_code = False
        self._buffer: list[str] = []
        self._word_style = Style.REGULAR

    def _put(self, ch: str) -> None:
        if not self._buffer:
            if self.in_code:
                self._word_style = Style.MONO
            else:
                self._word_style = _style_from_flags(self.bold, self.italic)
        self._buffer.append(ch)

    def flush(self) -> None:
        if self._buffer:
            word = StyledWord(text="".join(self._buffer), style=self._word_style)
            self.words.append(classify_word(word))
            self._buffer = []

    def add_word(self, word: StyledWord) -> None:
        self.flush()
        self.words.append(word)

    def add_verbatim(self, text: str) -> None:
        for ch in text:
            if ch in WHITESPACE:
                self.flush()
            else:
                self._put(ch)

    def _toggle(self, bold: bool, italic: bool) -> None:
        # a style change always ends the current word
        self.flush()
        self.bold ^= bold
        self.italic ^= italic

    def scan(self, text: str) -> None:
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]

            if ch == "`":
                # code spans are atomic words
                self.flush()
                self.in_code = not self.in_code
                i += 1
                continue

            if self.in_code:
                self._put(ch)
                i += 1
                continue

            if not self._buffer:
                end = _url_run_end(text, i)
                if end > i:
                    self.add_verbatim(text[i:end])
                    i = end
                    continue

            if ch == "\\" and i + 1 < n and text[i + 1] in ESCAPABLE:
                self._put(text[i + 1])
                i += 2
                continue

            if ch in "*_":
                if i + 2 < n and text[i + 1] == ch and text[i + 2] == ch and _can_toggle(text, i, 3):
                    self._toggle(bold=True, italic=True)
                    i += 3
                    continue
                if i + 1 < n and text[i + 1] == ch and _can_toggle(text, i, 2):
                    self._toggle(bold=True, italic=False)
                    i += 2
                    continue
                if _can_toggle(text, i, 1):
                    self._toggle(bold=False, italic=True)
                    i += 1
                    continue

            if ch in WHITESPACE:
                self.flush()
                while i < n and text[i] in WHITESPACE:
                    i += 1
                continue

            self._put(ch)
            i += 1


def styled_words(text: str, references: ReferenceMap | None = None) -> list[StyledWord]:
    """Convert a block's raw text into ordered styled words."""
    scanner = _WordScanner()
    for segment in resolve_links(text, references or ReferenceMap()):
        if isinstance(segment, StyledWord):
            scanner.add_word(segment)
        elif isinstance(segment, Verbatim):
            scanner.add_verbatim(segment)
        else:
            scanner.scan(segment)
    scanner.flush()
    return scanner.words
