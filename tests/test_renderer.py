"""End-to-end tests for Markdown to PDF rendering."""

import re
import time

import fitz  # PyMuPDF
import pytest
from pydantic import ValidationError

from mdpdf.render import LayoutSettings, SettingsError, render_markdown

_STREAM_RE = re.compile(rb"<< /Length (\d+) >>\nstream\n")
_TM_RE = re.compile(rb"1 0 0 1 (-?[\d.]+) (-?[\d.]+) Tm")


def _streams(pdf: bytes) -> list[bytes]:
    """Decoded content streams in object order."""
    streams = []
    for m in _STREAM_RE.finditer(pdf):
        length = int(m.group(1))
        streams.append(pdf[m.end() : m.end() + length])
    return streams


def _page_count(pdf: bytes) -> int:
    return int(re.search(rb"/Type /Pages /Count (\d+)", pdf).group(1))


def _open(pdf: bytes) -> fitz.Document:
    return fitz.open(stream=pdf, filetype="pdf")


class TestDocumentStructure:
    """Tests for whole-document invariants."""

    def test_header_and_eof(self):
        """Test the output is framed as a PDF 1.4 file."""
        pdf = render_markdown(b"# Title\n")
        assert pdf.startswith(b"%PDF-1.4\n")
        assert pdf.endswith(b"%%EOF\n")

    def test_page_count_matches_streams_and_kids(self):
        """Test /Count equals content streams and page objects."""
        pdf = render_markdown(b"word " * 3000)
        count = _page_count(pdf)
        assert count >= 2
        assert len(_streams(pdf)) == count
        assert pdf.count(b"/Type /Page ") == count
        kids = re.search(rb"/Kids \[([^\]]*)\]", pdf).group(1)
        assert len(kids.split(b" R")) - 1 == count

    def test_xref_offsets_exact(self):
        """Test every xref entry points at its object in a rich document."""
        pdf = render_markdown(
            b"# Doc\n\n[a]: https://a.io\n\nSee [a] and https://b.io.\n\n"
            b"```sh\necho hi\n```\n\n| x | y |\n|---|--:|\n| 1 | 2 |\n\n> quote\n\n---\n"
        )
        start = int(re.search(rb"startxref\n(\d+)\n%%EOF\n$", pdf).group(1))
        lines = pdf[start:].split(b"\n")
        size = int(lines[1].split()[1])
        for number, entry in enumerate(lines[3 : 2 + size], start=1):
            offset = int(entry[:10])
            assert pdf[offset:].startswith(f"{number} 0 obj\n".encode())

    def test_deterministic(self):
        """Test the same input renders to identical bytes."""
        source = b"# A\n\n- one\n- two\n\nhttps://example.com\n"
        assert render_markdown(source) == render_markdown(source)

    def test_text_stays_above_bottom_margin(self):
        """Test no baseline is placed below the bottom margin."""
        pdf = render_markdown(b"word " * 3000 + b"\n\n```\n" + b"code\n" * 200 + b"```\n")
        baselines = [float(m.group(2)) for m in _TM_RE.finditer(pdf)]
        assert baselines
        assert min(baselines) >= 54

    def test_opens_in_pymupdf(self):
        """Test a PDF reader accepts the output and extracts its text."""
        pdf = render_markdown(b"# Title\n\nHello **world**.\n\n" + b"more text " * 2000)
        doc = _open(pdf)
        assert doc.page_count == _page_count(pdf)
        text = doc[0].get_text()
        assert "Title" in text
        assert "Hello world" in text


class TestEmptyInput:
    """Tests for documents with nothing to draw."""

    @pytest.mark.parametrize(
        "source", [b"", b"\n\n   \n", b"[a]: https://a.io\n"]
    )
    def test_placeholder_page(self, source):
        """Test empty documents get one page with a placeholder line."""
        pdf = render_markdown(source)
        assert _page_count(pdf) == 1
        (stream,) = _streams(pdf)
        assert b"(\\(empty document\\)) Tj" in stream


class TestBlockRendering:
    """Tests for operators produced per block kind."""

    def test_heading_then_bold_paragraph(self):
        """Test heading size and inline bold switch."""
        (stream,) = _streams(render_markdown(b"# Title\n\nHello **world**.\n"))
        assert stream.index(b"/F1 24 Tf") < stream.index(b"/F1 12 Tf")
        assert b"BT 1 0 0 1 54 738 Tm\n/F1 24 Tf\n(Title) Tj\nET\n" in stream
        assert b"BT 1 0 0 1 54 702 Tm\n/F1 12 Tf\n(Hello) Tj\n" in stream
        assert b"/F2 12 Tf\n( ) Tj\n(world) Tj\n/F1 12 Tf\n( ) Tj\n(.) Tj\nET\n" in stream

    @pytest.mark.parametrize("source,size", [(b"## Two", 18), (b"### Three", 14), (b"#### Four", 14)])
    def test_heading_sizes(self, source, size):
        """Test deeper headings use smaller sizes."""
        (stream,) = _streams(render_markdown(source))
        assert f"/F1 {size} Tf".encode() in stream

    def test_fenced_code_is_highlighted(self):
        """Test code lines use Courier and token colors."""
        (stream,) = _streams(render_markdown(b'```json\n{"a": 1}\n```\n'))
        # the gap before code is absorbed by the top of a fresh page
        assert b"BT /F5 11 Tf 1 0 0 1 54 738 Tm\n" in stream
        assert b'0.5 0 0.5 rg\n("a") Tj\n' in stream
        assert b"0.65 0.25 0 rg\n(1) Tj\n" in stream

    def test_long_code_line_is_hard_wrapped(self):
        """Test code lines wrap at the character budget."""
        (stream,) = _streams(render_markdown(b"```\n" + b"x" * 200 + b"\n```\n"))
        assert stream.count(b"/F5 11 Tf") == 3
        assert b"(" + b"x" * 84 + b") Tj" in stream
        assert b"(" + b"x" * 32 + b") Tj" in stream

    def test_indented_code_is_plain(self):
        """Test indented code has no color operators."""
        (stream,) = _streams(render_markdown(b"    if (x) { return 1; }\n"))
        assert b"/F5 11 Tf" in stream
        assert b" rg\n" not in stream

    def test_table_lines(self):
        """Test tables render as monospaced lines."""
        (stream,) = _streams(render_markdown(b"| a | bb |\n|---|---|\n| 1 | 2 |\n"))
        assert b"BT /F5 10 Tf 1 0 0 1 54 738 Tm (| a | bb |) Tj ET\n" in stream
        assert b"(|---|----|) Tj" in stream
        assert b"(| 1 | 2  |) Tj" in stream

    def test_blockquote_bar_and_indent(self):
        """Test quoted text is indented with a bar beside it."""
        (stream,) = _streams(render_markdown(b"> quoted\n"))
        assert b"q 0.6 G 2 w 61 750 m 61 734 l S Q\n" in stream
        assert b"BT 1 0 0 1 68 738 Tm" in stream

    def test_nested_blockquote_draws_two_bars(self):
        """Test each nesting level gets its own bar."""
        (stream,) = _streams(render_markdown(b">> deep\n"))
        assert stream.count(b"0.6 G") == 2
        assert b"BT 1 0 0 1 82 738 Tm" in stream

    def test_thematic_break(self):
        """Test a rule spans the text width."""
        (stream,) = _streams(render_markdown(b"---\n"))
        assert b"q 1 w 54 738 m 558 738 l S Q\n" in stream

    def test_latin1_bytes_pass_through(self):
        """Test non-ASCII input bytes reach the stream unchanged."""
        (stream,) = _streams(render_markdown(b"caf\xe9\n"))
        assert b"(caf\xe9) Tj" in stream

    def test_parentheses_are_escaped(self):
        """Test string delimiters are escaped in text operators."""
        (stream,) = _streams(render_markdown(b"f(x)\n"))
        assert b"(f\\(x\\)) Tj" in stream


class TestLists:
    """Tests for list layout."""

    def test_tight_list_spacing(self):
        """Test tight items sit one line apart."""
        (stream,) = _streams(render_markdown(b"- a\n- b\n"))
        assert b"BT 1 0 0 1 54 738 Tm\n/F1 12 Tf\n(-) Tj\n( ) Tj\n(a) Tj\n" in stream
        assert b"BT 1 0 0 1 54 722 Tm" in stream

    def test_loose_list_spacing(self):
        """Test a blank line adds the loose gap before the next item."""
        (stream,) = _streams(render_markdown(b"- a\n\n- b\n"))
        assert b"BT 1 0 0 1 54 716 Tm" in stream

    def test_ordered_marker(self):
        """Test ordered items keep their marker text."""
        (stream,) = _streams(render_markdown(b"3. third\n"))
        assert b"(3.) Tj" in stream

    def test_nested_item_is_indented(self):
        """Test each level shifts the marker right."""
        (stream,) = _streams(render_markdown(b"- a\n  - b\n"))
        assert b"BT 1 0 0 1 72 722 Tm" in stream

    def test_continuation_aligns_with_item_text(self):
        """Test continuation lines start at the item's text position."""
        (stream,) = _streams(render_markdown(b"- item\n  more\n"))
        assert b"BT 1 0 0 1 72 722 Tm\n/F1 12 Tf\n(more) Tj\n" in stream


class TestLinks:
    """Tests for link rendering and annotations."""

    def test_reference_defined_before_use(self):
        """Test a resolved reference gets a clickable annotation."""
        pdf = render_markdown(b"[docs]: https://example.com\n\nSee [docs].\n")
        assert b"/URI (https://example.com)" in pdf
        assert b"/Annots [" in pdf
        links = _open(pdf)[0].get_links()
        assert [link["uri"] for link in links] == ["https://example.com"]

    def test_reference_defined_after_use_is_not_resolved(self):
        """Test references only apply to later blocks."""
        pdf = render_markdown(b"See [docs].\n\n[docs]: https://example.com\n")
        assert b"/Annots" not in pdf
        (stream,) = _streams(pdf)
        assert b"([docs].) Tj" in stream

    def test_bare_url_is_blue(self):
        """Test bare URLs are colored and annotated."""
        pdf = render_markdown(b"visit https://example.com now\n")
        (stream,) = _streams(pdf)
        assert b"0 0 0.8 rg\n(https://example.com) Tj\n0 g\n" in stream
        assert b"/URI (https://example.com)" in pdf

    def test_annotation_on_page_where_link_is_drawn(self):
        """Test links on a later page annotate that page only."""
        pdf = render_markdown(b"word " * 1000 + b"\n\nhttps://example.com\n")
        doc = _open(pdf)
        assert doc.page_count == 2
        assert doc[0].get_links() == []
        assert [link["uri"] for link in doc[1].get_links()] == ["https://example.com"]


class TestSettings:
    """Tests for layout settings."""

    def test_custom_page_size(self):
        """Test the media box follows the settings."""
        pdf = render_markdown(b"# T\n", LayoutSettings(page_width=595, page_height=842))
        assert b"/MediaBox [0 0 595 842]" in pdf
        (stream,) = _streams(pdf)
        assert b"BT 1 0 0 1 54 788 Tm" in stream

    def test_invalid_settings_rejected(self):
        """Test non-positive page sizes fail validation."""
        with pytest.raises(ValidationError):
            LayoutSettings(page_width=0)

    def test_from_env_overrides(self, monkeypatch):
        """Test page geometry is read from the environment."""
        monkeypatch.setenv("MDPDF_PAGE_WIDTH", "595")
        monkeypatch.setenv("MDPDF_MARGIN", "72")
        settings = LayoutSettings.from_env()
        assert settings.page_width == 595
        assert settings.page_height == 792
        assert settings.margin_left == settings.margin_bottom == 72

    @pytest.mark.parametrize("value", ["abc", "-5", "0"])
    def test_from_env_invalid(self, monkeypatch, value):
        """Test bad values raise SettingsError."""
        monkeypatch.setenv("MDPDF_PAGE_HEIGHT", value)
        with pytest.raises(SettingsError):
            LayoutSettings.from_env()

    @pytest.mark.parametrize(
        "fields",
        [
            {"page_height": 100, "margin_top": 50, "margin_bottom": 50},
            {"page_width": 100, "margin_left": 60, "margin_right": 60},
        ],
    )
    def test_margins_must_leave_printable_area(self, fields):
        """Test margins that cover the whole page fail validation."""
        with pytest.raises(ValidationError, match="margins leave no room"):
            LayoutSettings(**fields)

    def test_from_env_margin_larger_than_page(self, monkeypatch):
        """Test an oversized margin from the environment raises SettingsError."""
        monkeypatch.setenv("MDPDF_MARGIN", "400")
        with pytest.raises(SettingsError, match="margins leave no room"):
            LayoutSettings.from_env()


class TestLargeInput:
    """Tests for inputs that stress the inline scanner."""

    def test_unmatched_brackets_render_quickly(self):
        """Test a long run of unmatched brackets renders in linear time."""
        start = time.perf_counter()
        pdf = render_markdown(b"[" * 50_000 + b"\n")
        assert time.perf_counter() - start < 5.0
        assert pdf.endswith(b"%%EOF\n")

    def test_unmatched_brackets_between_words(self):
        """Test unmatched brackets mixed with words and a link still resolve."""
        source = b"[a " * 20_000 + b"[x](https://example.com)\n"
        start = time.perf_counter()
        pdf = render_markdown(source)
        assert time.perf_counter() - start < 10.0
        assert b"/URI (https://example.com)" in pdf
