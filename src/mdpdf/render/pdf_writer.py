"""PDF 1.4 object graph and byte-exact serialization."""

from .layout import escape_pdf_text, fmt_number
from .models import LayoutSettings, LinkAnnotation, Page

HEADER = b"%PDF-1.4\n%\xff\xff\xff\xff\n"

BASE_FONTS = (
    "Helvetica",
    "Helvetica-Bold",
    "Helvetica-Oblique",
    "Helvetica-BoldOblique",
    "Courier",
)

CATALOG_OBJ = 1
PAGES_OBJ = 2
FIRST_FONT_OBJ = 3


class PdfWriter:
    """Ordered indirect objects; object number is the 1-based position."""

    def __init__(self) -> None:
        self.objects: list[bytes] = []

    def add(self, body: str | bytes) -> int:
        if isinstance(body, str):
            body = body.encode("latin-1")
        self.objects.append(body)
        return len(self.objects)

    def set(self, number: int, body: str | bytes) -> None:
        if isinstance(body, str):
            body = body.encode("latin-1")
        self.objects[number - 1] = body

    def serialize(self, root: int = CATALOG_OBJ) -> bytes:
        out = bytearray(HEADER)
        offsets = []
        for number, body in enumerate(self.objects, start=1):
            offsets.append(len(out))
            out += f"{number} 0 obj\n".encode("latin-1")
            out += body
            out += b"\nendobj\n"

        xref_start = len(out)
        size = len(self.objects) + 1
        out += f"xref\n0 {size}\n".encode("latin-1")
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += f"{offset:010d} 00000 n \n".encode("latin-1")

        out += (
            f"trailer\n<< /Size {size} /Root {root} 0 R >>\n"
            f"startxref\n{xref_start}\n%%EOF\n"
        ).encode("latin-1")
        return bytes(out)


def font_resources() -> str:
    fonts = " ".join(
        f"/F{idx} {FIRST_FONT_OBJ + idx - 1} 0 R" for idx in range(1, len(BASE_FONTS) + 1)
    )
    return f"<< /Font << {fonts} >> >>"


def content_stream(page: Page) -> bytes:
    data = page.content()
    return b"<< /Length %d >>\nstream\n" % len(data) + data + b"endstream"


def link_annotation(annotation: LinkAnnotation) -> str:
    rect = " ".join(
        fmt_number(v)
        for v in (annotation.x1, annotation.y1, annotation.x2, annotation.y2)
    )
    return (
        f"<< /Type /Annot /Subtype /Link /Rect [{rect}] /Border [0 0 0] "
        f"/A << /S /URI /URI ({escape_pdf_text(annotation.url)}) >> >>"
    )


def build_pdf(pages: list[Page], settings: LayoutSettings | None = None) -> bytes:
    """Emit catalog, page tree, fonts, content streams, links and pages."""
    settings = settings or LayoutSettings()
    writer = PdfWriter()
    writer.add(f"<< /Type /Catalog /Pages {PAGES_OBJ} 0 R >>")
    writer.add("")  # page tree, filled in once page numbers are known
    for base_font in BASE_FONTS:
        writer.add(f"<< /Type /Font /Subtype /Type1 /BaseFont /{base_font} >>")

    content_ids = [writer.add(content_stream(page)) for page in pages]

    annotation_ids: list[list[int]] = []
    for page in pages:
        annotation_ids.append([writer.add(link_annotation(a)) for a in page.annotations])

    resources = font_resources()
    media_box = f"[0 0 {settings.page_width} {settings.page_height}]"
    page_ids = []
    for content_id, annots in zip(content_ids, annotation_ids):
        body = (
            f"<< /Type /Page /Parent {PAGES_OBJ} 0 R /MediaBox {media_box} "
            f"/Resources {resources} /Contents {content_id} 0 R"
        )
        if annots:
            body += " /Annots [" + " ".join(f"{a} 0 R" for a in annots) + "]"
        page_ids.append(writer.add(body + " >>"))

    kids = " ".join(f"{p} 0 R" for p in page_ids)
    writer.set(PAGES_OBJ, f"<< /Type /Pages /Count {len(page_ids)} /Kids [{kids}] >>")
    return writer.serialize()
