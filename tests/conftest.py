import io
from collections.abc import Callable

import pymupdf
import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


def _build_pdf(page_count: int, title: str | None = None, author: str | None = None) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    if title is not None:
        c.setTitle(title)
    if author is not None:
        c.setAuthor(author)
    for number in range(1, page_count + 1):
        c.drawString(72, 720, f"Page {number}")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def make_pdf() -> Callable[..., bytes]:
    """Factory for PDFs whose page N reads "Page N"."""
    return _build_pdf


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF."""
    return _build_pdf(1)


@pytest.fixture()
def ten_page_pdf_bytes() -> bytes:
    return _build_pdf(10)


@pytest.fixture()
def titled_pdf_bytes() -> bytes:
    """Two-page PDF with title and author already set."""
    return _build_pdf(2, title="Original Title", author="Original Author")


@pytest.fixture()
def encrypted_pdf_bytes() -> bytes:
    """Password-protected single-page PDF."""
    with pymupdf.open(stream=_build_pdf(1), filetype="pdf") as doc:
        return doc.tobytes(
            encryption=pymupdf.PDF_ENCRYPT_AES_256,
            owner_pw="owner-secret",
            user_pw="user-secret",
        )


@pytest.fixture()
def truncated_pdf_bytes() -> bytes:
    """Ten-page PDF cut off halfway, as left by an interrupted upload."""
    data = _build_pdf(10)
    return data[: len(data) // 2]


@pytest.fixture()
def pageless_pdf_bytes() -> bytes:
    """Syntactically PDF-like body with no page tree."""
    return b"%PDF-1.7\n1 0 obj\n<<>>\nendobj\n"


def _solid_pixmap(width: int, height: int) -> pymupdf.Pixmap:
    pixmap = pymupdf.Pixmap(pymupdf.csRGB, pymupdf.IRect(0, 0, width, height), False)
    pixmap.clear_with(200)
    return pixmap


@pytest.fixture()
def png_bytes() -> bytes:
    """40x20 pixel PNG."""
    return _solid_pixmap(40, 20).tobytes("png")


@pytest.fixture()
def jpeg_bytes() -> bytes:
    """30x50 pixel JPEG."""
    return _solid_pixmap(30, 50).tobytes("jpeg")


@pytest.fixture()
def page_labels() -> Callable[[bytes], list[str]]:
    """Read back the "Page N" text of every page, in order."""

    def _read(pdf_bytes: bytes) -> list[str]:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
            return [page.get_text().strip() for page in doc]

    return _read
