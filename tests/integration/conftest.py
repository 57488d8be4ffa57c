import io
from pathlib import Path

import pymupdf
import pytest

from app.config.settings import Settings
from app.storage.artifact_store import ArtifactStore
from app.tools.adapter import ExternalToolAdapter
from app.tools.subprocess_runner import SubprocessRunner


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings()


@pytest.fixture(scope="session")
def tool_adapter(test_settings: Settings) -> ExternalToolAdapter:
    return ExternalToolAdapter(
        runner=SubprocessRunner(),
        compression_binaries=test_settings.compression_binaries,
        conversion_binaries=test_settings.conversion_binaries,
        timeout_seconds=test_settings.tool_timeout_seconds,
    )


@pytest.fixture(scope="session")
def ghostscript(tool_adapter: ExternalToolAdapter) -> ExternalToolAdapter:
    if tool_adapter.compression_binary() is None:
        pytest.skip("Ghostscript not installed")
    return tool_adapter


@pytest.fixture(scope="session")
def office_converter(tool_adapter: ExternalToolAdapter) -> ExternalToolAdapter:
    if tool_adapter.conversion_binary() is None:
        pytest.skip("LibreOffice not installed")
    return tool_adapter


@pytest.fixture
def artifact_store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "artifacts")


@pytest.fixture
def image_heavy_pdf_bytes() -> bytes:
    """Three pages, each covered by a large high-entropy raster image."""
    block = 16
    buf = io.BytesIO()
    with pymupdf.open() as doc:
        for seed in range(3):
            pixmap = pymupdf.Pixmap(pymupdf.csRGB, pymupdf.IRect(0, 0, 1200, 1600), False)
            for y in range(0, 1600, block):
                for x in range(0, 1200, block):
                    shade = (x * 7 + y * 13 + seed * 31) % 256
                    color = (shade, 255 - shade, shade // 2)
                    pixmap.set_rect(pymupdf.IRect(x, y, x + block, y + block), color)
            page = doc.new_page(width=612, height=792)
            page.insert_image(page.rect, pixmap=pixmap)
        doc.save(buf)
    return buf.getvalue()
