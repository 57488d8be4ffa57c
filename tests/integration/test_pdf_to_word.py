import zipfile
from pathlib import Path

import pytest

from app.processor.models import InputDocument
from app.processor.operations import PdfToWordOperation
from app.processor.pipeline import OperationContext
from app.storage.artifact_store import ArtifactStore
from app.tools.adapter import ExternalToolAdapter


@pytest.mark.integration
class TestPdfToWord:
    def test_converts_to_docx_artifact(
        self,
        office_converter: ExternalToolAdapter,
        artifact_store: ArtifactStore,
        sample_pdf_bytes: bytes,
    ) -> None:
        operation = PdfToWordOperation(office_converter, artifact_store)
        context = OperationContext(
            operation=operation.name,
            inputs=[InputDocument(data=sample_pdf_bytes, filename="essay draft.pdf")],
        )

        result = operation.execute(context)

        assert result.filename == "essay-draft.docx"
        path = artifact_store.root / str(result.artifact_ref)
        assert zipfile.is_zipfile(path)

    def test_adapter_writes_expected_file(
        self, office_converter: ExternalToolAdapter, tmp_path: Path, sample_pdf_bytes: bytes
    ) -> None:
        source = tmp_path / "notes.pdf"
        source.write_bytes(sample_pdf_bytes)

        output = office_converter.convert(source, tmp_path, "docx")

        assert output == tmp_path / "notes.docx"
        assert output.stat().st_size > 0
