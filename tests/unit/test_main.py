import json
from pathlib import Path
from unittest.mock import patch

import pytest

from app.main import _parse_params, _read_input, main
from app.tools.base import CommandResult, CommandRunner
from app.tools.exceptions import ToolUnavailable


class NoToolsRunner(CommandRunner):
    def run(self, args: list[str], timeout: float) -> CommandResult:
        raise ToolUnavailable(args[0])


@pytest.fixture()
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    artifact_dir = tmp_path / "artifacts"
    monkeypatch.setenv("ARTIFACT_DIR", str(artifact_dir))
    return artifact_dir


class TestParseParams:
    def test_splits_on_first_equals(self) -> None:
        assert _parse_params(["pages=1-3", "rotations={\"1\": 90}", "title=a=b"]) == {
            "pages": "1-3",
            "rotations": '{"1": 90}',
            "title": "a=b",
        }

    def test_missing_equals_exits(self) -> None:
        with pytest.raises(SystemExit):
            _parse_params(["pages"])


class TestReadInput:
    def test_guesses_media_type(self, tmp_path: Path) -> None:
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG")

        doc = _read_input(path)

        assert doc.media_type == "image/png"
        assert doc.filename == "photo.png"
        assert doc.size == 4


class TestMain:
    def test_runs_operation_and_prints_payload(
        self,
        tmp_path: Path,
        isolated_env: Path,
        ten_page_pdf_bytes: bytes,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        source = tmp_path / "notes.pdf"
        source.write_bytes(ten_page_pdf_bytes)

        with patch("app.main.Log"), patch(
            "app.processor.dispatcher.SubprocessRunner", NoToolsRunner
        ):
            code = main(["split", str(source), "--param", "pages=1-2"])

        payload = json.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["pageCount"] == 2
        name = str(payload["url"]).removeprefix("/download/")
        assert (isolated_env / name).is_file()

    def test_failure_returns_nonzero(
        self,
        tmp_path: Path,
        isolated_env: Path,
        sample_pdf_bytes: bytes,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        source = tmp_path / "single.pdf"
        source.write_bytes(sample_pdf_bytes)

        with patch("app.main.Log"), patch(
            "app.processor.dispatcher.SubprocessRunner", NoToolsRunner
        ):
            code = main(["merge", str(source)])

        assert code == 1
        assert json.loads(capsys.readouterr().out) == {"error": "At least 2 files required"}
