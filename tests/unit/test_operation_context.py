import pytest

from app.processor.exceptions import RequestError
from app.processor.models import InputDocument, ResultDescriptor
from app.processor.operations import RenameOperation, RotateOperation, _parse_int
from app.processor.pipeline import Operation, OperationContext, RequestState


def _context(params: dict[str, str] | None = None, count: int = 1) -> OperationContext:
    inputs = [InputDocument(data=b"x" * 10) for _ in range(count)]
    return OperationContext(operation="test", inputs=inputs, params=params or {})


class _Single(Operation):
    name = "single"
    required_params = {"pages": "Page range required"}

    def execute(self, context: OperationContext) -> ResultDescriptor:
        return ResultDescriptor(filename="out.pdf", size=0)


class TestStateMachine:
    def test_happy_path(self) -> None:
        context = _context()
        context.advance(RequestState.VALIDATED)
        context.advance(RequestState.EXECUTING)
        context.advance(RequestState.SUCCEEDED)
        assert context.state == RequestState.SUCCEEDED

    @pytest.mark.parametrize(
        "path",
        [
            [RequestState.FAILED],
            [RequestState.VALIDATED, RequestState.FAILED],
            [RequestState.VALIDATED, RequestState.EXECUTING, RequestState.FAILED],
        ],
    )
    def test_failure_reachable_from_any_open_state(self, path: list[RequestState]) -> None:
        context = _context()
        for state in path:
            context.advance(state)
        assert context.state == RequestState.FAILED

    def test_cannot_skip_validation(self) -> None:
        with pytest.raises(RuntimeError, match="Illegal transition"):
            _context().advance(RequestState.EXECUTING)

    @pytest.mark.parametrize("terminal", [RequestState.SUCCEEDED, RequestState.FAILED])
    def test_terminal_states_are_final(self, terminal: RequestState) -> None:
        context = _context()
        context.state = terminal
        with pytest.raises(RuntimeError):
            context.advance(RequestState.FAILED)


class TestParam:
    def test_value_is_stripped(self) -> None:
        assert _context({"pages": "  1-3 "}).param("pages") == "1-3"

    @pytest.mark.parametrize("params", [{}, {"pages": ""}, {"pages": "   "}])
    def test_absent_or_blank_is_none(self, params: dict[str, str]) -> None:
        assert _context(params).param("pages") is None

    def test_input_size_sums_all_files(self) -> None:
        assert _context(count=3).input_size == 30


class TestValidate:
    def test_missing_input(self) -> None:
        with pytest.raises(RequestError, match="No file uploaded"):
            _Single().validate(_context({"pages": "1"}, count=0))

    def test_too_many_inputs(self) -> None:
        with pytest.raises(RequestError, match="at most 1"):
            _Single().validate(_context({"pages": "1"}, count=2))

    def test_missing_required_param(self) -> None:
        with pytest.raises(RequestError, match="Page range required"):
            _Single().validate(_context())

    def test_valid_request_passes(self) -> None:
        _Single().validate(_context({"pages": "1"}))


class TestParseInt:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("90", 90), (" -90 ", -90), (180, 180), (90.0, 90), ("1e3", 1000)],
    )
    def test_integral_values(self, raw: object, expected: int) -> None:
        assert _parse_int(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "45.5", True, None])
    def test_rejected_values(self, raw: object) -> None:
        assert _parse_int(raw) is None


class TestParseRotations:
    def test_drops_non_integer_entries(self) -> None:
        parsed = RotateOperation.parse_rotations('{"1": 90, "2": "x", "a": 90, "3": 180.0}')
        assert parsed == {1: 90, 3: 180}

    def test_empty_object(self) -> None:
        assert RotateOperation.parse_rotations("{}") == {}


class TestSubmissionName:
    def test_strips_unsafe_characters(self) -> None:
        name = RenameOperation.submission_name("CS/042", "Data Structures", "Lab#1", "2024-03-01")
        assert name == "CS042_DataStructures_Lab1_2024-03-01.pdf"
