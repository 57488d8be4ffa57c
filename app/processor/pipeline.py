from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from app.processor.exceptions import RequestError
from app.processor.models import InputDocument, ResultDescriptor


class RequestState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.RECEIVED: frozenset({RequestState.VALIDATED, RequestState.FAILED}),
    RequestState.VALIDATED: frozenset({RequestState.EXECUTING, RequestState.FAILED}),
    RequestState.EXECUTING: frozenset({RequestState.SUCCEEDED, RequestState.FAILED}),
    RequestState.SUCCEEDED: frozenset(),
    RequestState.FAILED: frozenset(),
}


@dataclass(slots=True)
class OperationContext:
    operation: str
    inputs: list[InputDocument]
    params: dict[str, str] = field(default_factory=dict)
    state: RequestState = RequestState.RECEIVED
    descriptor: ResultDescriptor | None = None
    error_message: str = ""

    def advance(self, state: RequestState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state

    def param(self, name: str) -> str | None:
        """Stripped parameter value, or None when absent or blank."""
        value = self.params.get(name)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def input_size(self) -> int:
        return sum(doc.size for doc in self.inputs)


class Operation(ABC):
    """One client-facing operation: validate inputs, then execute."""

    name: ClassVar[str]
    failure_message: ClassVar[str] = "Operation failed"
    missing_input_message: ClassVar[str] = "No file uploaded"
    min_inputs: ClassVar[int] = 1
    max_inputs: ClassVar[int | None] = 1
    required_params: ClassVar[dict[str, str]] = {}

    def validate(self, context: OperationContext) -> None:
        """Reject the request before any component runs.

        Raises:
            RequestError: on a wrong number of files or a missing parameter.
        """
        count = len(context.inputs)
        if count < self.min_inputs:
            raise RequestError(self.missing_input_message)
        if self.max_inputs is not None and count > self.max_inputs:
            raise RequestError(f"{self.name} accepts at most {self.max_inputs} file(s)")
        for param, message in self.required_params.items():
            if context.param(param) is None:
                raise RequestError(message)

    @abstractmethod
    def execute(self, context: OperationContext) -> ResultDescriptor:
        raise NotImplementedError
