"""Error taxonomy of the engine.

Missing history is not an error: scoring returns documented neutral values
instead. Only store failures and broken score invariants are raised.
"""

from __future__ import annotations


class NeurocoreError(Exception):
    pass


class StoreUnavailableError(NeurocoreError):
    """The persistence collaborator failed after all retry attempts."""

    def __init__(self, operation: str, attempts: int, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed after {attempts} attempt(s){detail}")


class InvariantViolation(NeurocoreError):
    """A computed score left its declared range before the clamp step."""

    def __init__(self, name: str, value: float, low: float, high: float) -> None:
        self.name = name
        self.value = value
        self.low = low
        self.high = high
        super().__init__(f"{name}={value!r} outside [{low}, {high}]")
