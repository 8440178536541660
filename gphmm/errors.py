"""Error taxonomy for the GPHMM engine.

Every error carries the offending record (a sequence or pair identifier, or a
parameter field) and the step that failed, so a batch run can report exactly
where it stopped.
"""

from __future__ import annotations

from typing import Optional


class GPHMMError(Exception):
    """Base class for all errors raised by the package."""

    def __init__(
        self,
        message: str,
        record: Optional[str] = None,
        step: Optional[str] = None,
    ) -> None:
        self.message = message
        self.record = record
        self.step = step
        super().__init__(self._render())

    def _render(self) -> str:
        context = []
        if self.step is not None:
            context.append(f"step={self.step}")
        if self.record is not None:
            context.append(f"record={self.record}")
        if not context:
            return self.message
        return f"{self.message} [{', '.join(context)}]"

    def __str__(self) -> str:
        return self._render()

    def __reduce__(self):
        # Keeps record/step intact when raised inside a worker process.
        return (self.__class__.__new__, (self.__class__,), self.__dict__)


class InvalidSequenceError(GPHMMError, ValueError):
    """A sequence holds a character outside A, C, G, T or is malformed."""


class EmptySequenceError(InvalidSequenceError):
    """A query or reference sequence is empty."""


class InvalidParameterError(GPHMMError, ValueError):
    """A parameter table is not a valid probability distribution."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message, record=field, step="parameters")


class MissingRecordError(GPHMMError, LookupError):
    """An identifier referenced by a pairs table is absent from the sequences."""


class NumericInstabilityError(GPHMMError, ArithmeticError):
    """A non-finite value surfaced during alignment or training."""

    def __init__(
        self,
        message: str,
        record: Optional[str] = None,
        step: Optional[str] = None,
        field: Optional[str] = None,
        iteration: Optional[int] = None,
    ) -> None:
        self.field = field
        self.iteration = iteration
        if iteration is not None:
            message = f"{message} (iteration {iteration})"
        super().__init__(message, record=record if record is not None else field, step=step)


__all__ = [
    "GPHMMError",
    "InvalidSequenceError",
    "EmptySequenceError",
    "InvalidParameterError",
    "MissingRecordError",
    "NumericInstabilityError",
]
