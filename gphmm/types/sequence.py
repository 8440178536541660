"""Sequence types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from gphmm.errors import EmptySequenceError, InvalidSequenceError
from gphmm.types.parameters import DEFAULT_QV, MAX_QV, MIN_QV, NUCLEOTIDES

ALLOWED_BASES = frozenset(NUCLEOTIDES)


def _check_residues(residues: str, record: str, step: Optional[str]) -> None:
    if not residues:
        raise EmptySequenceError("Sequence is empty.", record=record, step=step)
    invalid = sorted({ch for ch in residues if ch not in ALLOWED_BASES})
    if invalid:
        raise InvalidSequenceError(
            f"Invalid DNA residues: {invalid}; allowed: {sorted(ALLOWED_BASES)}",
            record=record,
            step=step,
        )


@dataclass(frozen=True)
class DNASequence:
    """Named DNA sequence over A, C, G, T."""

    identifier: str
    residues: str
    description: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "residues", str(self.residues).upper())

    def __len__(self) -> int:
        return len(self.residues)

    def __str__(self) -> str:
        return self.residues

    def validate(self, step: Optional[str] = None) -> None:
        """Raise if the sequence is empty or holds a non-ACGT character."""
        _check_residues(self.residues, self.identifier, step)


@dataclass(frozen=True, eq=False)
class SequencePair:
    """A query read, the reference it is scored against and per-base qualities.

    ``qv`` may be a scalar (applied to every query base) or one value per query
    base. It is stored as a read-only float array.
    """

    query: str
    reference: str
    qv: Union[float, Sequence[float], np.ndarray] = DEFAULT_QV
    query_id: Optional[str] = None
    reference_id: Optional[str] = None

    def __post_init__(self) -> None:
        query = str(self.query).upper()
        reference = str(self.reference).upper()
        qv = np.array(self.qv, dtype=float)
        if qv.ndim == 0:
            qv = np.full(len(query), float(qv))
        qv.setflags(write=False)
        object.__setattr__(self, "query", query)
        object.__setattr__(self, "reference", reference)
        object.__setattr__(self, "qv", qv)

    @classmethod
    def from_records(
        cls,
        query: DNASequence,
        reference: DNASequence,
        qv: Union[float, Sequence[float], np.ndarray] = DEFAULT_QV,
    ) -> "SequencePair":
        return cls(
            query=query.residues,
            reference=reference.residues,
            qv=qv,
            query_id=query.identifier,
            reference_id=reference.identifier,
        )

    @property
    def record(self) -> str:
        """Identifier used in error messages."""
        return f"{self.query_id or 'query'}/{self.reference_id or 'reference'}"

    def validate(self, step: Optional[str] = None) -> None:
        """Check both sequences and the quality values; raise on the first fault."""
        _check_residues(self.query, self.query_id or self.record, step)
        _check_residues(self.reference, self.reference_id or self.record, step)

        if self.qv.ndim != 1 or self.qv.shape[0] != len(self.query):
            raise InvalidSequenceError(
                f"qv has {self.qv.size} values for a query of length {len(self.query)}",
                record=self.record,
                step=step,
            )
        if not np.all(np.isfinite(self.qv)):
            raise InvalidSequenceError("qv holds non-finite values", record=self.record, step=step)
        if np.any(self.qv < MIN_QV) or np.any(self.qv > MAX_QV):
            raise InvalidSequenceError(
                f"qv outside the supported range [{MIN_QV:g}, {MAX_QV:g}]",
                record=self.record,
                step=step,
            )


__all__ = ["DNASequence", "SequencePair", "ALLOWED_BASES"]
