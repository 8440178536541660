"""Functions for working with FASTA files."""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import skbio.io
from skbio import DNA, Sequence

from gphmm.errors import InvalidSequenceError
from gphmm.types import DNASequence


def dna_sequence_from_skbio(record: DNA) -> DNASequence:
    """Convert a scikit-bio record to a DNASequence."""
    metadata = getattr(record, "metadata", {}) or {}
    return DNASequence(
        identifier=metadata.get("id") or "",
        residues=str(record),
        description=metadata.get("description") or None,
    )


def read_dna_fasta(
    file_path: Union[str, Path], ids: Optional[List[str]] = None
) -> List[DNASequence]:
    """Read a FASTA file and return a list of DNASequence.

    Records are parsed as generic sequences and then converted to DNA one at a
    time, so a character scikit-bio does not accept for DNA raises
    InvalidSequenceError naming the record. IUPAC ambiguity codes such as N pass
    here and are rejected when a pair is validated.
    """
    sequences: List[DNASequence] = []
    for record in skbio.io.read(str(file_path), format="fasta", constructor=Sequence):
        identifier = record.metadata.get("id", "")
        if ids and identifier not in ids:
            continue
        try:
            dna = DNA(str(record), metadata=dict(record.metadata), lowercase=True)
        except ValueError as exc:
            raise InvalidSequenceError(
                f"FASTA record is not a DNA sequence: {exc}",
                record=identifier,
                step="input",
            ) from exc
        sequences.append(dna_sequence_from_skbio(dna))
    return sequences


def read_dna_fasta_index(file_path: Union[str, Path]) -> Dict[str, DNASequence]:
    """Read a FASTA file into an identifier -> DNASequence mapping."""
    return {seq.identifier: seq for seq in read_dna_fasta(file_path)}


def write_dna_fasta(sequences: Iterable[DNASequence], file_path: Union[str, Path]) -> Path:
    """Write DNASequence records to a FASTA file."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    records = (
        DNA(
            seq.residues,
            metadata={"id": seq.identifier, "description": seq.description or ""},
        )
        for seq in sequences
    )
    skbio.io.write(records, format="fasta", into=str(file_path))
    return file_path


__all__ = ["read_dna_fasta", "read_dna_fasta_index", "write_dna_fasta"]
