"""Alignment result types."""

from dataclasses import dataclass
from typing import Literal, Optional

OutputMode = Literal["short", "long"]
OUTPUT_MODES = ("short", "long")


@dataclass(frozen=True)
class AlignmentResult:
    """Result of scoring a query against a reference.

    Attributes:
        log_probability: Forward log-probability (natural log) of the pair
        state_path: Viterbi path over M, I, D, one letter per alignment column
            ("long" mode only)
        viterbi_log_probability: Log-probability of ``state_path`` ("long" mode only)
    """

    log_probability: float
    state_path: Optional[str] = None
    viterbi_log_probability: Optional[float] = None

    @property
    def columns(self) -> Optional[int]:
        """Number of alignment columns, if a path was decoded."""
        if self.state_path is None:
            return None
        return len(self.state_path)

    def __str__(self) -> str:
        class_name = self.__class__.__name__
        lines = [f"{class_name} (", f"   log_probability: {self.log_probability}"]
        if self.state_path is not None:
            lines.append(f"   state_path (columns: {self.columns}): {self.state_path}")
            lines.append(f"   viterbi_log_probability: {self.viterbi_log_probability}")
        lines.append(")")
        return "\n".join(lines)


__all__ = ["AlignmentResult", "OutputMode", "OUTPUT_MODES"]
