from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

GAP = "-"
UNKNOWN = "N"

WITHIN_SPECIES = "WithinSpecies"
UNKNOWN_ANCESTOR = "Unknown"

# base character -> occurrences, gaps and N already removed
BaseCount = Dict[str, int]


@dataclass(frozen=True)
class Position:
    """One query interval from the positions file.

    Coordinates are 0-based half-open.

    Attributes
    ----------
    chrom:
        Sequence name as present in the reference genome.
    start, end:
        Interval offsets within ``chrom``. Only ``start`` is looked up.
    original_order:
        Index of the row among the valid rows of the input file. Used only to
        restore output order after locality sorting.
    """

    chrom: str
    start: int
    end: int
    original_order: int


@dataclass(frozen=True)
class AlignedBase:
    """A base reported by the alignment store, with its genome-wide array index."""

    abs_pos: int
    base: str


@dataclass(frozen=True)
class ConsensusResult:
    allele: str
    evidence: str
    used_ancestor: str


@dataclass(frozen=True)
class ResultRow:
    """Final per-position annotation record."""

    position: Position
    ref_base: str
    used_ancestor: str
    allele: str
    evidence: str

    def to_fields(self) -> List[str]:
        return [
            self.position.chrom,
            str(self.position.start),
            str(self.position.end),
            self.ref_base,
            self.used_ancestor,
            self.allele,
            self.evidence,
        ]
