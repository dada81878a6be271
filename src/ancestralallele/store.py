"""Read-only alignment store backed by a MAF file.

The annotation core only needs four queries from an alignment: open a genome
by name, look a sequence up by name, read a base at a genome-wide position and
fetch the alignment column at a reference position. This module provides them
for MAF files as exported from a HAL/Cactus alignment with ``hal2maf``.

Coordinates
-----------
Rows name their source as ``genome.sequence``. Within a genome, sequences are
laid end to end in order of first appearance in the file, so every base has an
absolute (genome-wide) array index ``sequence.start_offset + pos``. Rows on the
reverse strand are mapped back to forward-strand positions.

Duplications
------------
The first block in which a reference position is aligned is treated as its
primary (orthologous) column, and the first row of each genome inside that
block as the orthologous copy. Further rows of the same genome and further
blocks covering the same position are paralogous copies and are only reported
when duplications are requested.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import pysam

from .models import GAP, UNKNOWN, AlignedBase
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


class AlignmentStoreError(RuntimeError):
    """Raised when the alignment cannot be read or a query cannot be answered."""


@dataclass(frozen=True)
class MafSequence:
    genome: str
    name: str
    start_offset: int
    length: int


@dataclass(eq=False)
class MafRow:
    """One ``s`` line of a MAF block."""

    seq: MafSequence
    start: int  # on the row's own strand
    size: int
    strand: str
    text: str
    cols: np.ndarray = field(repr=False)  # column index of every non-gap character

    @property
    def forward_start(self) -> int:
        if self.strand == "+":
            return self.start
        return self.seq.length - self.start - self.size

    @property
    def forward_end(self) -> int:
        return self.forward_start + self.size

    def _to_forward(self, strand_pos: int) -> int:
        if self.strand == "+":
            return strand_pos
        return self.seq.length - 1 - strand_pos

    def column_of(self, pos: int) -> Optional[int]:
        """Alignment column holding forward-strand position ``pos``, if covered."""
        k = self._to_forward(pos) - self.start
        if 0 <= k < self.size:
            return int(self.cols[k])
        return None

    def position_at(self, col: int) -> Optional[int]:
        """Forward-strand position aligned at column ``col``; None for a gap."""
        if self.text[col] == GAP:
            return None
        k = int(np.searchsorted(self.cols, col))
        return self._to_forward(self.start + k)


def _make_row(seq: MafSequence, start: int, size: int, strand: str, text: str) -> MafRow:
    raw = np.frombuffer(text.encode("ascii"), dtype=np.uint8)
    cols = np.flatnonzero(raw != ord(GAP))
    if len(cols) != size:
        raise AlignmentStoreError(
            f"MAF row for {seq.genome}.{seq.name} declares size {size} "
            f"but has {len(cols)} aligned bases"
        )
    return MafRow(seq=seq, start=start, size=size, strand=strand, text=text, cols=cols)


@dataclass
class _SeqIndex:
    """Per-sequence lookup of the rows covering a position."""

    starts: List[int] = field(default_factory=list)
    entries: List[Tuple[int, int, int]] = field(default_factory=list)  # (end, block, row)
    max_len: int = 0


class MafGenome:
    """A genome within a :class:`MafAlignment`."""

    def __init__(self, alignment: "MafAlignment", name: str) -> None:
        self._alignment = alignment
        self.name = name
        self._sequences: Dict[str, MafSequence] = {}
        self._offsets: List[int] = []
        self._ordered: List[MafSequence] = []
        self._length = 0
        self._fasta: Optional[pysam.FastaFile] = None

    def __repr__(self) -> str:
        return f"MafGenome({self.name!r})"

    @property
    def length(self) -> int:
        return self._length

    def sequences(self) -> List[MafSequence]:
        return list(self._ordered)

    def _add_sequence(self, name: str, length: int) -> MafSequence:
        seq = self._sequences.get(name)
        if seq is not None:
            if seq.length != length:
                raise AlignmentStoreError(
                    f"Inconsistent length for {self.name}.{name}: {seq.length} vs {length}"
                )
            return seq
        seq = MafSequence(genome=self.name, name=name, start_offset=self._length, length=length)
        self._sequences[name] = seq
        self._offsets.append(seq.start_offset)
        self._ordered.append(seq)
        self._length += length
        return seq

    def get_sequence(self, name: str) -> Optional[MafSequence]:
        return self._sequences.get(name)

    def sequence_at(self, abs_pos: int) -> Tuple[MafSequence, int]:
        """Map an absolute array index to (sequence, 0-based position)."""
        if abs_pos < 0 or abs_pos >= self._length:
            raise AlignmentStoreError(
                f"Position {abs_pos} is outside genome {self.name} (length {self._length})"
            )
        i = bisect.bisect_right(self._offsets, abs_pos) - 1
        seq = self._ordered[i]
        return seq, abs_pos - seq.start_offset

    def attach_fasta(self, fasta_path: str | Path) -> None:
        """Read bases from an indexed FASTA instead of from the alignment rows."""
        fasta = pysam.FastaFile(str(fasta_path))
        missing = [s.name for s in self._ordered if s.name not in fasta.references]
        if missing:
            fasta.close()
            raise AlignmentStoreError(
                f"FASTA {fasta_path} lacks sequences of genome {self.name}: {', '.join(missing[:5])}"
            )
        self._fasta = fasta

    def close(self) -> None:
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None

    def get_base_at(self, abs_pos: int) -> str:
        seq, pos = self.sequence_at(abs_pos)
        if self._fasta is not None:
            base = self._fasta.fetch(seq.name, pos, pos + 1)
            return base if base else UNKNOWN
        for block_idx, row_idx in self._alignment.covering_rows(seq, pos):
            row = self._alignment.blocks[block_idx][row_idx]
            col = row.column_of(pos)
            if col is not None:
                return row.text[col]
        return UNKNOWN

    def get_aligned_column(
        self,
        targets: Iterable["MafGenome"],
        abs_pos: int,
        include_duplications: bool = False,
    ) -> Dict[MafSequence, List[AlignedBase]]:
        """Bases of ``targets`` aligned to this genome at ``abs_pos``.

        Without duplications only the primary block and the first row of each
        target genome are consulted, and the query row itself is never
        reported. With duplications every covering block and every row of a
        target genome contribute, the query row included.
        """
        target_names: Set[str] = {t.name for t in targets}
        seq, pos = self.sequence_at(abs_pos)
        hits = self._alignment.covering_rows(seq, pos)
        if not include_duplications:
            hits = hits[:1]

        column: Dict[MafSequence, List[AlignedBase]] = {}
        seen: Set[Tuple[MafSequence, int]] = set()
        for block_idx, query_idx in hits:
            block = self._alignment.blocks[block_idx]
            col = block[query_idx].column_of(pos)
            if col is None:
                continue
            taken: Set[str] = set()
            for row_idx, row in enumerate(block):
                genome = row.seq.genome
                if genome not in target_names:
                    continue
                if not include_duplications:
                    if row_idx == query_idx or genome in taken:
                        continue
                    taken.add(genome)
                target_pos = row.position_at(col)
                if target_pos is None:
                    continue
                key = (row.seq, target_pos)
                if key in seen:
                    continue
                seen.add(key)
                column.setdefault(row.seq, []).append(
                    AlignedBase(abs_pos=row.seq.start_offset + target_pos, base=row.text[col])
                )
        return column


class MafAlignment:
    """In-memory, read-only view of a MAF alignment."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self.blocks: List[List[MafRow]] = []
        self._genomes: Dict[str, MafGenome] = {}
        self._index: Dict[MafSequence, _SeqIndex] = {}

    def __enter__(self) -> "MafAlignment":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        for genome in self._genomes.values():
            genome.close()

    def genome_names(self) -> List[str]:
        return list(self._genomes)

    def open_genome(self, name: str) -> Optional[MafGenome]:
        return self._genomes.get(name)

    def _genome(self, name: str) -> MafGenome:
        genome = self._genomes.get(name)
        if genome is None:
            genome = MafGenome(self, name)
            self._genomes[name] = genome
        return genome

    def covering_rows(self, seq: MafSequence, pos: int) -> List[Tuple[int, int]]:
        """(block, row) pairs whose row covers ``pos`` of ``seq``, in file order."""
        idx = self._index.get(seq)
        if idx is None:
            return []
        lo = bisect.bisect_left(idx.starts, pos - idx.max_len + 1)
        hi = bisect.bisect_right(idx.starts, pos)
        hits = [(b, r) for end, b, r in idx.entries[lo:hi] if end > pos]
        hits.sort()
        return hits

    def _add_block(self, rows: List[MafRow]) -> None:
        block_idx = len(self.blocks)
        self.blocks.append(rows)
        for row_idx, row in enumerate(rows):
            idx = self._index.setdefault(row.seq, _SeqIndex())
            idx.starts.append(row.forward_start)
            idx.entries.append((row.forward_end, block_idx, row_idx))
            idx.max_len = max(idx.max_len, row.size)

    def _finish_index(self) -> None:
        for idx in self._index.values():
            order = sorted(range(len(idx.starts)), key=lambda i: idx.starts[i])
            idx.starts = [idx.starts[i] for i in order]
            idx.entries = [idx.entries[i] for i in order]

    def _parse_row(self, fields: List[str], lineno: int) -> MafRow:
        if len(fields) != 7:
            raise AlignmentStoreError(f"{self.path}:{lineno}: malformed 's' line")
        _, src, start, size, strand, src_size, text = fields
        genome_name, dot, seq_name = src.partition(".")
        if not dot or not genome_name or not seq_name:
            raise AlignmentStoreError(
                f"{self.path}:{lineno}: source '{src}' is not of the form genome.sequence"
            )
        if strand not in ("+", "-"):
            raise AlignmentStoreError(f"{self.path}:{lineno}: invalid strand '{strand}'")
        try:
            start_i, size_i, src_size_i = int(start), int(size), int(src_size)
        except ValueError:
            raise AlignmentStoreError(f"{self.path}:{lineno}: non-integer coordinates") from None
        if start_i < 0 or start_i + size_i > src_size_i:
            raise AlignmentStoreError(f"{self.path}:{lineno}: row extends past sequence end")
        seq = self._genome(genome_name)._add_sequence(seq_name, src_size_i)
        return _make_row(seq, start_i, size_i, strand, text)

    def load(self) -> "MafAlignment":
        rows: List[MafRow] = []
        in_block = False
        try:
            fh = open_textmaybe_gzip(self.path, "rt")
        except OSError as e:
            raise AlignmentStoreError(f"Unable to open alignment {self.path}: {e}") from e
        with fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    if rows:
                        self._add_block(rows)
                    rows, in_block = [], False
                    continue
                if line.startswith("#"):
                    continue
                if line.startswith("a"):
                    if rows:
                        self._add_block(rows)
                    rows, in_block = [], True
                    continue
                if line.startswith("s"):
                    if not in_block:
                        raise AlignmentStoreError(f"{self.path}:{lineno}: 's' line outside a block")
                    row = self._parse_row(line.split(), lineno)
                    if rows and len(row.text) != len(rows[0].text):
                        raise AlignmentStoreError(f"{self.path}:{lineno}: row width differs within block")
                    rows.append(row)
                # i/e/q lines carry nothing the queries need
            if rows:
                self._add_block(rows)
        self._finish_index()

        if not self.blocks:
            raise AlignmentStoreError(f"No alignment blocks found in {self.path}")
        logger.info(
            "Loaded %d blocks over %d genomes from %s",
            len(self.blocks),
            len(self._genomes),
            self.path,
        )
        return self


def open_alignment(path: str | Path) -> MafAlignment:
    """Open and index a MAF (optionally gzipped) alignment."""
    if not Path(path).exists():
        raise AlignmentStoreError(f"Alignment file does not exist: {path}")
    return MafAlignment(path).load()
