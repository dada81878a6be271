from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

import pysam

from .utils import ensure_outdir, write_json

REF_GENOME = "human"
ANCESTORS = ("Anc0", "Anc1")

_HUMAN = {
    "chr1": "ACGTACGTAC" "GTTACCGATG" "CATGCATGCA" "TTGGCCAATT",
    "chr2": "CATGCGTGCA" "TTGGCCAATT" "ACGTACGTAC",
}
_SRC_SIZES = {"human.chr1": 40, "human.chr2": 30, "Anc0.a0": 40, "Anc1.a1": 40}

# (src, start, strand, text); every row is 10 columns wide and ungapped.
_BLOCKS: List[List[Tuple[str, int, str, str]]] = [
    # direct hit in the primary ancestor; chr1:3 differs from the reference
    [
        ("human.chr1", 0, "+", "ACGTACGTAC"),
        ("Anc0.a0", 0, "+", "ACGAACGTAC"),
        ("Anc1.a1", 0, "+", "ACGTACGTAC"),
    ],
    # primary ancestor absent; the fallback ancestor carries chr1:12 = C
    [
        ("human.chr1", 10, "+", "GTTACCGATG"),
        ("Anc1.a1", 10, "+", "GTCACCGATG"),
    ],
    # no ancestor at all; a within-species copy on chr2
    [
        ("human.chr1", 20, "+", "CATGCATGCA"),
        ("human.chr2", 0, "+", "CATGCGTGCA"),
    ],
    # primary column for chr1:30-40 has no ancestor ...
    [
        ("human.chr1", 30, "+", "TTGGCCAATT"),
        ("human.chr2", 10, "+", "TTGGCCAATT"),
    ],
    # ... but two ancestral copies sit in a duplicated block
    [
        ("human.chr1", 30, "+", "TTGGCCAATT"),
        ("Anc0.a0", 20, "+", "TTGGCCAATT"),
        ("Anc0.a0", 30, "+", "TTGGCTAATT"),
    ],
]

_POSITIONS = [
    "# toy query positions (0-based, half-open)",
    "chr1\t35\t36",
    "chr1\t3\t4",
    "",
    "chr2\t25\t26",
    "chr1\t12\t13",
    "chrX\t5\t6",
    "chr1\tnot_a_number\t10",
    "chr1\t25\t26",
    "chr1\t32\t33\textra\tcolumns",
]


def _write_fasta(path: Path, records: Dict[str, str]) -> None:
    lines: List[str] = []
    for name, seq in records.items():
        lines.append(f">{name}")
        for i in range(0, len(seq), 60):
            lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _maf_text() -> str:
    lines = ["##maf version=1 scoring=none", ""]
    for rows in _BLOCKS:
        lines.append("a")
        for src, start, strand, text in rows:
            size = sum(1 for c in text if c != "-")
            lines.append(f"s {src} {start} {size} {strand} {_SRC_SIZES[src]} {text}")
        lines.append("")
    return "\n".join(lines) + "\n"


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny alignment, reference FASTA and positions file for demos/tests.

    The outputs include:
    - toy.maf (human reference, ancestors Anc0 and Anc1)
    - human.fa (+ .fai)
    - positions.bed (unsorted, with a comment, a blank and a malformed line)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    maf_path = outdir_p / "toy.maf"
    maf_path.write_text(_maf_text(), encoding="utf-8")

    ref_fa = outdir_p / "human.fa"
    _write_fasta(ref_fa, _HUMAN)
    pysam.faidx(str(ref_fa))

    positions_path = outdir_p / "positions.bed"
    positions_path.write_text("\n".join(_POSITIONS) + "\n", encoding="utf-8")

    summary = {
        "alignment": str(maf_path),
        "ref_fa": str(ref_fa),
        "positions": str(positions_path),
        "ref_genome": REF_GENOME,
        "ancestors": ",".join(ANCESTORS),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
