from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pysam

from .models import UNKNOWN, ResultRow
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = [
    "chrom",
    "start",
    "end",
    "refBase",
    "usedAncestor",
    "ancestralAllele",
    "evidence",
]


def format_row(row: ResultRow) -> str:
    return "\t".join(row.to_fields())


def write_rows(rows: Sequence[ResultRow], out_path: str | Path) -> Path:
    """Write annotation rows as headerless TSV (``.gz`` is compressed)."""
    out_path = Path(out_path)
    with open_textmaybe_gzip(out_path, "wt") as fh:
        for row in rows:
            fh.write(format_row(row) + "\n")
    logger.info("Wrote %d rows to %s", len(rows), out_path)
    return out_path


def read_annotation_calls(path: str | Path) -> Tuple[List[Tuple[str, int, str]], Dict[str, int]]:
    """Read (chrom, 1-based pos, allele) from an annotation TSV, dropping N calls."""
    calls: List[Tuple[str, int, str]] = []
    stats = {"rows_total": 0, "rows_unknown": 0, "rows_malformed": 0, "calls_kept": 0}
    with open_textmaybe_gzip(path, "rt") as fh:
        for lineno, line in enumerate(fh, start=1):
            if lineno == 1 and line.startswith("#"):
                continue
            if not line.strip():
                continue
            fields = line.rstrip("\n").split("\t")
            stats["rows_total"] += 1
            if len(fields) < 6:
                stats["rows_malformed"] += 1
                continue
            try:
                pos1 = int(fields[1]) + 1
            except ValueError:
                stats["rows_malformed"] += 1
                continue
            allele = fields[5]
            if allele == UNKNOWN:
                stats["rows_unknown"] += 1
                continue
            calls.append((fields[0], pos1, allele))
    calls.sort(key=lambda c: (c[0], c[1]))
    stats["calls_kept"] = len(calls)
    return calls, stats


def export_bcftools_annotation(in_path: str | Path, prefix: str | Path) -> Dict[str, object]:
    """Convert an annotation TSV into a bgzipped, tabix-indexed CHROM/POS/AA table.

    The result can be fed to ``bcftools annotate -c CHROM,POS,AA``.
    """
    prefix = Path(prefix)
    prefix.parent.mkdir(parents=True, exist_ok=True)
    plain = prefix.with_name(prefix.name + ".tsv")
    gz = prefix.with_name(prefix.name + ".tsv.gz")

    calls, stats = read_annotation_calls(in_path)
    with open(plain, "wt", encoding="utf-8") as fh:
        for chrom, pos1, allele in calls:
            fh.write(f"{chrom}\t{pos1}\t{allele}\n")

    pysam.tabix_compress(str(plain), str(gz), force=True)
    pysam.tabix_index(str(gz), seq_col=0, start_col=1, end_col=1, force=True)
    plain.unlink()

    bcftools_cmd = (
        f"bcftools annotate -a {gz} -c CHROM,POS,AA "
        "-h <(echo '##INFO=<ID=AA,Number=1,Type=String,Description=\"Ancestral allele\">') "
        "-Ob -o output.bcf input.vcf.gz"
    )
    logger.info("Exported %d ancestral alleles to %s", len(calls), gz)
    return {
        "input": str(in_path),
        "annotation": str(gz),
        "index": str(gz) + ".tbi",
        "bcftools_cmd": bcftools_cmd,
        **stats,
    }
