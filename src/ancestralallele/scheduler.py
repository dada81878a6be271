from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from tqdm import tqdm

from .models import UNKNOWN, Position, ResultRow
from .resolver import Candidate, default_ancestor_name, resolve_allele
from .store import AlignmentStoreError

logger = logging.getLogger(__name__)

_CATEGORY_PREFIXES = (
    "WithinSpeciesParalogVote",
    "WithinSpeciesParalogTie",
    "WithinSpeciesParalog",
    "AncestralParalogVote",
    "AncestralParalogTie",
    "AncestralParalog",
    "MajorityVote",
    "Direct",
    "Missing",
)


def processing_order(positions: Sequence[Position], *, sort: bool = True) -> List[int]:
    """Indices of ``positions`` in the order they should be resolved.

    Sorting by (chrom, start) keeps consecutive queries close together in the
    alignment; ``sort=False`` keeps input order.
    """
    order = list(range(len(positions)))
    if sort:
        order.sort(key=lambda i: (positions[i].chrom, positions[i].start))
    return order


def annotate_position(ref_genome, candidates: Sequence[Candidate], pos: Position) -> ResultRow:
    """Resolve one position.

    A sequence absent from the reference, or a start outside it, gives a
    Missing row without any alignment lookup.
    """
    seq = ref_genome.get_sequence(pos.chrom)
    if seq is None or not 0 <= pos.start < seq.length:
        return ResultRow(
            position=pos,
            ref_base=UNKNOWN,
            used_ancestor=default_ancestor_name(candidates),
            allele=UNKNOWN,
            evidence="Missing",
        )

    abs_pos = seq.start_offset + pos.start
    try:
        ref_base = ref_genome.get_base_at(abs_pos).upper()
    except AlignmentStoreError as e:
        logger.debug("No reference base for %s:%d: %s", pos.chrom, pos.start, e)
        ref_base = UNKNOWN
    res = resolve_allele(ref_genome, abs_pos, candidates)
    return ResultRow(
        position=pos,
        ref_base=ref_base,
        used_ancestor=res.used_ancestor,
        allele=res.allele,
        evidence=res.evidence,
    )


def annotate_positions(
    ref_genome,
    candidates: Sequence[Candidate],
    positions: Sequence[Position],
    *,
    sort: bool = True,
    progress_every: int = 0,
    progress_bar: bool = False,
) -> List[ResultRow]:
    """Annotate every position and return rows in input order.

    Rows are buffered in the slot of each position's ``original_order``, so the
    processing order never leaks into the output.
    """
    n = len(positions)
    order = processing_order(positions, sort=sort)
    if sort:
        logger.info("Sorted %d positions for processing", n)

    results: List[Optional[ResultRow]] = [None] * n
    it: Iterable[int] = order
    if progress_bar:
        it = tqdm(it, total=n, unit="pos", desc="Annotating positions")

    for i, idx in enumerate(it, start=1):
        pos = positions[idx]
        results[pos.original_order] = annotate_position(ref_genome, candidates, pos)
        if progress_every > 0 and i % progress_every == 0:
            logger.info("Processed %d/%d positions", i, n)

    return [r for r in results if r is not None]


def evidence_category(evidence: str) -> str:
    for prefix in _CATEGORY_PREFIXES:
        if evidence.startswith(prefix):
            return prefix
    return "Other"


def summarize_rows(rows: Sequence[ResultRow], *, runtime_seconds: Optional[float] = None) -> Dict[str, object]:
    """Counters describing a finished run, for summary.json and the report."""
    categories: Counter = Counter(evidence_category(r.evidence) for r in rows)
    alleles: Counter = Counter(r.allele for r in rows)
    ancestors: Counter = Counter(r.used_ancestor for r in rows)
    summary: Dict[str, object] = {
        "positions": len(rows),
        "called": sum(1 for r in rows if r.allele != UNKNOWN),
        "ties": sum(1 for r in rows if "Tie:" in r.evidence),
        "fallback_hits": sum(1 for r in rows if "(fallback:" in r.evidence),
        "missing_sequence": sum(1 for r in rows if r.evidence == "Missing"),
        "evidence": dict(sorted(categories.items())),
        "alleles": dict(sorted(alleles.items())),
        "used_ancestor": dict(sorted(ancestors.items())),
    }
    if runtime_seconds is not None:
        summary["runtime_seconds"] = float(runtime_seconds)
    return summary

