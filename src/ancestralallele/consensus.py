from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .models import GAP, UNKNOWN, BaseCount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceTags:
    """Evidence labels for a single-base hit, a majority vote and a tie."""

    single: str
    vote: str
    tie: str


DIRECT_TAGS = EvidenceTags(single="Direct", vote="MajorityVote:", tie="AncestralParalogTie:")
ANCESTRAL_PARALOG_TAGS = EvidenceTags(
    single="AncestralParalog", vote="AncestralParalogVote:", tie="AncestralParalogTie:"
)
WITHIN_SPECIES_TAGS = EvidenceTags(
    single="WithinSpeciesParalog", vote="WithinSpeciesParalogVote:", tie="WithinSpeciesParalogTie:"
)


def count_bases(bases: Iterable[str]) -> BaseCount:
    """Count bases, ignoring gaps and unknown symbols. Case-insensitive."""
    counts: BaseCount = {}
    for b in bases:
        b = b.upper()
        if not b or b == GAP or b == UNKNOWN:
            continue
        counts[b] = counts.get(b, 0) + 1
    return counts


def format_counts(counts: BaseCount) -> str:
    return ",".join(f"{b}={counts[b]}" for b in sorted(counts))


def call_consensus(counts: BaseCount, tags: EvidenceTags) -> Optional[Tuple[str, str]]:
    """Reduce base counts to (allele, evidence); None when there is nothing to call.

    A single observed base is returned as-is. Otherwise the base with the
    strictly highest count wins; if the maximum is shared the call is a tie
    and the allele is ``N``. Bases are scanned in sorted order so the outcome
    and the count breakdown never depend on insertion order.
    """
    total = sum(counts.values())
    if total == 0:
        return None
    if total == 1:
        (base,) = counts
        return base, tags.single

    leader = UNKNOWN
    best = 0
    tie = False
    for base in sorted(counts):
        n = counts[base]
        if n > best:
            leader, best, tie = base, n, False
        elif n == best:
            tie = True

    breakdown = format_counts(counts)
    if tie:
        return UNKNOWN, tags.tie + breakdown
    return leader, tags.vote + breakdown


def _query_column(ref_genome, abs_pos: int, target_genome, include_duplications: bool) -> List[str]:
    """Bases of ``target_genome`` aligned at ``abs_pos``; store failures yield no bases."""
    try:
        column = ref_genome.get_aligned_column([target_genome], abs_pos, include_duplications)
    except Exception as e:
        logger.debug(
            "Column query failed at %d for %s (duplications=%s): %s",
            abs_pos,
            target_genome.name,
            include_duplications,
            e,
        )
        return []

    self_query = target_genome.name == ref_genome.name
    bases: List[str] = []
    for seq, aligned in column.items():
        if seq.genome != target_genome.name:
            continue
        for ab in aligned:
            if self_query and ab.abs_pos == abs_pos:
                continue
            bases.append(ab.base)
    return bases


def resolve_from_genome(
    ref_genome,
    abs_pos: int,
    target_genome,
    *,
    force_duplications: bool = False,
) -> Tuple[BaseCount, bool]:
    """Collect and count the bases ``target_genome`` aligns to ``abs_pos``.

    The direct (orthologous) column is tried first; only when it reports no
    aligned characters at all is the duplication-aware query made. A direct
    column holding only gaps or ``N`` does not trigger the paralog query and
    comes back as empty counts. Returns the counts and whether they came from
    the paralog query.
    """
    if not force_duplications:
        bases = _query_column(ref_genome, abs_pos, target_genome, False)
        if bases:
            return count_bases(bases), False
    counts = count_bases(_query_column(ref_genome, abs_pos, target_genome, True))
    return counts, True


def tags_for(used_paralog_search: bool) -> EvidenceTags:
    return ANCESTRAL_PARALOG_TAGS if used_paralog_search else DIRECT_TAGS
