from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from .consensus import WITHIN_SPECIES_TAGS, call_consensus, resolve_from_genome, tags_for
from .models import UNKNOWN, UNKNOWN_ANCESTOR, WITHIN_SPECIES, ConsensusResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Candidate:
    """An ancestor genome to consult, in priority order."""

    name: str
    genome: Any


def split_ancestors(text: str) -> List[str]:
    """Split a comma-separated genome list, trimming blanks and dropping empties."""
    return [name.strip() for name in text.split(",") if name.strip()]


def first_success(evaluators: Iterable[Callable[[], Optional[T]]]) -> Optional[T]:
    """Return the first non-None evaluator result; later evaluators are never called."""
    for evaluate in evaluators:
        result = evaluate()
        if result is not None:
            return result
    return None


def missing_evidence(n_candidates: int) -> str:
    if n_candidates > 1:
        return f"Missing(tried:{n_candidates}+self)"
    return "Missing(+self)"


def default_ancestor_name(candidates: Sequence[Candidate]) -> str:
    return candidates[0].name if candidates else UNKNOWN_ANCESTOR


def _candidate_evaluator(
    ref_genome, abs_pos: int, candidate: Candidate, idx: int, multi: bool
) -> Callable[[], Optional[ConsensusResult]]:
    def evaluate() -> Optional[ConsensusResult]:
        counts, used_paralogs = resolve_from_genome(ref_genome, abs_pos, candidate.genome)
        call = call_consensus(counts, tags_for(used_paralogs))
        if call is None:
            return None
        allele, evidence = call
        if multi and allele != UNKNOWN:
            evidence += f"@{candidate.name}"
            if idx > 0:
                evidence += f"(fallback:{idx})"
        return ConsensusResult(allele=allele, evidence=evidence, used_ancestor=candidate.name)

    return evaluate


def _within_species_evaluator(ref_genome, abs_pos: int) -> Callable[[], Optional[ConsensusResult]]:
    def evaluate() -> Optional[ConsensusResult]:
        counts, _ = resolve_from_genome(ref_genome, abs_pos, ref_genome, force_duplications=True)
        call = call_consensus(counts, WITHIN_SPECIES_TAGS)
        if call is None:
            return None
        allele, evidence = call
        return ConsensusResult(allele=allele, evidence=evidence, used_ancestor=WITHIN_SPECIES)

    return evaluate


def resolve_allele(
    ref_genome,
    abs_pos: int,
    candidates: Sequence[Candidate],
) -> ConsensusResult:
    """Infer the ancestral allele at ``abs_pos`` of ``ref_genome``.

    Candidates are consulted in order and the first one with any usable base
    decides the call on its own, even if a later genome would give a cleaner
    majority. When none does, paralogous copies within the reference genome
    are used as a last resort.
    """
    multi = len(candidates) > 1
    evaluators: List[Callable[[], Optional[ConsensusResult]]] = [
        _candidate_evaluator(ref_genome, abs_pos, c, i, multi) for i, c in enumerate(candidates)
    ]
    evaluators.append(_within_species_evaluator(ref_genome, abs_pos))

    result = first_success(evaluators)
    if result is not None:
        return result
    return ConsensusResult(
        allele=UNKNOWN,
        evidence=missing_evidence(len(candidates)),
        used_ancestor=default_ancestor_name(candidates),
    )
