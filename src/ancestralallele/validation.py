from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Sequence, Tuple

from .resolver import Candidate
from .store import AlignmentStoreError, MafAlignment, MafGenome

logger = logging.getLogger(__name__)


def check_readable(path: str | Path, what: str) -> None:
    """Raise FileNotFoundError with a clear message if ``path`` cannot be read."""
    p = Path(path)
    if not p.is_file() or not os.access(p, os.R_OK):
        raise FileNotFoundError(f"Unable to open {what}: {p}")


def check_output_writable(path: str | Path) -> None:
    """Ensure the output file can be created before any work is done."""
    p = Path(path)
    parent = p.parent if str(p.parent) else Path(".")
    if not parent.is_dir():
        raise FileNotFoundError(f"Unable to open output file: {p} (directory does not exist)")
    if p.is_dir():
        raise IsADirectoryError(f"Unable to open output file: {p} (is a directory)")
    if p.exists() and not os.access(p, os.W_OK):
        raise PermissionError(f"Unable to open output file: {p} (not writable)")
    if not p.exists() and not os.access(parent, os.W_OK):
        raise PermissionError(f"Unable to open output file: {p} (directory not writable)")


def resolve_genomes(
    alignment: MafAlignment,
    ref_name: str,
    target_names: Sequence[str],
) -> Tuple[MafGenome, List[Candidate]]:
    """Open the reference and every candidate genome; unknown names are fatal."""
    ref_genome = alignment.open_genome(ref_name)
    if ref_genome is None:
        raise AlignmentStoreError(
            f"Reference genome {ref_name} not found (available: {', '.join(alignment.genome_names())})"
        )
    if not target_names:
        raise AlignmentStoreError("No valid target genome names provided")

    candidates: List[Candidate] = []
    for name in target_names:
        genome = alignment.open_genome(name)
        if genome is None:
            raise AlignmentStoreError(f"Target genome {name} not found")
        candidates.append(Candidate(name=name, genome=genome))
    return ref_genome, candidates
