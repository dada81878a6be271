"""AncestralAllele: ancestral allele annotation from a multi-species genome alignment.

Public API is intentionally small; most users should use the CLI:

    ancestralallele annotate alignment.maf hg38 Anc0,Anc1 positions.bed out.tsv

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
