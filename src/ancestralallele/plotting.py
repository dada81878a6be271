from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_evidence_counts(
    *,
    evidence_counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Evidence categories",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = list(evidence_counts)
    values = [int(evidence_counts[k]) for k in labels]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Position count")
    plt.title(title)
    plt.xticks(rotation=30, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_allele_counts(
    *,
    allele_counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Inferred ancestral alleles",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    # A/C/G/T first, then N and anything unusual
    order = [b for b in "ACGT" if b in allele_counts]
    order += sorted(b for b in allele_counts if b not in order)
    values = [int(allele_counts[b]) for b in order]

    plt.figure()
    plt.bar(order, values)
    plt.xlabel("Allele")
    plt.ylabel("Position count")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
