import logging
from pathlib import Path

import pytest

from ancestralallele.models import Position
from ancestralallele.positions import load_positions
from ancestralallele.scheduler import (
    annotate_position,
    annotate_positions,
    evidence_category,
    processing_order,
    summarize_rows,
)
from ancestralallele.store import open_alignment
from ancestralallele.toy_data import make_toy_data
from ancestralallele.validation import resolve_genomes

EXPECTED = [
    ["chr1", "35", "36", "C", "Anc0", "N", "AncestralParalogTie:C=1,T=1"],
    ["chr1", "3", "4", "T", "Anc0", "A", "Direct@Anc0"],
    ["chr2", "25", "26", "N", "Anc0", "N", "Missing(tried:2+self)"],
    ["chr1", "12", "13", "T", "Anc1", "C", "Direct@Anc1(fallback:1)"],
    ["chrX", "5", "6", "N", "Anc0", "N", "Missing"],
    ["chr1", "25", "26", "A", "WithinSpecies", "G", "WithinSpeciesParalog"],
    ["chr1", "32", "33", "G", "Anc0", "G", "AncestralParalogVote:G=2@Anc0"],
]


@pytest.fixture
def toy(tmp_path: Path):
    files = make_toy_data(outdir=tmp_path / "toy")
    aln = open_alignment(files["alignment"])
    ref, candidates = resolve_genomes(aln, "human", ["Anc0", "Anc1"])
    positions = load_positions(files["positions"])
    yield files, ref, candidates, positions
    aln.close()


def test_processing_order():
    positions = [
        Position("chr2", 5, 6, 0),
        Position("chr1", 9, 10, 1),
        Position("chr10", 1, 2, 2),
        Position("chr1", 2, 3, 3),
    ]
    assert processing_order(positions) == [3, 1, 2, 0]
    assert processing_order(positions, sort=False) == [0, 1, 2, 3]


def test_toy_rows_in_input_order(toy):
    _, ref, candidates, positions = toy
    rows = annotate_positions(ref, candidates, positions)
    assert [r.to_fields() for r in rows] == EXPECTED


def test_sorting_does_not_change_output(toy):
    _, ref, candidates, positions = toy
    sorted_rows = annotate_positions(ref, candidates, positions, sort=True)
    unsorted_rows = annotate_positions(ref, candidates, positions, sort=False)
    assert sorted_rows == unsorted_rows
    assert [r.position.original_order for r in sorted_rows] == list(range(len(positions)))


def test_ref_fasta_supplies_uncovered_bases(toy):
    files, ref, candidates, positions = toy
    ref.attach_fasta(files["ref_fa"])
    rows = annotate_positions(ref, candidates, positions)
    assert rows[2].ref_base == "C"
    assert [r.ref_base for r in rows] == ["C", "T", "C", "T", "N", "A", "G"]


def test_progress_messages(toy, caplog):
    _, ref, candidates, positions = toy
    with caplog.at_level(logging.INFO, logger="ancestralallele"):
        annotate_positions(ref, candidates, positions, progress_every=3)
    msgs = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Processed")]
    assert msgs == ["Processed 3/7 positions", "Processed 6/7 positions"]


def test_missing_sequence_skips_store():
    class NoLookups:
        name = "ref"

        def get_sequence(self, name):
            return None

        def get_base_at(self, abs_pos):
            raise AssertionError("no base lookup expected")

        def get_aligned_column(self, *args, **kwargs):
            raise AssertionError("no column lookup expected")

    row = annotate_position(NoLookups(), [], Position("chrUn", 1, 2, 0))
    assert row.to_fields() == ["chrUn", "1", "2", "N", "Unknown", "N", "Missing"]


def test_summarize_rows(toy):
    _, ref, candidates, positions = toy
    summary = summarize_rows(annotate_positions(ref, candidates, positions))
    assert summary["positions"] == 7
    assert summary["called"] == 4
    assert summary["ties"] == 1
    assert summary["fallback_hits"] == 1
    assert summary["missing_sequence"] == 1
    assert summary["evidence"]["Direct"] == 2
    assert summary["used_ancestor"] == {"Anc0": 5, "Anc1": 1, "WithinSpecies": 1}


def test_evidence_category():
    assert evidence_category("WithinSpeciesParalogTie:A=1,C=1") == "WithinSpeciesParalogTie"
    assert evidence_category("AncestralParalog@Anc1(fallback:1)") == "AncestralParalog"
    assert evidence_category("Missing(+self)") == "Missing"


def test_start_past_sequence_end_is_missing(toy):
    _, ref, candidates, _ = toy
    # chr1 has 40 bases; offset 40 would otherwise land on chr2
    row = annotate_position(ref, candidates, Position("chr1", 40, 41, 0))
    assert (row.allele, row.evidence) == ("N", "Missing")
