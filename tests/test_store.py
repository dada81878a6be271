import gzip
from pathlib import Path

import pytest

from ancestralallele.store import AlignmentStoreError, open_alignment

MAF = """##maf version=1
a score=0
s human.chr1 0 5 + 20 ACG-TA
s Anc0.a0 2 5 - 10 A-GCTA
s human.chr2 0 6 + 8 ACGCTA

a
s human.chr1 2 3 + 20 GGT
s Anc0.a0 0 3 + 10 CGT
i Anc0.a0 N 0 C 0
"""


def _write(tmp_path: Path, text: str, name: str = "aln.maf") -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_genomes_and_offsets(tmp_path: Path) -> None:
    aln = open_alignment(_write(tmp_path, MAF))
    assert sorted(aln.genome_names()) == ["Anc0", "human"]
    human = aln.open_genome("human")
    assert human.get_sequence("chr1").start_offset == 0
    assert human.get_sequence("chr2").start_offset == 20
    assert human.length == 28
    assert aln.open_genome("mouse") is None
    assert human.get_sequence("chrX") is None


def test_base_at_uses_first_covering_block(tmp_path: Path) -> None:
    human = open_alignment(_write(tmp_path, MAF)).open_genome("human")
    assert human.get_base_at(2) == "G"  # block 1 wins over block 2 ("G")
    assert human.get_base_at(3) == "T"
    assert human.get_base_at(21) == "C"
    assert human.get_base_at(15) == "N"  # not covered
    with pytest.raises(AlignmentStoreError):
        human.get_base_at(28)


def test_direct_column_maps_reverse_strand(tmp_path: Path) -> None:
    aln = open_alignment(_write(tmp_path, MAF))
    human, anc = aln.open_genome("human"), aln.open_genome("Anc0")
    col = human.get_aligned_column([anc], 0, include_duplications=False)
    ((seq, bases),) = col.items()
    assert seq.genome == "Anc0"
    # strand position 2 on a length-10 sequence is forward position 7
    assert [(b.abs_pos, b.base) for b in bases] == [(7, "A")]


def test_gap_in_target_is_not_reported(tmp_path: Path) -> None:
    aln = open_alignment(_write(tmp_path, MAF))
    human, anc = aln.open_genome("human"), aln.open_genome("Anc0")
    # human chr1:1 sits in column 1, a gap in Anc0
    assert human.get_aligned_column([anc], 1, include_duplications=False) == {}


def test_duplications_add_other_blocks_and_self(tmp_path: Path) -> None:
    aln = open_alignment(_write(tmp_path, MAF))
    human, anc = aln.open_genome("human"), aln.open_genome("Anc0")

    direct = human.get_aligned_column([anc], 2, include_duplications=False)
    assert [b.base for bases in direct.values() for b in bases] == ["G"]

    dups = human.get_aligned_column([anc], 2, include_duplications=True)
    assert sorted(b.base for bases in dups.values() for b in bases) == ["C", "G"]

    within = human.get_aligned_column([human], 2, include_duplications=True)
    found = sorted((b.abs_pos, b.base) for bases in within.values() for b in bases)
    # the query (reported once across both blocks) and its chr2 copy
    assert found == [(2, "G"), (22, "G")]


def test_direct_mode_never_reports_query_row(tmp_path: Path) -> None:
    aln = open_alignment(_write(tmp_path, MAF))
    human = aln.open_genome("human")
    col = human.get_aligned_column([human], 0, include_duplications=False)
    assert [(b.abs_pos, b.base) for bases in col.values() for b in bases] == [(20, "A")]


def test_gzip_alignment(tmp_path: Path) -> None:
    p = tmp_path / "aln.maf.gz"
    with gzip.open(p, "wt") as fh:
        fh.write(MAF)
    assert open_alignment(p).open_genome("human") is not None


@pytest.mark.parametrize(
    "text",
    [
        "a\ns human.chr1 0 3 + 20 AC\n",  # size mismatch
        "a\ns chr1 0 2 + 20 AC\n",  # no genome prefix
        "s human.chr1 0 2 + 20 AC\n",  # outside block
        "a\ns human.chr1 0 2 + 20 AC\ns Anc0.a0 0 3 + 20 ACG\n",  # ragged block
        "##maf version=1\n",  # empty
    ],
)
def test_malformed_maf(tmp_path: Path, text: str) -> None:
    with pytest.raises(AlignmentStoreError):
        open_alignment(_write(tmp_path, text))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(AlignmentStoreError):
        open_alignment(tmp_path / "nope.maf")
