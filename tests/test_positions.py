import gzip
from pathlib import Path

import pytest

from ancestralallele.positions import PositionsError, load_positions, parse_line


def test_parse_line():
    assert parse_line("chr1\t10\t11\n") == ("chr1", 10, 11)
    assert parse_line("chr1 10 11 name 0 +") == ("chr1", 10, 11)
    assert parse_line("# comment") is None
    assert parse_line("   \n") is None
    assert parse_line("chr1\t10") is None
    assert parse_line("chr1\tstart\tend") is None


def test_parse_line_reads_leading_integers():
    assert parse_line("chr1\t10\t11abc") == ("chr1", 10, 11)
    assert parse_line("chr1\t10.5\t11") == ("chr1", 10, 11)
    assert parse_line("chr1\tx10\t11") is None


def test_comment_blank_and_one_valid_line(tmp_path: Path) -> None:
    p = tmp_path / "pos.bed"
    p.write_text("# header\n\nchr1\t5\t6\n", encoding="utf-8")
    positions = load_positions(p)
    assert len(positions) == 1
    assert positions[0].chrom == "chr1"
    assert (positions[0].start, positions[0].end, positions[0].original_order) == (5, 6, 0)


def test_original_order_skips_malformed(tmp_path: Path) -> None:
    p = tmp_path / "pos.bed"
    p.write_text("chr2\t1\t2\nbad line\nchr1\tx\t3\nchr1\t7\t8\n", encoding="utf-8")
    positions = load_positions(p)
    assert [(x.chrom, x.start, x.original_order) for x in positions] == [
        ("chr2", 1, 0),
        ("chr1", 7, 1),
    ]


def test_gzip_positions(tmp_path: Path) -> None:
    p = tmp_path / "pos.bed.gz"
    with gzip.open(p, "wt") as fh:
        fh.write("chr1\t5\t6\n")
    assert len(load_positions(p)) == 1


def test_unreadable_positions(tmp_path: Path) -> None:
    with pytest.raises(PositionsError):
        load_positions(tmp_path / "missing.bed")
