from ancestralallele.consensus import (
    ANCESTRAL_PARALOG_TAGS,
    DIRECT_TAGS,
    WITHIN_SPECIES_TAGS,
    call_consensus,
    count_bases,
    format_counts,
)


def test_count_bases_drops_gaps_and_unknown():
    counts = count_bases(["a", "A", "-", "N", "n", "C", ""])
    assert counts == {"A": 2, "C": 1}
    assert sum(counts.values()) == 3


def test_empty_counts_make_no_call():
    assert call_consensus({}, DIRECT_TAGS) is None


def test_single_base_shortcut():
    assert call_consensus({"G": 1}, DIRECT_TAGS) == ("G", "Direct")
    assert call_consensus({"G": 1}, ANCESTRAL_PARALOG_TAGS) == ("G", "AncestralParalog")
    assert call_consensus({"G": 1}, WITHIN_SPECIES_TAGS) == ("G", "WithinSpeciesParalog")


def test_majority_vote():
    assert call_consensus({"T": 3, "A": 1}, DIRECT_TAGS) == ("T", "MajorityVote:A=1,T=3")
    assert call_consensus({"C": 2, "G": 1}, ANCESTRAL_PARALOG_TAGS) == (
        "C",
        "AncestralParalogVote:C=2,G=1",
    )


def test_tie_gives_n():
    allele, evidence = call_consensus({"C": 2, "A": 2}, DIRECT_TAGS)
    assert allele == "N"
    assert "Tie:A=2,C=2" in evidence
    assert evidence == "AncestralParalogTie:A=2,C=2"


def test_tie_below_leader_is_not_a_tie():
    # A and C tie with each other but both lose to G
    assert call_consensus({"A": 1, "C": 1, "G": 3}, DIRECT_TAGS) == ("G", "MajorityVote:A=1,C=1,G=3")


def test_leader_after_early_tie_clears_tie():
    assert call_consensus({"A": 1, "C": 1, "T": 2}, WITHIN_SPECIES_TAGS) == (
        "T",
        "WithinSpeciesParalogVote:A=1,C=1,T=2",
    )


def test_call_does_not_depend_on_insertion_order():
    a = {"T": 2, "G": 2, "A": 1}
    b = {"A": 1, "G": 2, "T": 2}
    assert call_consensus(a, DIRECT_TAGS) == call_consensus(b, DIRECT_TAGS)
    assert format_counts(a) == format_counts(b) == "A=1,G=2,T=2"
