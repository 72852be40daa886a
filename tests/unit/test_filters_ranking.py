"""Tests for retrieval quality filters and evidence selection."""

from conftest import make_ref
from submittal_review.retrieval.filters import filter_results, rejection_reason
from submittal_review.retrieval.ranking import rank_and_select


def test_keeps_substantive_clause():
    assert rejection_reason(make_ref("a", 0.8)) is None


def test_rejects_missing_clause_number():
    assert rejection_reason(make_ref("a", 0.8, clause="  ")) == "no_clause"


def test_rejects_short_content():
    assert rejection_reason(make_ref("a", 0.8, content="Too short.")) == "short_content"


def test_rejects_table_of_contents_entries():
    ref = make_ref("a", 0.8, title="Concrete Works ........ 12")
    assert rejection_reason(ref) == "toc_entry"


def test_generic_titles_rejected_only_for_graph_hits():
    assert rejection_reason(make_ref("a", 0.5, origin="graph", title="Scope")) == "generic_graph_title"
    assert rejection_reason(make_ref("a", 0.8, origin="vector", title="Scope")) is None


def test_rejects_form_boilerplate():
    ref = make_ref("a", 0.8, title="Plant Manufacturer Company Name")
    assert rejection_reason(ref) == "form_boilerplate"


def test_filter_results_preserves_order():
    refs = [
        make_ref("a", 0.9),
        make_ref("b", 0.8, content="short"),
        make_ref("c", 0.7, clause="1.3"),
    ]
    assert [r.chunk.chunk_id for r in filter_results(refs)] == ["a", "c"]


def test_min_content_chars_is_configurable():
    ref = make_ref("a", 0.8, content="x" * 50)
    assert filter_results([ref], min_content_chars=80) == []
    assert filter_results([ref], min_content_chars=40) == [ref]


def test_dedup_prefers_vector_hit_for_same_clause():
    vector = make_ref("v", 0.4, origin="vector", clause="2.1")
    graph = make_ref("g", 0.5, origin="graph", clause="2.1")
    assert rank_and_select([graph, vector]) == [vector]


def test_dedup_keeps_higher_score_within_origin():
    low = make_ref("low", 0.6, clause="2.1")
    high = make_ref("high", 0.9, clause="2.1")
    assert rank_and_select([low, high]) == [high]


def test_vector_first_then_graph_capped():
    vector = [make_ref(f"v{i}", s, clause=f"1.{i}") for i, s in enumerate([0.7, 0.9, 0.8, 0.75])]
    graph = [make_ref(f"g{i}", 0.5, origin="graph", clause=f"4.{i}") for i in range(2)]
    selected = rank_and_select(graph + vector, max_total=6, max_graph=4)

    assert len(selected) == 6
    assert [r.chunk.chunk_id for r in selected[:4]] == ["v1", "v2", "v3", "v0"]
    assert all(r.is_graph for r in selected[4:])


def test_vector_outranks_higher_scoring_graph():
    vector = make_ref("v", 0.3, clause="1.1")
    graph = make_ref("g", 0.5, origin="graph", clause="2.1")
    assert rank_and_select([graph, vector])[0] is vector


def test_graph_share_is_capped():
    vector = [make_ref("v", 0.8, clause="1.1")]
    graph = [make_ref(f"g{i}", 0.5, origin="graph", clause=f"4.{i}") for i in range(6)]
    selected = rank_and_select(vector + graph, max_total=6, max_graph=4)
    assert len(selected) == 5
    assert sum(1 for r in selected if r.is_graph) == 4


def test_total_is_capped():
    rows = [make_ref(f"v{i}", 0.9 - i / 100, clause=f"1.{i}") for i in range(10)]
    assert len(rank_and_select(rows, max_total=6)) == 6


def test_empty_input():
    assert rank_and_select([]) == []
