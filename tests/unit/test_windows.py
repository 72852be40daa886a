"""Tests for grouping corpus chunks into extraction windows."""

from conftest import make_chunk
from submittal_review.graph.windows import (
    build_window,
    estimate_tokens,
    group_chunks,
    last_sentences,
    sort_chunks,
)


def test_sort_chunks_orders_numbers_naturally():
    chunks = [
        make_chunk("a", clause="1.10"),
        make_chunk("b", clause="1.9"),
        make_chunk("c", section="10", clause="1.1"),
        make_chunk("d", section="2", clause="1.1"),
    ]
    assert [c.chunk_id for c in sort_chunks(chunks)] == ["d", "b", "a", "c"]


def test_last_sentences():
    text = "First sentence. Second one! Third one? Trailing fragment"
    assert last_sentences(text, 2) == "Second one! Third one?"
    assert last_sentences(text, 0) == ""
    assert last_sentences("no terminator", 2) == "no terminator"


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("abcde") == 2
    assert estimate_tokens("") == 0


def test_small_chunks_share_one_window():
    chunks = [make_chunk(f"c{i}", clause=f"1.{i}", tokens=100) for i in range(1, 4)]
    windows = group_chunks(chunks, max_tokens=2000)
    assert len(windows) == 1
    assert windows[0].chunk_ids == ["c1", "c2", "c3"]
    assert "[Clause 1.2: Materials]" in windows[0].content


def test_budget_split_carries_overlap():
    chunks = [make_chunk(f"c{i}", clause=f"1.{i}", tokens=1200) for i in range(1, 3)]
    windows = group_chunks(chunks, max_tokens=2000)
    assert [w.chunk_ids for w in windows] == [["c1"], ["c2"]]
    assert not windows[0].content.startswith("[context overlap]")
    assert windows[1].content.startswith("[context overlap]")
    assert "approved by the Engineer before use on site." in windows[1].content.split("\n\n")[0]


def test_oversized_chunk_gets_own_window():
    chunks = [make_chunk("big", tokens=5000), make_chunk("small", clause="1.2", tokens=10)]
    windows = group_chunks(chunks, max_tokens=2000)
    assert [w.chunk_ids for w in windows] == [["big"], ["small"]]


def test_part_change_starts_new_window_without_overlap():
    chunks = [
        make_chunk("p1", part="1", tokens=100),
        make_chunk("p2", part="2", tokens=100),
    ]
    windows = group_chunks(chunks, max_tokens=2000)
    assert [w.chunk_ids for w in windows] == [["p1"], ["p2"]]
    assert windows[1].part_number == "2"
    assert "[context overlap]" not in windows[1].content


def test_short_overlap_is_omitted():
    window = build_window([make_chunk("c1")], previous_content="Too short.")
    assert "[context overlap]" not in window.content


def test_window_without_clause_uses_section_header():
    window = build_window([make_chunk("c1", clause="")])
    assert window.content.startswith("[Section 5, Part 1]")
