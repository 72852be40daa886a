"""Tests for the two-strategy graph extractor."""

import pytest

from conftest import ScriptedLLM, make_chunk
from submittal_review.exceptions import GenerationError, StructuredOutputParseFailure
from submittal_review.graph.extractor import GraphExtractor, parse_json_block
from submittal_review.graph.windows import build_window

EXTRACTION = {
    "groups": [
        {
            "group_index": 0,
            "entities": [
                {"name": "Portland Cement", "type": "MATERIAL"},
                {"name": "BS EN 197-1", "type": "STANDARD"},
            ],
            "relationships": [
                {"source": "Portland Cement", "target": "BS EN 197-1", "type": "MUST_COMPLY_WITH"}
            ],
        }
    ]
}

FENCED_REPLY = """Here is the extraction:
```json
{"groups": [{"group_index": 0, "entities": [{"name": "Slump test", "type": "TEST_METHOD"}], "relationships": []}]}
```"""


@pytest.fixture
def windows():
    return [build_window([make_chunk("c1")])]


def test_parse_json_block_ignores_fences():
    assert parse_json_block(FENCED_REPLY)["groups"][0]["group_index"] == 0


def test_parse_json_block_without_object():
    with pytest.raises(ValueError):
        parse_json_block("no json here")


async def test_structured_strategy_used_first(windows):
    llm = ScriptedLLM(structured=[EXTRACTION])
    result = await GraphExtractor(llm).extract(windows)
    assert [e.name for e in result.groups[0].entities] == ["Portland Cement", "BS EN 197-1"]
    assert len(llm.prompts) == 1
    assert "--- GROUP 0 (Section 5: Concrete, Part 1: General) ---" in llm.prompts[0]


async def test_falls_back_to_free_text(windows):
    llm = ScriptedLLM(structured=[GenerationError("schema rejected")], texts=[FENCED_REPLY])
    result = await GraphExtractor(llm).extract(windows)
    assert result.groups[0].entities[0].type == "TEST_METHOD"
    assert len(llm.prompts) == 2


async def test_both_strategies_failing_raises(windows):
    llm = ScriptedLLM(structured=[GenerationError("schema rejected")], texts=["I cannot help with that"])
    with pytest.raises(StructuredOutputParseFailure):
        await GraphExtractor(llm).extract(windows, batch_index=7)


async def test_fallback_rejects_invalid_shape(windows):
    llm = ScriptedLLM(
        structured=[GenerationError("timeout")],
        texts=['{"groups": [{"group_index": 0, "entities": [{"name": "X", "type": "PERSON"}]}]}'],
    )
    with pytest.raises(StructuredOutputParseFailure):
        await GraphExtractor(llm).extract(windows)
