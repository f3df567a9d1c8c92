from bid_review.config import PromptConfig
from bid_review.review.prompts import (
    build_bid_compare_prompt,
    build_matrix_prompt,
    build_review_prompt,
    render_rule_table,
)
from bid_review.review.rules import default_rules
from bid_review.types import Language, MatrixItem


def test_review_prompt_is_deterministic() -> None:
    rules = default_rules(Language.EN)

    first = build_review_prompt("Total price: 1,000,000", rules, Language.EN)
    second = build_review_prompt("Total price: 1,000,000", rules, Language.EN)

    assert first == second


def test_review_prompt_states_output_contract() -> None:
    prompt = build_review_prompt("chunk body", default_rules(Language.EN), Language.EN)

    assert "Critical, High, Medium, Low" in prompt
    assert "P1, P2, P3" in prompt
    assert "confidence < 0.7" in prompt
    assert "Return **only JSON**" in prompt
    assert '"errors"' in prompt
    assert "page_no" in prompt
    assert "chunk body" in prompt


def test_chinese_prompt_carries_the_same_contract() -> None:
    prompt = build_review_prompt("投标文件正文", default_rules(Language.ZH), Language.ZH)

    assert "只返回 JSON" in prompt
    assert "confidence < 0.7" in prompt
    assert "Critical, High, Medium, Low" in prompt
    assert "投标文件正文" in prompt


def test_review_prompt_lists_every_rule() -> None:
    rules = default_rules(Language.EN)

    prompt = build_review_prompt("x", rules, Language.EN)

    for rule in rules:
        assert f"**{rule.id}**" in prompt
    assert "**R0001**" in render_rule_table(rules, Language.EN)


def test_chunk_text_is_capped_inside_prompt() -> None:
    config = PromptConfig(max_prompt_chars=100)
    chunk = "A" * 100 + "OVERFLOW"

    prompt = build_review_prompt(chunk, default_rules("en"), "en", config=config)

    assert "A" * 100 in prompt
    assert "OVERFLOW" not in prompt


def test_limits_follow_prompt_config() -> None:
    config = PromptConfig(min_confidence=0.8, max_findings_per_rule=3)

    prompt = build_review_prompt("x", default_rules("en"), "en", config=config)

    assert "confidence < 0.8" in prompt
    assert "At most 3 error examples per rule" in prompt


def test_matrix_prompt_mentions_chunk_only_when_split() -> None:
    single = build_matrix_prompt("The bidder shall sign.", Language.EN)
    split = build_matrix_prompt(
        "The bidder shall sign.", Language.EN, chunk_index=2, total_chunks=3, max_items=50
    )

    assert "Chunking note" not in single
    assert "part 2 of 3" in split
    assert "at most 50 items" in split
    assert split.endswith("----- END RFP TEXT -----")


def test_compare_prompt_embeds_requirements_and_bid() -> None:
    requirements = [
        MatrixItem(requirement_id="1", requirement_text="投标人须提供保证金", source_page=3),
        MatrixItem(requirement_id="2", requirement_text="Deliver within 30 days."),
    ]

    prompt = build_bid_compare_prompt(requirements, "BID BODY", Language.EN)

    assert prompt == build_bid_compare_prompt(requirements, "BID BODY", Language.EN)
    assert "投标人须提供保证金" in prompt
    assert '"page": 3' in prompt
    assert "covered, partially_covered, missing" in prompt
    assert prompt.endswith("BID BODY")


def test_chinese_compare_prompt_lists_statuses() -> None:
    prompt = build_bid_compare_prompt([], "投标正文", Language.ZH)

    assert "covered / partially_covered / missing" in prompt
    assert "[]" in prompt
    assert prompt.endswith("投标正文")
