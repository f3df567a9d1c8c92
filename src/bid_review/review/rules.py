"""Static review rule tables."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from bid_review.types import Language, Priority


class RuleSpec(BaseModel):
    """One checklist rule the reasoning service must apply."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    priority: Priority


RULES_EN: tuple[RuleSpec, ...] = (
    RuleSpec(
        id="R0001",
        title="Price consistency",
        priority=Priority.P1,
        description=(
            "Extract the total price (both uppercase and lowercase if available) from the "
            "“Bid opening summary table” and the “Detailed quotation table”, "
            "and check if they are fully consistent."
        ),
    ),
    RuleSpec(
        id="R0002",
        title="Typos & formatting",
        priority=Priority.P3,
        description=(
            "Scan the whole document line by line to find typos, wrong punctuation, extra "
            "spaces, inconsistent page numbers, etc. **For typo errors, the suggestion field "
            'must clearly give the corrected text in one of these formats: "should be: '
            'CORRECT_TEXT" or "correct text: CORRECT_TEXT".**'
        ),
    ),
    RuleSpec(
        id="R0003",
        title="Identity information consistency",
        priority=Priority.P1,
        description=(
            "Extract the company full name, short name, and unified social credit code "
            "(or registration number) and make sure they are fully consistent."
        ),
    ),
    RuleSpec(
        id="F2",
        title="Mandatory clauses negative deviation",
        priority=Priority.P1,
        description=(
            'Extract all clauses marked with "★" and check whether they are fully satisfied.'
        ),
    ),
    RuleSpec(
        id="S1",
        title="Important technical parameters negative deviation",
        priority=Priority.P2,
        description='Extract all clauses marked with "▲" and identify any negative deviation.',
    ),
    RuleSpec(
        id="S2",
        title="Missing supporting documents",
        priority=Priority.P2,
        description=(
            "Check whether all required technical/supporting documents are provided and valid."
        ),
    ),
    RuleSpec(
        id="R4",
        title="Signature & stamping completeness",
        priority=Priority.P3,
        description=(
            "Check signatures, company chop / stamps, and whether all required pages are "
            "signed and stamped."
        ),
    ),
)

RULES_ZH: tuple[RuleSpec, ...] = (
    RuleSpec(
        id="R0001",
        title="价格一致性",
        priority=Priority.P1,
        description="提取《开标一览表》和《投标报价明细表》中的大写、小写总价，比对是否完全一致",
    ),
    RuleSpec(
        id="R0002",
        title="错别字与格式",
        priority=Priority.P3,
        description=(
            "逐行扫描全文，识别：错别字、标点误用、多余空格、页码不一致。"
            '**对于错别字，suggestion 必须明确给出正确写法，格式："应为：正确内容"**'
        ),
    ),
    RuleSpec(
        id="R0003",
        title="身份信息一致性",
        priority=Priority.P1,
        description="提取公司全称/简称/统一社会信用代码，确保完全一致",
    ),
    RuleSpec(
        id="F2",
        title="强制条款负偏离",
        priority=Priority.P1,
        description='提取所有带"★"的条款，确认是否完全满足',
    ),
    RuleSpec(
        id="S1",
        title="重要参数负偏离",
        priority=Priority.P2,
        description='提取所有带"▲"的条款，识别负偏离',
    ),
    RuleSpec(
        id="S2",
        title="证明材料缺失",
        priority=Priority.P2,
        description="检查技术支持资料是否有效",
    ),
    RuleSpec(
        id="R4",
        title="签署完整性",
        priority=Priority.P3,
        description="检查签署和公章状态",
    ),
)


def default_rules(language: Language | str) -> tuple[RuleSpec, ...]:
    return RULES_EN if Language.parse(language) is Language.EN else RULES_ZH
