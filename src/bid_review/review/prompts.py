"""Prompt rendering for review, compliance-matrix and bid-comparison requests.

Every builder here is pure: the same inputs always render the same text.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from bid_review.config import PromptConfig
from bid_review.review.rules import RuleSpec
from bid_review.types import Language, MatrixItem, Priority, Severity

_FENCE = "```"

_REVIEW_EXAMPLE_EN = """{
  "errors": [
    {
      "rule_id": "R0001",
      "title": "Inconsistent total price between tables",
      "severity": "Critical",
      "priority": "P1",
      "page_no": 12,
      "snippet": "Bid opening summary total: 1,000,000; detailed quotation total: 990,000",
      "suggestion": "Unify and re-check all price tables to ensure the totals are exactly the same.",
      "confidence": 0.95
    },
    {
      "rule_id": "R0002",
      "title": "Typo in text",
      "severity": "Low",
      "priority": "P3",
      "page_no": 5,
      "snippet": "conteent  , scientific",
      "suggestion": "should be: content, scientific (remove the extra space and fix the typo)",
      "confidence": 0.9
    }
  ]
}"""

_REVIEW_EXAMPLE_ZH = """{
  "errors": [
    {
      "rule_id": "R0001",
      "title": "价格不一致",
      "severity": "Critical",
      "priority": "P1",
      "page_no": 12,
      "snippet": "开标一览表总价：100万元，报价明细表：99万元",
      "suggestion": "立即统一并核对所有表格价格",
      "confidence": 0.95
    },
    {
      "rule_id": "R0002",
      "title": "错别字",
      "severity": "Low",
      "priority": "P3",
      "page_no": 5,
      "snippet": "内容片面  、科学性",
      "suggestion": "应为：内容片面、科学性（删除多余空格）",
      "confidence": 0.9
    }
  ]
}"""

_MATRIX_EXAMPLE_EN = """[
  {
    "id": 1,
    "text": "The bidder shall provide at least three similar project references in the last three years.",
    "page": 5,
    "section": "3.1"
  },
  {
    "id": 2,
    "text": "The system must support 7x24 hours operation with no single point of failure.",
    "page": 8,
    "section": "4.2.1"
  }
]"""

SEVERITY_VALUES = ", ".join(severity.value for severity in Severity)
PRIORITY_VALUES = ", ".join(priority.value for priority in Priority)


def truncate_for_prompt(text: str, max_chars: int) -> str:
    return text[:max_chars]


def render_rule_table(rules: Sequence[RuleSpec], language: Language | str) -> str:
    if Language.parse(language) is Language.EN:
        header = "| ID | Rule | Priority | Description |"
    else:
        header = "| ID | 检查项 | 优先级 | 检查内容 |"
    lines = [header, "| :--- | :--- | :--- | :--- |"]
    for rule in rules:
        lines.append(
            f"| **{rule.id}** | **{rule.title}** | **{rule.priority.value}** | {rule.description} |"
        )
    return "\n".join(lines)


def build_review_prompt(
    chunk_text: str,
    rules: Sequence[RuleSpec],
    language: Language | str = Language.ZH,
    *,
    config: PromptConfig | None = None,
) -> str:
    """Render the review instruction for one chunk of a bid document."""

    cfg = config or PromptConfig()
    body = truncate_for_prompt(chunk_text, cfg.max_prompt_chars)
    table = render_rule_table(rules, language)
    if Language.parse(language) is Language.EN:
        return _review_prompt_en(body, table, cfg)
    return _review_prompt_zh(body, table, cfg)


def _review_prompt_en(body: str, table: str, cfg: PromptConfig) -> str:
    return f"""# Role & Objective
You are an expert AI assistant specialized in government procurement and bid proposal review (rfpai core engine).

**Goal:** Strictly follow the following **Checklist & Rules** to review the bid document, and identify all risks in three levels:
- **P1**: Fatal issues that may directly cause bid rejection
- **P2**: Major issues that may cause score deduction or disadvantages
- **P3**: Formatting / minor issues

**Key principle:** Every issue you return **must be traceable to a specific page number and text snippet**.

# Full bid document text
{body}

# Checklist & Rules
{table}

# Output format (MUST be valid JSON)
Return **only** a JSON object in the following format. Do **not** include any extra explanation or commentary:
{_FENCE}json
{_REVIEW_EXAMPLE_EN}
{_FENCE}

## Important requirements
1. Each error **must** contain an accurate **page_no**. If you cannot infer the exact page number, use 0.
2. **snippet** must contain the concrete problematic text (no more than 50 characters if possible).
3. Do **not** return errors with **confidence < {cfg.min_confidence}**.
4. If a rule has no issues, **do not** include that rule in the errors array.
5. **severity** must be one of: {SEVERITY_VALUES}.
6. **priority** must be one of: {PRIORITY_VALUES}.
7. Return **only JSON**, with no extra explanation around it.
8. **Prioritize P1 and P2 issues. P3 issues should only include the most important {cfg.max_low_priority_findings} items.**
9. **At most {cfg.max_findings_per_rule} error examples per rule.**"""


def _review_prompt_zh(body: str, table: str, cfg: PromptConfig) -> str:
    return f"""# 角色与目标
**角色：** 您是专业的政府采购/招投标AI审查专家（rfpai 审查核心）。
**任务目标：** 严格遵循以下《检查清单》对投标文件进行审查，识别所有废标（P1）、扣分（P2）、格式（P3）风险。
**核心原则：** 必须确保所有查出的问题，均能追溯到**具体的页码和段落**。

# 投标文件内容全文:
{body}

# 检查清单与规则
{table}

# 输出格式（必须返回 JSON）
请返回以下格式的 JSON，不要包含任何其他文字说明：
{_FENCE}json
{_REVIEW_EXAMPLE_ZH}
{_FENCE}

**重要提示：**
1. 每个错误必须包含准确的 page_no（从文本中推断页码，如果无法推断则返回 0）
2. snippet 必须包含具体的错误内容（不超过50字）
3. confidence < {cfg.min_confidence} 的不要返回
4. 如果某个规则没有发现问题，不要返回该规则的错误
5. severity 必须是: {SEVERITY_VALUES} 之一
6. priority 必须是: {PRIORITY_VALUES} 之一
7. 只返回 JSON，不要有其他解释文字
8. **优先返回 P1 和 P2 级别的错误，P3 级别的错误只返回最重要的前 {cfg.max_low_priority_findings} 个**
9. **每个规则最多返回 {cfg.max_findings_per_rule} 个错误示例**"""


def build_matrix_prompt(
    rfp_text: str,
    language: Language | str = Language.ZH,
    *,
    chunk_index: int = 1,
    total_chunks: int = 1,
    max_items: int = 120,
) -> str:
    """Render the mandatory-requirement extraction instruction for one RFP window."""

    if Language.parse(language) is Language.EN:
        chunk_note = (
            f"Chunking note: This is part {chunk_index} of {total_chunks}. "
            "Extract requirements ONLY from this part. Do not reference other parts."
            if total_chunks > 1
            else ""
        )
        base = f"""You are an expert RFP analyst.
Your task is to read the following RFP document and extract **all mandatory requirements**.

- Focus on sentences or clauses that express mandatory obligations, especially those containing keywords such as:
  - "shall", "must", "will", "required", "mandatory"
- For Chinese RFPs, also include phrases such as: "必须", "应当", "不得", "须提供".

For each mandatory requirement you find, return one JSON object with:
- "id": an incremental integer starting from 1
- "text": the original requirement sentence or clause (as concise as possible but complete)
- "page": the page number if you can infer it (otherwise 0)
- "section": the reference section number or heading, e.g. "3.1", "4.2.1" or a short section title.

Return **only** a JSON array in the following format, with no extra explanation:
{_FENCE}json
{_MATRIX_EXAMPLE_EN}
{_FENCE}

Important rules:
1. Do NOT include optional or purely descriptive sentences.
2. Prefer requirements that clearly describe what the bidder **shall/must** do or provide.
3. If you cannot infer page number or section, use 0 for page and an empty string for section.
4. Output must be valid JSON array, with no trailing commas.
5. Keep each item's text concise (preferably <= 300 characters).
6. If the chunk contains many requirements, you may return at most {max_items} items for this chunk.

{chunk_note}

Now analyze the following RFP text and output the JSON array of mandatory requirements:"""
    else:
        chunk_note = (
            f"分段提示：这是第 {chunk_index} / {total_chunks} 段。只从本段文本中提取要求，不要引用其他段落。"
            if total_chunks > 1
            else ""
        )
        base = f"""你是资深招标文件（RFP）分析专家。
你的任务是从下方招标文件文本中提取 **所有强制性要求/硬性条款**。

- 重点关注包含“必须/应当/须/不得/需要/要求/shall/must/required”等表达强制义务的句子或条款。

对每条强制性要求，返回一个 JSON 对象，包含：
- "id": 从 1 开始的递增整数
- "text": 要求原文（尽量精炼但需完整）
- "page": 能推断则给页码，否则 0
- "section": 能推断则给章节号/标题，否则空字符串

重要规则：
1. 不要包含可选项或纯描述性内容。
2. 输出必须是 **有效 JSON 数组**，不要任何额外解释文字。
3. 每条 text 尽量简短（建议 <= 300 字）。
4. 若本段落包含很多要求，可最多返回 {max_items} 条。

{chunk_note}

现在开始分析下方 RFP 文本并输出 JSON 数组："""

    return f"""{base}

----- BEGIN RFP TEXT -----
{rfp_text}
----- END RFP TEXT -----"""


_COMPARE_EXAMPLE_EN = """{
  "items": [
    {
      "id": 1,
      "requirement_id": 1,
      "requirement_text": "The bidder shall provide ...",
      "status": "covered", // one of: covered, partially_covered, missing
      "evidence": "Short quote or description of where it is addressed in the bid",
      "comment": "Any short explanation or risk note"
    }
  ],
  "summary": {
    "total": 10,
    "covered": 6,
    "partially_covered": 2,
    "missing": 2
  }
}"""

_COMPARE_EXAMPLE_ZH = """{
  "items": [
    {
      "id": 1,
      "requirement_id": 1,
      "requirement_text": "投标人应当提供不少于三份近三年的类似业绩证明……",
      "status": "covered", // covered / partially_covered / missing 三选一
      "evidence": "简要说明在投标文件哪里体现了该要求，可包含少量引用文本",
      "comment": "补充说明或风险提示"
    }
  ],
  "summary": {
    "total": 10,
    "covered": 6,
    "partially_covered": 2,
    "missing": 2
  }
}"""


def render_requirements_json(requirements: Sequence[MatrixItem]) -> str:
    return json.dumps(
        [
            {
                "id": item.requirement_id,
                "text": item.requirement_text,
                "page": item.source_page,
                "section": item.source_section,
            }
            for item in requirements
        ],
        ensure_ascii=False,
        indent=2,
    )


def build_bid_compare_prompt(
    requirements: Sequence[MatrixItem],
    bid_text: str,
    language: Language | str = Language.ZH,
) -> str:
    """Render the coverage check of `bid_text` against extracted requirements.

    `bid_text` is embedded as given; callers truncate it first.
    """

    requirements_json = render_requirements_json(requirements)
    if Language.parse(language) is Language.EN:
        return f"""You are an expert bid consultant.

You are given:
1) A list of mandatory RFP requirements (JSON array below).
2) The full text of a bid/proposal document.

For each requirement, decide whether the bid **fully covers**, **partially covers**, or **does not cover** the requirement.

### Output format (MUST be valid JSON, no extra commentary)
Return a JSON object like:
{_FENCE}json
{_COMPARE_EXAMPLE_EN}
{_FENCE}

Rules:
1. If the bid clearly and fully satisfies the requirement, use status = "covered".
2. If the bid mentions it but in an incomplete or weak way, use status = "partially_covered".
3. If you cannot find any relevant content, use status = "missing" and set evidence to "not found".
4. evidence should be short (<= 200 characters) and concrete.
5. summary counts must be consistent with items.

### RFP mandatory requirements (JSON array)
{requirements_json}

### Bid / proposal full text (truncated)
{bid_text}"""

    return f"""你是一名资深招投标顾问。

你将拿到：
1）一份从招标文件（RFP）中提取出来的【强制性要求列表】（下面的 JSON 数组）；
2）一份投标文件的全文内容。

请针对每一条 RFP 要求，判断投标文件是：**完全覆盖**、**部分覆盖**，还是**未覆盖**。

### 输出格式（必须是合法 JSON，不要额外解释）
请严格返回如下结构：
{_FENCE}json
{_COMPARE_EXAMPLE_ZH}
{_FENCE}

规则：
1. 如果投标文件中对该要求有清晰且充分的响应，status = "covered"；
2. 如果有提到但不够完整、存在缺口或表述较弱，status = "partially_covered"；
3. 如果基本找不到相关内容，status = "missing"，并将 evidence 设为 "not found" 或类似说明；
4. evidence 需尽量简短（不超过 200 字），但要具体；
5. summary 中的各项计数必须与 items 一致。

### 招标文件强制性要求列表（JSON 数组）
{requirements_json}

### 投标文件全文（已截断）
{bid_text}"""
