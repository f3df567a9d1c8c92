"""End-to-end review: chunk -> prompt -> invoke -> repair -> normalize -> merge."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Sequence

from bid_review.cache.result_cache import ResultCache
from bid_review.config import ChunkingConfig, CompareConfig, MatrixConfig, PromptConfig
from bid_review.errors import ReviewError
from bid_review.ingest.chunker import FixedWindowChunker, split_into_chunks
from bid_review.obs.tracing import Timer, preview
from bid_review.review.invoker import ModelInvoker
from bid_review.review.normalizer import (
    normalize_comparison_item,
    normalize_finding,
    normalize_matrix_item,
)
from bid_review.review.prompts import (
    build_bid_compare_prompt,
    build_matrix_prompt,
    build_review_prompt,
)
from bid_review.review.repair import ResponseRepairParser
from bid_review.review.rules import RuleSpec, default_rules
from bid_review.types import (
    AnalysisResult,
    AnalysisStatus,
    BidComparison,
    BidComparisonSummary,
    Chunk,
    ChunkFindings,
    Finding,
    Language,
    MatrixItem,
)

logger = logging.getLogger(__name__)


def merge_chunk_results(results: Iterable[ChunkFindings]) -> list[Finding]:
    """Concatenate per-chunk findings in chunk-index order.

    Completion order is irrelevant; no cross-chunk deduplication happens.
    """

    merged: list[Finding] = []
    for result in sorted(results, key=lambda item: item.index):
        merged.extend(result.findings)
    return merged


class ReviewPipeline:
    """Coordinates the per-chunk review stages and the result cache.

    All chunks of a document are processed concurrently with no cap. Any
    configuration or transport failure fails the whole document; malformed
    model output only reduces the findings of the chunk it came from.
    """

    def __init__(
        self,
        invoker: ModelInvoker,
        *,
        cache: ResultCache | None = None,
        chunking: ChunkingConfig | None = None,
        prompt_config: PromptConfig | None = None,
        matrix_config: MatrixConfig | None = None,
        compare_config: CompareConfig | None = None,
        rules: Sequence[RuleSpec] | None = None,
        parser: ResponseRepairParser | None = None,
    ) -> None:
        self.invoker = invoker
        self.cache = cache
        self.chunker = FixedWindowChunker(chunking)
        self.prompt_config = prompt_config or PromptConfig()
        self.matrix_config = matrix_config or MatrixConfig()
        self.compare_config = compare_config or CompareConfig()
        self._rules = tuple(rules) if rules is not None else None
        self.parser = parser or ResponseRepairParser()

    def rules_for(self, language: Language | str) -> tuple[RuleSpec, ...]:
        return self._rules if self._rules is not None else default_rules(language)

    async def extract_findings(
        self,
        text: str,
        *,
        model_key: str = "default",
        language: Language | str = Language.ZH,
    ) -> list[Finding]:
        self.invoker.ensure_configured()
        lang = Language.parse(language)
        chunks = self.chunker.chunk(text)
        if len(chunks) > 1:
            logger.info(
                f"Text too long, splitting into chunks: text_length={len(text)} "
                f"chunk_size={self.chunker.config.max_chunk_chars} chunks={len(chunks)}"
            )

        results = await asyncio.gather(
            *(self._review_chunk(chunk, len(chunks), model_key, lang) for chunk in chunks)
        )
        findings = merge_chunk_results(results)
        repaired = {
            result.index: result.repair_strategy
            for result in results
            if result.repair_strategy != "strict"
        }
        if repaired:
            logger.warning(f"Chunks not parsed strictly (chunk index -> strategy): {repaired}")
        logger.info(f"Parsed {len(findings)} finding(s) from {len(chunks)} chunk(s)")
        return findings

    async def submit(
        self,
        text: str,
        *,
        total_pages: int,
        model_key: str = "default",
        language: Language | str = Language.ZH,
        doc_id: str | None = None,
    ) -> AnalysisResult:
        """Analyze a document and store the result under a fresh document id."""

        if self.cache is None:
            raise RuntimeError("ReviewPipeline.submit requires a ResultCache")
        doc_id = doc_id or str(uuid.uuid4())

        try:
            findings = await self.extract_findings(
                text, model_key=model_key, language=language
            )
        except ReviewError:
            self.cache.set(
                doc_id,
                AnalysisResult(
                    doc_id=doc_id,
                    total_pages=total_pages,
                    findings=[],
                    status=AnalysisStatus.FAILED,
                ),
            )
            raise

        result = AnalysisResult(
            doc_id=doc_id,
            total_pages=total_pages,
            findings=findings,
            status=AnalysisStatus.COMPLETED,
        )
        self.cache.set(doc_id, result)
        logger.info(f"Analysis completed: doc_id={doc_id} findings={len(findings)}")
        # Return the stored copy so callers see the cache timestamp.
        return self.cache.get(doc_id) or result

    async def extract_requirements(
        self,
        text: str,
        *,
        model_key: str = "default",
        language: Language | str = Language.ZH,
    ) -> list[MatrixItem]:
        """Extract mandatory RFP requirements into an ordered compliance matrix."""

        self.invoker.ensure_configured()
        cfg = self.matrix_config
        lang = Language.parse(language)
        truncated = text[: cfg.max_input_chars]
        chunks = split_into_chunks(truncated, cfg.chunk_chars, overlap=cfg.overlap_chars)

        per_chunk = await asyncio.gather(
            *(
                self._extract_chunk_requirements(chunk, len(chunks), model_key, lang)
                for chunk in chunks
            )
        )
        collected = [item for items in per_chunk for item in items]
        items = _dedupe_and_renumber(collected)
        logger.info(
            f"Compliance matrix merged requirements: total_raw={len(collected)} "
            f"total_deduped={len(items)} chunks={len(chunks)}"
        )
        return items

    async def compare_requirements(
        self,
        requirements: Sequence[MatrixItem],
        bid_text: str,
        *,
        model_key: str = "default",
        language: Language | str = Language.ZH,
    ) -> BidComparison:
        """Judge how fully `bid_text` answers each requirement in one call.

        The summary is counted from the normalized items; any summary the
        model reports is ignored.
        """

        self.invoker.ensure_configured()
        cfg = self.compare_config
        prompt = build_bid_compare_prompt(
            requirements, bid_text[: cfg.max_bid_chars], Language.parse(language)
        )
        with Timer("Bid comparison call", logger):
            raw_output = await self.invoker.invoke(
                prompt,
                model_key,
                temperature=cfg.temperature,
                max_output_tokens=cfg.max_output_tokens,
            )
        logger.debug(f"Bid comparison output: {preview(raw_output)!r}")

        records = self.parser.parse(raw_output)
        items = [
            normalize_comparison_item(record, i, requirements)
            for i, record in enumerate(records)
        ]
        summary = BidComparisonSummary.from_items(items)
        if not items:
            logger.warning(
                f"Bid comparison returned no items: requirements={len(requirements)} "
                f"bid_text_length={len(bid_text)}"
            )
        logger.info(f"Parsed bid comparison: {summary}")
        return BidComparison(items=items, summary=summary)

    async def compare_documents(
        self,
        rfp_text: str,
        bid_text: str,
        *,
        model_key: str = "default",
        language: Language | str = Language.ZH,
    ) -> BidComparison:
        """Extract the RFP's requirements, then check the bid against them."""

        requirements = await self.extract_requirements(
            rfp_text, model_key=model_key, language=language
        )
        if not requirements:
            logger.warning(
                f"Compliance matrix returned 0 requirements: rfp_text_length={len(rfp_text)}"
            )
        selected = requirements[: self.compare_config.max_requirements]
        logger.info(f"Comparing {len(selected)} of {len(requirements)} requirement(s)")
        return await self.compare_requirements(
            selected, bid_text, model_key=model_key, language=language
        )

    async def _review_chunk(
        self, chunk: Chunk, total: int, model_key: str, language: Language
    ) -> ChunkFindings:
        logger.debug(f"Processing chunk {chunk.index + 1}/{total} ({language.value})")
        prompt = build_review_prompt(
            chunk.text, self.rules_for(language), language, config=self.prompt_config
        )
        with Timer(f"Chunk {chunk.index + 1}/{total} review call", logger):
            raw_output = await self.invoker.invoke(prompt, model_key)
        logger.debug(f"Chunk {chunk.index + 1}/{total} output: {preview(raw_output)!r}")

        outcome = self.parser.parse_with_outcome(raw_output)
        return ChunkFindings(
            index=chunk.index,
            findings=[normalize_finding(record) for record in outcome.records],
            repair_strategy=outcome.strategy,
        )

    async def _extract_chunk_requirements(
        self, chunk: Chunk, total: int, model_key: str, language: Language
    ) -> list[MatrixItem]:
        cfg = self.matrix_config
        prompt = build_matrix_prompt(
            chunk.text,
            language,
            chunk_index=chunk.index + 1,
            total_chunks=total,
            max_items=cfg.max_items_per_chunk,
        )
        logger.info(
            f"Matrix chunk {chunk.index + 1}/{total}: chunk_chars={len(chunk.text)}"
        )
        raw_output = await self.invoker.invoke(
            prompt,
            model_key,
            temperature=cfg.temperature,
            max_output_tokens=cfg.max_output_tokens,
        )
        records = self.parser.parse(raw_output)
        return [normalize_matrix_item(record, i) for i, record in enumerate(records)]


def _requirement_key(text: str) -> str:
    return " ".join(text.split()).lower()


def _dedupe_and_renumber(items: Iterable[MatrixItem]) -> list[MatrixItem]:
    # Overlapping windows repeat the requirements near each boundary.
    seen: set[str] = set()
    unique: list[MatrixItem] = []
    for item in items:
        key = _requirement_key(item.requirement_text)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(item)
    for position, item in enumerate(unique, start=1):
        item.requirement_id = str(position)
    return unique
