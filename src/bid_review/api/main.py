"""FastAPI entrypoint for analyze, matrix and compare endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from bid_review.cache.result_cache import ResultCache
from bid_review.config import ReviewSettings
from bid_review.errors import ConfigurationError, TransportError
from bid_review.obs.tracing import configure_logging
from bid_review.review.invoker import ModelInvoker
from bid_review.review.pipeline import ReviewPipeline
from bid_review.types import Language

logger = logging.getLogger(__name__)

_CHARS_PER_PAGE = 1800


class AnalyzeRequest(BaseModel):
    text: str
    total_pages: int | None = Field(default=None, ge=0)
    model: str = "default"
    lang: Language = Language.ZH


class MatrixRequest(BaseModel):
    text: str = Field(min_length=1)
    model: str = "default"
    lang: Language = Language.ZH


class CompareRequest(BaseModel):
    rfp_text: str = Field(min_length=1)
    bid_text: str = Field(min_length=1)
    model: str = "default"
    lang: Language = Language.ZH


def estimate_page_count(text: str) -> int:
    """Rough page estimate for sources that carry no page count (e.g. DOCX)."""
    return max(1, round(len(text) / _CHARS_PER_PAGE))


def create_app(
    pipeline: ReviewPipeline | None = None,
    cache: ResultCache | None = None,
    settings: ReviewSettings | None = None,
) -> FastAPI:
    """Build the application around one shared cache and pipeline."""

    settings = settings or ReviewSettings()
    configure_logging(settings.bid_review_log_level)

    if pipeline is None:
        cache = cache or ResultCache()
        pipeline = ReviewPipeline(
            ModelInvoker(api_key=settings.openrouter_api_key),
            cache=cache,
        )
    elif cache is None:
        cache = pipeline.cache or ResultCache()
    pipeline.cache = cache
    result_cache = cache

    app = FastAPI(title="Bid Review Service", version="0.1.0")

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "llm_configured": pipeline.invoker.configured,
            "cached_results": len(result_cache),
        }

    @app.post("/analyze")
    async def analyze(request: AnalyzeRequest) -> dict[str, Any]:
        total_pages = (
            request.total_pages
            if request.total_pages is not None
            else estimate_page_count(request.text)
        )
        try:
            result = await pipeline.submit(
                request.text,
                total_pages=total_pages,
                model_key=request.model,
                language=request.lang,
            )
        except ConfigurationError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except TransportError as exc:
            logger.error(f"Analysis failed: {exc}")
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        return {
            "doc_id": result.doc_id,
            "total_pages": result.total_pages,
            "findings": [asdict(finding) for finding in result.findings],
            "finding_count": result.finding_count,
        }

    @app.get("/analyze/{doc_id}")
    def analysis_detail(doc_id: str) -> dict[str, Any]:
        result = result_cache.get(doc_id)
        if result is None:
            raise HTTPException(status_code=404, detail="Document not found or expired")
        return asdict(result)

    @app.delete("/analyze/{doc_id}")
    def delete_analysis(doc_id: str) -> dict[str, Any]:
        result_cache.delete(doc_id)
        return {"doc_id": doc_id, "deleted": True}

    @app.post("/matrix")
    async def matrix(request: MatrixRequest) -> dict[str, Any]:
        try:
            items = await pipeline.extract_requirements(
                request.text, model_key=request.model, language=request.lang
            )
        except ConfigurationError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except TransportError as exc:
            logger.error(f"Compliance matrix extraction failed: {exc}")
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"items": [asdict(item) for item in items], "count": len(items)}

    @app.post("/compare")
    async def compare(request: CompareRequest) -> dict[str, Any]:
        try:
            comparison = await pipeline.compare_documents(
                request.rfp_text,
                request.bid_text,
                model_key=request.model,
                language=request.lang,
            )
        except ConfigurationError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except TransportError as exc:
            logger.error(f"Bid comparison failed: {exc}")
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return asdict(comparison)

    return app


app = create_app()
