import json

import httpx
import openai
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from bid_review.cache.result_cache import ResultCache
from bid_review.review.invoker import ModelInvoker
from bid_review.review.pipeline import ReviewPipeline


class MockChatModel:
    def __init__(self, reply: str | Exception) -> None:
        self.reply = reply

    def factory(self, model: str, temperature: float, max_output_tokens: int) -> "MockChatModel":
        return self

    async def ainvoke(self, messages):
        if isinstance(self.reply, Exception):
            raise self.reply
        return AIMessage(content=self.reply)


_REVIEW_REPLY = json.dumps(
    {
        "errors": [
            {
                "rule_id": "R0001",
                "title": "Price mismatch",
                "severity": "Critical",
                "page_no": 2,
                "snippet": "1,000,000 vs 990,000",
                "suggestion": "Align totals",
                "confidence": 0.95,
            }
        ]
    }
)


def _client(
    reply: str | Exception, api_key: str | None = "sk-test"
) -> tuple[TestClient, ResultCache]:
    from bid_review.api.main import create_app

    cache = ResultCache()
    invoker = ModelInvoker(api_key=api_key, chat_model_factory=MockChatModel(reply).factory)
    app = create_app(pipeline=ReviewPipeline(invoker), cache=cache)
    return TestClient(app), cache


def test_api_analyze_retrieve_delete() -> None:
    client, _ = _client(_REVIEW_REPLY)

    analyze_resp = client.post("/analyze", json={"text": "x" * 3600, "lang": "en"})
    assert analyze_resp.status_code == 200
    payload = analyze_resp.json()
    assert payload["total_pages"] == 2
    assert payload["finding_count"] == 1
    assert payload["findings"][0]["severity"] == "Critical"
    assert payload["findings"][0]["priority"] == "P1"

    detail_resp = client.get(f"/analyze/{payload['doc_id']}")
    assert detail_resp.status_code == 200
    assert detail_resp.json()["status"] == "completed"
    assert detail_resp.json()["findings"][0]["title"] == "Price mismatch"

    health_resp = client.get("/health")
    assert health_resp.json() == {"status": "ok", "llm_configured": True, "cached_results": 1}

    delete_resp = client.delete(f"/analyze/{payload['doc_id']}")
    assert delete_resp.status_code == 200
    assert client.get(f"/analyze/{payload['doc_id']}").status_code == 404


def test_api_unknown_document_is_404() -> None:
    client, _ = _client(_REVIEW_REPLY)

    resp = client.get("/analyze/does-not-exist")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Document not found or expired"


def test_api_explicit_page_count_and_validation() -> None:
    client, _ = _client(_REVIEW_REPLY)

    explicit = client.post("/analyze", json={"text": "bid", "total_pages": 17})
    invalid = client.post("/analyze", json={"text": "bid", "total_pages": -1})

    assert explicit.json()["total_pages"] == 17
    assert invalid.status_code == 422


def test_api_missing_credential_is_500() -> None:
    client, cache = _client(_REVIEW_REPLY, api_key=None)

    resp = client.post("/analyze", json={"text": "bid"})

    assert resp.status_code == 500
    assert "OPENROUTER_API_KEY" in resp.json()["detail"]
    assert client.get("/health").json()["llm_configured"] is False


def test_api_gateway_failure_is_502_and_recorded() -> None:
    response = httpx.Response(429, request=httpx.Request("POST", "https://openrouter.ai"))
    error = openai.APIStatusError("Rate limited", response=response, body=None)
    client, cache = _client(error)

    resp = client.post("/analyze", json={"text": "bid"})

    assert resp.status_code == 502
    (doc_id,) = cache.doc_ids()
    assert client.get(f"/analyze/{doc_id}").json()["status"] == "failed"


def test_api_matrix_returns_numbered_items() -> None:
    reply = json.dumps([{"id": 7, "text": "The bidder shall sign.", "page": 3}])
    client, _ = _client(reply)

    resp = client.post("/matrix", json={"text": "RFP body", "lang": "en"})

    assert resp.status_code == 200
    assert resp.json()["count"] == 1
    assert resp.json()["items"][0]["requirement_id"] == "1"
    assert resp.json()["items"][0]["source_page"] == 3
    assert client.post("/matrix", json={"text": ""}).status_code == 422


def test_api_compare_returns_items_and_summary() -> None:
    # One bare-array reply serves both the matrix step and the comparison step.
    reply = json.dumps(
        [{"id": 1, "text": "The bidder shall sign.", "requirement_id": "1", "status": "partial"}]
    )
    client, _ = _client(reply)

    resp = client.post(
        "/compare", json={"rfp_text": "RFP body", "bid_text": "Bid body", "lang": "en"}
    )

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["items"][0]["status"] == "partially_covered"
    assert payload["items"][0]["requirement_text"] == "The bidder shall sign."
    assert payload["summary"] == {
        "total": 1,
        "covered": 0,
        "partially_covered": 1,
        "missing": 0,
    }
    assert client.post("/compare", json={"rfp_text": "", "bid_text": "x"}).status_code == 422


def test_api_compare_without_credential_is_500() -> None:
    client, _ = _client("[]", api_key=None)

    resp = client.post("/compare", json={"rfp_text": "RFP", "bid_text": "Bid"})

    assert resp.status_code == 500
