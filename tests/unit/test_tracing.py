import logging

import pytest

from bid_review.obs.tracing import Timer, preview


def test_labelled_timer_logs_latency(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("bid_review.test")

    with caplog.at_level(logging.DEBUG, logger="bid_review.test"):
        with Timer("Chunk 1/3 review call", log) as timer:
            pass

    assert timer.elapsed_ms >= 0.0
    assert any(
        record.getMessage().startswith("Chunk 1/3 review call finished in")
        for record in caplog.records
    )


def test_timer_logs_failed_step_and_propagates(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="bid_review.obs.tracing"):
        with pytest.raises(RuntimeError):
            with Timer("Bid comparison call"):
                raise RuntimeError("boom")

    assert "Bid comparison call failed in" in caplog.text


def test_unlabelled_timer_is_silent(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG):
        with Timer():
            pass

    assert caplog.records == []


def test_preview_caps_length() -> None:
    assert preview("x" * 600) == "x" * 500
    assert preview("short", limit=3) == "sho"
