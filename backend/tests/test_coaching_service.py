import json

import pytest

from conftest import FakeCompletion
from interviewiq.errors import CompletionError, CompletionTimeout
from interviewiq.services.coaching_service import CoachingService


@pytest.mark.asyncio
async def test_improvement_parses_structured_reply():
    completion = FakeCompletion(
        replies=[json.dumps({"points": ["Lead with the result", "Cut filler"], "suggested": "I cut latency by 40%."})]
    )
    coaching = CoachingService(completion=completion)

    result = await coaching.request_improvement("Biggest win?", "we um made it faster")

    assert result.points == ["Lead with the result", "Cut filler"]
    assert result.suggested == "I cut latency by 40%."
    assert completion.calls[0]["json_mode"] is True
    assert completion.calls[0]["max_tokens"] == 300


@pytest.mark.asyncio
async def test_improvement_falls_back_when_reply_is_not_json():
    coaching = CoachingService(completion=FakeCompletion(replies=["Sure! Here are tips..."]))
    result = await coaching.request_improvement("Q", "a real answer")
    assert result.points == ["could not parse response"]
    assert result.suggested == "a real answer"


@pytest.mark.asyncio
async def test_improvement_falls_back_when_reply_has_wrong_shape():
    coaching = CoachingService(completion=FakeCompletion(replies=[json.dumps({"tips": "be better"})]))
    result = await coaching.request_improvement("Q", "a real answer")
    assert result.points == ["could not parse response"]


@pytest.mark.asyncio
async def test_improvement_falls_back_on_provider_error_or_timeout():
    coaching = CoachingService(
        completion=FakeCompletion(replies=[CompletionError("500"), CompletionTimeout("20s")])
    )
    for _ in range(2):
        result = await coaching.request_improvement("Q", "a real answer")
        assert result.points == ["Error generating improvements"]
        assert result.suggested == "a real answer"


@pytest.mark.asyncio
async def test_realtime_feedback_returns_none_on_failure():
    coaching = CoachingService(completion=FakeCompletion(replies=["Great structure.", CompletionError("boom")]))
    assert await coaching.realtime_feedback("I led the team", "Q") == "Great structure."
    assert await coaching.realtime_feedback("I led the team", "Q") is None
