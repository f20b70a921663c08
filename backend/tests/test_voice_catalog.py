import random

import httpx
import pytest

from conftest import FakeCatalog
from interviewiq.errors import VoiceCatalogError
from interviewiq.services.voice_assignment import FALLBACK_VOICE, assign_voice, classify_question
from interviewiq.services.voice_catalog import VoiceCatalog

VOICES = [
    {"voiceId": "en-US-cooper", "displayName": "Cooper (M)", "locale": "en-US", "gender": "Male"},
    {"voiceId": "en-UK-hazel", "displayName": "Hazel (F)", "locale": "en-UK", "gender": "Female"},
    {"voiceId": "en-US-natalie", "displayName": "Natalie (F)", "locale": "en-US", "gender": "Female"},
    {"voiceId": "de-DE-matthias", "displayName": "Matthias (M)", "locale": "de-DE", "gender": "Male"},
]


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _catalog(status: int = 200, body=None, clock=None):
    calls = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json=VOICES if body is None else body)

    catalog = VoiceCatalog(
        api_key="murf-key",
        url="https://voices.test/v1/speech/voices",
        ttl_sec=60,
        transport=httpx.MockTransport(_handler),
        clock=clock or _Clock(),
        rng=random.Random(7),
    )
    return catalog, calls


@pytest.mark.asyncio
async def test_catalog_caches_until_ttl_expires():
    clock = _Clock()
    catalog, calls = _catalog(clock=clock)

    await catalog.get_voices()
    await catalog.get_voices()
    assert len(calls) == 1
    assert calls[0].headers["api-key"] == "murf-key"

    clock.now += 61
    await catalog.get_voices()
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_find_voice_by_id_or_display_name():
    catalog, _ = _catalog()
    assert await catalog.find_voice_id_by_name("COOPER") == "en-US-cooper"
    assert await catalog.find_voice_id_by_name("natalie") == "en-US-natalie"
    assert await catalog.find_voice_id_by_name("nobody") is None


@pytest.mark.asyncio
async def test_random_voice_filters_by_locale_and_gender():
    catalog, _ = _catalog()
    for _ in range(10):
        voice_id = await catalog.random_voice("en", "female")
        assert voice_id in {"en-UK-hazel", "en-US-natalie"}
    assert await catalog.random_voice("de") == "de-DE-matthias"

    with pytest.raises(VoiceCatalogError):
        await catalog.random_voice("fr")


@pytest.mark.asyncio
async def test_http_failure_raises_catalog_error_and_warm_swallows_it():
    catalog, _ = _catalog(status=500, body={"error": "down"})
    with pytest.raises(VoiceCatalogError):
        await catalog.get_voices()
    await catalog.warm()


def test_classify_question():
    assert classify_question("Walk me through a Python project") == "technical"
    assert classify_question("Describe a conflict with your team") == "behavioral"
    assert classify_question("Why do you want to join us?") == "general"


@pytest.mark.asyncio
async def test_assign_voice_by_question_kind():
    catalog = FakeCatalog()

    technical = await assign_voice(catalog, "How do you debug a system outage?", 0)
    assert technical.voice_id == "en-US-cooper"
    assert technical.name == "Technical Interviewer"

    behavioral = await assign_voice(catalog, "Tell me about a mistake you made", 1)
    assert behavioral.voice_id == "en-UK-hazel"
    assert behavioral.name == "HR Manager"

    general = await assign_voice(catalog, "Why do you want to join us?", 2)
    assert general.voice_id == "en-US-random-any"
    assert general.style == "Conversational"


@pytest.mark.asyncio
async def test_assign_voice_falls_back_when_catalog_fails():
    voice = await assign_voice(FakeCatalog(fail=True), "Tell me about a team conflict", 0)
    assert voice == FALLBACK_VOICE
    assert voice.voice_id == "en-UK-hazel"
