import logging
import random
import time
from typing import Any, Callable, Optional

import httpx

from core.config import MURF_API_KEY, MURF_VOICES_URL, VOICE_CACHE_TTL_SEC, VOICE_CATALOG_TIMEOUT_SEC
from interviewiq.errors import VoiceCatalogError

logger = logging.getLogger("interviewiq.services.voice_catalog")


class VoiceCatalog:
    """
    Cached view of the synthesis provider's voice list.

    One instance per process, handed to sessions through the dependency
    provider. Refreshes are not serialized: two sessions hitting an expired
    cache at once may both fetch, and the later write wins.
    """

    def __init__(
        self,
        api_key: str = MURF_API_KEY,
        url: str = MURF_VOICES_URL,
        ttl_sec: float = VOICE_CACHE_TTL_SEC,
        timeout_sec: float = VOICE_CATALOG_TIMEOUT_SEC,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.ttl_sec = float(ttl_sec)
        self.timeout_sec = float(timeout_sec)
        self.transport = transport
        self.clock = clock
        self.rng = rng or random.Random()
        self._voices: Optional[list[dict[str, Any]]] = None
        self._fetched_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        if self._voices is None or self._fetched_at is None:
            return False
        return (self.clock() - self._fetched_at) < self.ttl_sec

    async def _fetch(self) -> list[dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self.transport) as client:
                response = await client.get(self.url, headers={"api-key": self.api_key})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("voice catalog fetch failed | err=%s", exc)
            raise VoiceCatalogError("Failed to fetch available voices") from exc

        if not isinstance(data, list):
            raise VoiceCatalogError("Voice catalog response is not a list")
        return [item for item in data if isinstance(item, dict)]

    async def get_voices(self) -> list[dict[str, Any]]:
        if self._is_fresh():
            return list(self._voices or [])

        voices = await self._fetch()
        self._voices = voices
        self._fetched_at = self.clock()
        logger.info("voice catalog refreshed | voices=%s", len(voices))
        return list(voices)

    async def warm(self) -> None:
        try:
            await self.get_voices()
        except VoiceCatalogError as exc:
            logger.warning("voice catalog warm-up skipped | err=%s", exc)

    async def find_voice_id_by_name(self, name: str) -> Optional[str]:
        needle = str(name or "").strip().lower()
        if not needle:
            return None
        for voice in await self.get_voices():
            voice_id = str(voice.get("voiceId") or "")
            display_name = str(voice.get("displayName") or "")
            if needle in voice_id.lower() or needle in display_name.lower():
                return voice_id or None
        return None

    async def voices_by_language(self, language: str = "en") -> list[dict[str, Any]]:
        prefix = str(language or "").lower()
        return [
            voice
            for voice in await self.get_voices()
            if str(voice.get("locale") or "").lower().startswith(prefix)
        ]

    async def voices_by_gender(self, gender: str = "female") -> list[dict[str, Any]]:
        wanted = str(gender or "").lower()
        return [voice for voice in await self.get_voices() if str(voice.get("gender") or "").lower() == wanted]

    async def random_voice(self, language: str = "en", gender: Optional[str] = None) -> str:
        candidates = []
        for voice in await self.voices_by_language(language):
            voice_gender = str(voice.get("gender") or "").lower()
            if gender and voice_gender and voice_gender != gender.lower():
                continue
            if voice.get("voiceId"):
                candidates.append(voice)

        if not candidates:
            raise VoiceCatalogError(f"No voices found for language: {language}, gender: {gender}")
        return str(self.rng.choice(candidates)["voiceId"])

    def invalidate(self) -> None:
        self._voices = None
        self._fetched_at = None
