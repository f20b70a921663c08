import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI

from core.config import (
    CHAT_MODEL,
    COMPLETION_TIMEOUT_SEC,
    OPENAI_API_KEY,
    TRANSCRIPTION_LANGUAGE,
    TRANSCRIPTION_MODEL,
    TRANSCRIPTION_PROMPT,
    TRANSCRIPTION_TIMEOUT_SEC,
)
from interviewiq.errors import CompletionError, CompletionTimeout, TranscriptionError

logger = logging.getLogger("interviewiq.services.openai")

_default_client: Optional[AsyncOpenAI] = None


def get_openai_client() -> AsyncOpenAI:
    global _default_client
    if _default_client is None:
        _default_client = AsyncOpenAI(api_key=OPENAI_API_KEY or "missing-key")
    return _default_client


class CompletionClient:
    """
    Thin wrapper over chat completions. One attempt per call, bounded by a
    timeout; failures surface as CompletionError so callers pick a fallback.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = CHAT_MODEL,
        timeout_sec: float = COMPLETION_TIMEOUT_SEC,
    ):
        self.client = client or get_openai_client()
        self.model = model
        self.timeout_sec = float(timeout_sec)

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int = 300,
        temperature: float = 0.7,
        json_mode: bool = False,
        system: Optional[str] = None,
        timeout_sec: Optional[float] = None,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_tokens": int(max_tokens),
            "temperature": float(temperature),
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        deadline = float(timeout_sec or self.timeout_sec)
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs),
                timeout=deadline,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("completion timeout | model=%s timeout_sec=%.1f", self.model, deadline)
            raise CompletionTimeout(f"completion exceeded {deadline:.1f}s") from exc
        except Exception as exc:
            logger.warning("completion failure | model=%s err=%s", self.model, exc)
            raise CompletionError(str(exc)) from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise CompletionError("completion response had no choices") from exc
        return str(content or "").strip()


class Transcriber:
    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = TRANSCRIPTION_MODEL,
        timeout_sec: float = TRANSCRIPTION_TIMEOUT_SEC,
    ):
        self.client = client or get_openai_client()
        self.model = model
        self.timeout_sec = float(timeout_sec)

    async def transcribe(
        self,
        wav_bytes: bytes,
        language: str = TRANSCRIPTION_LANGUAGE,
        prompt: str = TRANSCRIPTION_PROMPT,
    ) -> str:
        if not wav_bytes:
            return ""
        try:
            result = await asyncio.wait_for(
                self.client.audio.transcriptions.create(
                    model=self.model,
                    file=("response.wav", wav_bytes, "audio/wav"),
                    language=language,
                    prompt=prompt,
                ),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("transcription timeout | timeout_sec=%.1f", self.timeout_sec)
            raise TranscriptionError(f"transcription exceeded {self.timeout_sec:.1f}s") from exc
        except Exception as exc:
            logger.warning("transcription failure | err=%s", exc)
            raise TranscriptionError(str(exc)) from exc

        return str(getattr(result, "text", "") or "").strip()
