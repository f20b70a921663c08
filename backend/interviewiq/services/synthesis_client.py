import asyncio
import base64
import binascii
import json
import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed

from core.config import (
    MURF_API_KEY,
    MURF_WS_URL,
    SYNTHESIS_INACTIVITY_SEC,
    SYNTHESIS_SAMPLE_RATE,
    SYNTHESIS_TIMEOUT_SEC,
)
from interviewiq.errors import SynthesisError, SynthesisTimeout
from interviewiq.session.models import VoiceConfig
from interviewiq.system_metrics import increment_metric, observe_synthesis_duration

logger = logging.getLogger("interviewiq.services.synthesis")


class SpeechSynthesisStreamingClient:
    """
    One synthesis job over the provider's stream-input WebSocket.

    Handshake (voice config) goes first, then the full text marked as the
    last unit. Audio fragments are collected in arrival order until the
    provider signals the final fragment, the peer closes, or nothing has
    arrived for `inactivity_sec`. `timeout_sec` bounds the whole job.
    """

    def __init__(
        self,
        api_key: str = MURF_API_KEY,
        url: str = MURF_WS_URL,
        sample_rate: int = SYNTHESIS_SAMPLE_RATE,
        inactivity_sec: float = SYNTHESIS_INACTIVITY_SEC,
        timeout_sec: float = SYNTHESIS_TIMEOUT_SEC,
        connect_fn: Callable[..., Any] = websockets.connect,
    ):
        self.api_key = api_key
        self.url = url
        self.sample_rate = int(sample_rate)
        self.inactivity_sec = float(inactivity_sec)
        self.timeout_sec = float(timeout_sec)
        self.connect_fn = connect_fn

    def _stream_url(self) -> str:
        query = urlencode(
            {
                "api-key": self.api_key,
                "sample_rate": self.sample_rate,
                "channel_type": "MONO",
                "format": "WAV",
            }
        )
        return f"{self.url}?{query}"

    def _voice_config_message(self, voice: VoiceConfig) -> dict:
        return {
            "voice_config": {
                "voiceId": voice.voice_id,
                "style": voice.style,
                "rate": 0,
                "pitch": 0,
                "variation": 1,
                "sampleRate": self.sample_rate,
                "format": "WAV",
                "channelType": "MONO",
            }
        }

    async def synthesize(self, text: str, voice: VoiceConfig) -> bytes:
        if not str(text or "").strip():
            raise SynthesisError("nothing to synthesize")

        increment_metric("synthesis_jobs")
        started = time.perf_counter()
        try:
            audio = await asyncio.wait_for(self._run(text, voice), timeout=self.timeout_sec)
        except asyncio.TimeoutError as exc:
            increment_metric("synthesis_failures")
            logger.warning("synthesis deadline exceeded | voice=%s timeout_sec=%.1f", voice.voice_id, self.timeout_sec)
            raise SynthesisTimeout(f"synthesis exceeded {self.timeout_sec:.1f}s") from exc
        except SynthesisError:
            increment_metric("synthesis_failures")
            raise
        except (OSError, ConnectionClosed, websockets.exceptions.WebSocketException) as exc:
            increment_metric("synthesis_failures")
            logger.warning("synthesis connection failed | voice=%s err=%s", voice.voice_id, exc)
            raise SynthesisError(f"synthesis connection failed: {exc}") from exc

        observe_synthesis_duration(time.perf_counter() - started)
        return audio

    async def _run(self, text: str, voice: VoiceConfig) -> bytes:
        ws = await self.connect_fn(self._stream_url())
        try:
            await ws.send(json.dumps(self._voice_config_message(voice)))
            await ws.send(json.dumps({"text": text, "end": True}))
            fragments = await self._collect(ws)
        finally:
            try:
                await ws.close()
            except (OSError, ConnectionClosed) as exc:
                logger.debug("synthesis socket close error | err=%s", exc)

        if not fragments:
            raise SynthesisError("synthesis returned no audio")
        return b"".join(fragments)

    async def _collect(self, ws) -> list[bytes]:
        fragments: list[bytes] = []
        while True:
            try:
                raw = await asyncio.wait_for(ws.recv(), timeout=self.inactivity_sec)
            except asyncio.TimeoutError:
                logger.warning(
                    "synthesis inactivity timeout | fragments=%s inactivity_sec=%.1f",
                    len(fragments),
                    self.inactivity_sec,
                )
                return fragments
            except ConnectionClosed:
                return fragments

            try:
                message = json.loads(raw)
            except (TypeError, ValueError):
                logger.debug("synthesis ignored non-json frame")
                continue
            if not isinstance(message, dict):
                continue

            if message.get("error"):
                logger.warning("synthesis provider error | err=%s", message.get("error"))
                raise SynthesisError(f"provider error: {message.get('error')}")

            audio = message.get("audio")
            if audio:
                try:
                    fragments.append(base64.b64decode(audio))
                except (binascii.Error, ValueError) as exc:
                    raise SynthesisError("provider sent undecodable audio") from exc

            if message.get("final") is True or message.get("isFinalAudio") is True:
                return fragments
