import asyncio
import logging
import os
import tempfile

from core.config import FFMPEG_BINARY, PCM_SAMPLE_RATE, TRANSCODE_TIMEOUT_SEC
from interviewiq.errors import DecodeError

logger = logging.getLogger("interviewiq.vocal.transcoder")


class AudioTranscoder:
    """
    Converts a compressed browser chunk (WebM/Opus, Ogg, MP4...) into raw
    mono s16le PCM at `sample_rate` by piping it through ffmpeg.
    The input goes through a temp file so container formats that need
    seeking still decode.
    """

    def __init__(
        self,
        ffmpeg_binary: str = FFMPEG_BINARY,
        sample_rate: int = PCM_SAMPLE_RATE,
        timeout_sec: float = TRANSCODE_TIMEOUT_SEC,
    ):
        self.ffmpeg_binary = ffmpeg_binary
        self.sample_rate = int(sample_rate)
        self.timeout_sec = float(timeout_sec)

    def _command(self, input_path: str) -> list[str]:
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel", "error",
            "-y",
            "-i", input_path,
            "-f", "s16le",
            "-acodec", "pcm_s16le",
            "-ac", "1",
            "-ar", str(self.sample_rate),
            "pipe:1",
        ]

    async def to_pcm(self, chunk: bytes) -> bytes:
        if not chunk:
            raise DecodeError("empty audio chunk")

        fd, tmp_path = tempfile.mkstemp(prefix="interviewiq_chunk_", suffix=".webm")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(chunk)

            try:
                process = await asyncio.create_subprocess_exec(
                    *self._command(tmp_path),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as exc:
                raise DecodeError(f"ffmpeg binary not found: {self.ffmpeg_binary}") from exc

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_sec)
            except asyncio.TimeoutError as exc:
                process.kill()
                await process.wait()
                raise DecodeError(f"ffmpeg timed out after {self.timeout_sec:.1f}s") from exc

            if process.returncode != 0:
                error_msg = (stderr or b"").decode("utf-8", errors="replace").strip() or "no stderr"
                logger.warning("ffmpeg decode failed | code=%s err=%s", process.returncode, error_msg[:300])
                raise DecodeError(f"ffmpeg exited with code {process.returncode}")

            pcm = bytes(stdout or b"")
            # drop a trailing odd byte so the buffer stays int16-aligned
            if len(pcm) % 2:
                pcm = pcm[:-1]
            if not pcm:
                raise DecodeError("ffmpeg produced no audio")
            return pcm
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
