import logging
import os
import shutil
import tempfile
from typing import Optional

from core.config import ARTIFACT_ROOT
from interviewiq.errors import ArtifactMissing, SessionFatalError

logger = logging.getLogger("interviewiq.session.artifacts")


class ArtifactStore:
    """Per-session temp directory holding synthesized question audio."""

    def __init__(self, root: str = ARTIFACT_ROOT):
        self.root = root
        self._directory: Optional[str] = None

    @property
    def directory(self) -> str:
        if self._directory is None:
            try:
                os.makedirs(self.root, exist_ok=True)
                self._directory = tempfile.mkdtemp(prefix="interviewiq_", dir=self.root)
            except OSError as exc:
                raise SessionFatalError(f"cannot create artifact directory: {exc}") from exc
        return self._directory

    def write_question_audio(self, index: int, audio: bytes) -> tuple[str, str]:
        filename = f"question_{int(index) + 1}.wav"
        path = os.path.join(self.directory, filename)
        try:
            with open(path, "wb") as handle:
                handle.write(audio)
        except OSError as exc:
            raise SessionFatalError(f"cannot write artifact {filename}: {exc}") from exc
        return path, filename

    def read(self, path: Optional[str]) -> bytes:
        if not path:
            raise ArtifactMissing("no audio artifact recorded")
        try:
            with open(path, "rb") as handle:
                data = handle.read()
        except OSError as exc:
            raise ArtifactMissing(f"audio artifact unreadable: {os.path.basename(path)}") from exc
        if not data:
            raise ArtifactMissing(f"audio artifact empty: {os.path.basename(path)}")
        return data

    def cleanup(self) -> None:
        directory, self._directory = self._directory, None
        if directory and os.path.isdir(directory):
            shutil.rmtree(directory, ignore_errors=True)
            logger.info("artifacts removed | dir=%s", directory)
