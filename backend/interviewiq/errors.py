class InterviewIQError(Exception):
    """Base class for every error raised inside an interview session."""


class DecodeError(InterviewIQError):
    """Inbound audio could not be decoded into PCM."""


class ExternalServiceError(InterviewIQError):
    """A provider call failed or returned something unusable."""


class ExternalServiceTimeout(ExternalServiceError):
    """A provider call exceeded its deadline."""


class TranscriptionError(ExternalServiceError):
    pass


class CompletionError(ExternalServiceError):
    pass


class CompletionTimeout(CompletionError, ExternalServiceTimeout):
    pass


class SynthesisError(ExternalServiceError):
    pass


class SynthesisTimeout(SynthesisError, ExternalServiceTimeout):
    pass


class VoiceCatalogError(ExternalServiceError):
    pass


class PersistenceError(ExternalServiceError):
    pass


class ProtocolError(InterviewIQError):
    """Inbound message is malformed, unknown, or not allowed right now."""


class ArtifactMissing(InterviewIQError):
    """A question's audio artifact is absent or unreadable."""


class SessionFatalError(InterviewIQError):
    """Local resource failure that ends the session (not the process)."""
