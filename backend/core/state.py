# backend/core/state.py

from enum import Enum


class InterviewState(str, Enum):
    IDLE = "idle"
    SETUP_IN_PROGRESS = "setup_in_progress"
    READY = "ready"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETING = "completing"
    CLOSED = "closed"
    ERROR = "error"


class InterviewEvent(str, Enum):
    SETUP = "setup"
    SETUP_SUCCEEDED = "setup_succeeded"
    SETUP_FAILED = "setup_failed"
    REQUEST_QUESTION = "request_question"
    QUESTIONS_EXHAUSTED = "questions_exhausted"
    AUDIO_RESPONSE = "audio_response"
    INTERVIEW_COMPLETE = "interview_complete"
    FAULT = "fault"
