from core.state import InterviewEvent, InterviewState
from interviewiq.errors import ProtocolError

S = InterviewState
E = InterviewEvent

# event -> {from_state: to_state}; FAULT is accepted from anywhere
TRANSITIONS: dict[InterviewEvent, dict[InterviewState, InterviewState]] = {
    E.SETUP: {
        S.IDLE: S.SETUP_IN_PROGRESS,
        S.CLOSED: S.SETUP_IN_PROGRESS,
        S.ERROR: S.SETUP_IN_PROGRESS,
    },
    E.SETUP_SUCCEEDED: {S.SETUP_IN_PROGRESS: S.READY},
    E.SETUP_FAILED: {S.SETUP_IN_PROGRESS: S.ERROR},
    E.REQUEST_QUESTION: {
        S.READY: S.AWAITING_RESPONSE,
        S.AWAITING_RESPONSE: S.AWAITING_RESPONSE,
    },
    E.QUESTIONS_EXHAUSTED: {
        S.READY: S.COMPLETING,
        S.AWAITING_RESPONSE: S.COMPLETING,
        S.COMPLETING: S.COMPLETING,
    },
    E.AUDIO_RESPONSE: {
        S.AWAITING_RESPONSE: S.AWAITING_RESPONSE,
        S.COMPLETING: S.COMPLETING,
    },
    E.INTERVIEW_COMPLETE: {
        S.READY: S.CLOSED,
        S.AWAITING_RESPONSE: S.CLOSED,
        S.COMPLETING: S.CLOSED,
    },
}


class InterviewStateMachine:
    def __init__(self, state: InterviewState = S.IDLE):
        self.state = state

    def can(self, event: InterviewEvent) -> bool:
        if event == E.FAULT:
            return True
        return self.state in TRANSITIONS.get(event, {})

    def require(self, event: InterviewEvent) -> None:
        if not self.can(event):
            raise ProtocolError(f"{event.name} is not allowed in state {self.state.name}")

    def apply(self, event: InterviewEvent) -> InterviewState:
        if event == E.FAULT:
            self.state = S.ERROR
            return self.state
        self.require(event)
        self.state = TRANSITIONS[event][self.state]
        return self.state
