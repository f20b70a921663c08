import json
import logging
from typing import Optional

from pydantic import ValidationError

from core.config import IMPROVEMENT_MIN_CHARS
from interviewiq.errors import CompletionError
from interviewiq.schemas import ImprovementPayload
from interviewiq.services.openai_service import CompletionClient
from interviewiq.session.models import Improvement

logger = logging.getLogger("interviewiq.services.coaching")

SHORT_ANSWER_IMPROVEMENT = Improvement(
    points=["Answer too short, expand with more detail."],
    suggested="Try elaborating more clearly on your experience.",
)


def build_feedback_prompt(question: str, transcript: str) -> str:
    return f"""You are an AI interview coach.

The interviewer asked:
"{question}"

The candidate answered:
"{transcript}"

Give one short, specific piece of real-time feedback (max 1-2 sentences).
- If they are speaking too fast or too slow, mention pacing.
- If they use many filler words, point it out.
- If the answer seems irrelevant, tell them to focus on the actual question.
- If it is strong, praise clarity or structure.

Do not repeat the same structure every time. Only output the feedback sentence."""


def build_improvement_prompt(question: str, transcript: str) -> str:
    return f"""You are an AI interview coach.
The interviewer asked:
"{question}"

The candidate answered:
"{transcript}"

Return a JSON object with:
{{
  "points": ["list of 2-3 concrete improvements the candidate should make"],
  "suggested": "a polished version of the candidate's answer that is clear, concise, and professional"
}}

Rules:
- Be supportive and constructive
- Suggestions must be realistic and actionable
- The suggested response should paraphrase, not invent new content
- Return only valid JSON, no commentary"""


class CoachingService:
    def __init__(self, completion: CompletionClient, min_improvement_chars: int = IMPROVEMENT_MIN_CHARS):
        self.completion = completion
        self.min_improvement_chars = int(min_improvement_chars)

    async def realtime_feedback(self, transcript: str, question: str) -> Optional[str]:
        try:
            text = await self.completion.complete(
                build_feedback_prompt(question, transcript),
                max_tokens=60,
                temperature=0.8,
            )
        except CompletionError as exc:
            logger.warning("realtime feedback failed | err=%s", exc)
            return None
        return text or None

    async def request_improvement(self, question: str, transcript: str) -> Improvement:
        answer = str(transcript or "")
        if len(answer.strip()) < self.min_improvement_chars:
            return SHORT_ANSWER_IMPROVEMENT

        try:
            raw = await self.completion.complete(
                build_improvement_prompt(question, answer),
                max_tokens=300,
                temperature=0.7,
                json_mode=True,
            )
        except CompletionError as exc:
            logger.warning("improvement request failed | err=%s", exc)
            return Improvement(points=["Error generating improvements"], suggested=answer)

        try:
            parsed = ImprovementPayload.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("improvement response unparseable | err=%s", exc)
            return Improvement(points=["could not parse response"], suggested=answer)

        return Improvement(points=[str(p) for p in parsed.points], suggested=parsed.suggested)
