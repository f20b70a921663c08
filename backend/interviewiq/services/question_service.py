import json
import logging

from core.config import QUESTION_COUNT, QUESTION_GEN_TIMEOUT_SEC
from interviewiq.errors import CompletionError
from interviewiq.services.openai_service import CompletionClient

logger = logging.getLogger("interviewiq.services.questions")


def build_question_prompt(role: str, count: int) -> str:
    example = ", ".join(f'"Question {i + 1}?"' for i in range(count))
    return (
        f"Generate a list of {count} common and relevant behavioral and technical interview questions "
        f"for a {role} role. Focus on questions that evaluate teamwork, problem-solving, past experiences, "
        "and situational scenarios, while also assessing the technical skills and knowledge required for "
        "the role. The questions should encourage the candidate to provide examples from their past work "
        "and describe how they have applied their technical expertise to overcome challenges. Cover both "
        "soft skills (collaboration, communication) and hard skills (coding, troubleshooting, technical "
        "decisions). Return ONLY a valid JSON object in this exact format: "
        f'{{"questions": [{example}]}}'
    )


def parse_questions(raw: str) -> list[str]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CompletionError("question generation returned invalid JSON") from exc

    questions = data.get("questions") if isinstance(data, dict) else None
    if not isinstance(questions, list):
        raise CompletionError("question generation response has no 'questions' list")

    cleaned = [str(item).strip() for item in questions if isinstance(item, str) and str(item).strip()]
    if not cleaned:
        raise CompletionError("question generation returned no questions")
    return cleaned


class QuestionGenerator:
    def __init__(
        self,
        completion: CompletionClient,
        count: int = QUESTION_COUNT,
        timeout_sec: float = QUESTION_GEN_TIMEOUT_SEC,
    ):
        self.completion = completion
        self.count = max(1, int(count))
        self.timeout_sec = float(timeout_sec)

    async def generate(self, role: str) -> list[str]:
        role_name = str(role or "").strip()
        if not role_name:
            raise CompletionError("role is required")

        raw = await self.completion.complete(
            build_question_prompt(role_name, self.count),
            max_tokens=350,
            temperature=0.7,
            json_mode=True,
            timeout_sec=self.timeout_sec,
        )
        questions = parse_questions(raw)[: self.count]
        logger.info("questions generated | role=%s count=%s", role_name, len(questions))
        return questions
