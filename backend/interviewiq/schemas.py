from pydantic import BaseModel, Field, field_validator


class SetupMessage(BaseModel):
    role: str = Field(min_length=1, max_length=200)

    @field_validator("role")
    @classmethod
    def _strip_role(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("role must not be blank")
        return value


class RequestQuestionMessage(BaseModel):
    questionIndex: int = Field(ge=0)


class AudioResponseMessage(BaseModel):
    audioData: str = Field(min_length=1)
    questionIndex: int | None = Field(default=None, ge=0)
    questionText: str = ""


class ImprovementPayload(BaseModel):
    points: list[str] = Field(min_length=1)
    suggested: str = Field(min_length=1)


class HealthResponse(BaseModel):
    status: str
    active_sessions: int
