from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PersonalityAnalyzeRequest(BaseModel):
    responses: dict[str, str] | None = None


class QuestionOut(BaseModel):
    id: str
    question_text: str
    question_type: str = "open_ended"
    category: str = "general"
    order_index: int = 0
    is_active: bool = True


class QuestionsResponse(BaseModel):
    success: bool = True
    questions: list[QuestionOut]


class SeedQuestionsResponse(BaseModel):
    success: bool = True
    message: str
    count: int


class ResumeParseRequest(BaseModel):
    raw_text: str = ""
    filename: str | None = None
    file_type: str = "text/plain"
    auto_apply: bool = True


class MatchScoreQueueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str | None = Field(default=None, alias="jobId")


class MatchScoreResponse(BaseModel):
    success: bool = True
    job_id: str
    score: float
    explanation: str | None = None
    confidence: float | None = None
