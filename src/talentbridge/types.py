from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

AnalysisStatus = Literal["queued", "processing", "completed", "failed"]
FailureCode = Literal[
    "missing_required_fields",
    "invalid_email_format",
    "invalid_ai_output",
    "upstream_failure",
]


@dataclass(slots=True)
class AIResult(Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    confidence: float | None = None
    code: FailureCode | None = None

    @classmethod
    def ok(cls, data: T, confidence: float | None = None) -> AIResult[T]:
        return cls(success=True, data=data, confidence=confidence)

    @classmethod
    def fail(cls, error: str, code: FailureCode = "upstream_failure") -> AIResult[T]:
        return cls(success=False, error=error, code=code)


@dataclass(slots=True)
class ValidationReport:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ServiceResponse:
    status_code: int
    body: dict[str, Any]

    @classmethod
    def error(cls, status_code: int, message: str) -> ServiceResponse:
        return cls(status_code=status_code, body={"success": False, "error": message})


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class QuestionResponse(BaseModel):
    question_id: str
    question_text: str
    response_text: str
    category: str = "general"


# Resume parsing


class PersonalInfo(_LenientModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    portfolio_url: str | None = None


class ExperienceEntry(_LenientModel):
    job_title: str | None = None
    company_name: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current: bool | None = None
    description: str | None = None
    achievements: list[str] | None = None


class EducationEntry(_LenientModel):
    institution_name: str | None = None
    degree: str | None = None
    field_of_study: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current: bool | None = None
    gpa: str | None = None
    achievements: list[str] | None = None


class SkillEntry(_LenientModel):
    name: str
    category: str | None = None
    proficiency_level: int | None = None


class LanguageEntry(_LenientModel):
    name: str
    proficiency: str | None = None


class CertificationEntry(_LenientModel):
    name: str
    issuer: str | None = None
    date_obtained: str | None = None
    expiry_date: str | None = None


class ConfidenceScores(_LenientModel):
    overall: float
    personal_info: float
    experience: float
    education: float
    skills: float


class ResumeParsingResult(_LenientModel):
    personal_info: PersonalInfo | None = None
    professional_summary: str | None = None
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    skills: list[SkillEntry] = Field(default_factory=list)
    languages: list[LanguageEntry] = Field(default_factory=list)
    certifications: list[CertificationEntry] = Field(default_factory=list)
    additional_info: dict[str, Any] = Field(default_factory=dict)
    confidence_scores: ConfidenceScores | None = None

    @field_validator("experience", "education", "skills", "languages", "certifications", mode="before")
    @classmethod
    def coerce_null_lists(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("additional_info", mode="before")
    @classmethod
    def coerce_null_info(cls, value: Any) -> Any:
        return {} if value is None else value


# Personality analysis


class PersonalityAnalysisResult(_LenientModel):
    problem_solving_style: str | None = None
    initiative_level: str | None = None
    work_preference: str | None = None
    motivational_factors: str | None = None
    growth_areas: str | None = None
    communication_style: str | None = None
    leadership_potential: str | None = None

    analytical_score: float | None = None
    creative_score: float | None = None
    leadership_score: float | None = None
    teamwork_score: float | None = None
    trait_scores: dict[str, float] = Field(default_factory=dict)

    personality_summary: str | None = None
    strengths: list[str] = Field(default_factory=list)
    development_areas: list[str] = Field(default_factory=list)
    ideal_work_environment: str | None = None

    confidence_score: float | None = None
    analysis_notes: str | None = None

    @field_validator("strengths", "development_areas", mode="before")
    @classmethod
    def coerce_null_lists(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("trait_scores", mode="before")
    @classmethod
    def coerce_null_traits(cls, value: Any) -> Any:
        return {} if value is None else value


# Match scoring


class MatchScoreResult(_LenientModel):
    overall_score: float
    skills_match_score: float
    experience_match_score: float
    culture_fit_score: float
    personality_match_score: float

    match_explanation: str = ""
    strengths: str = ""
    potential_concerns: str = ""

    confidence_score: float | None = None
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("match_explanation", "strengths", "potential_concerns", mode="before")
    @classmethod
    def join_text_lists(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, list):
            return "; ".join(str(item) for item in value)
        return value

    @field_validator("recommendations", mode="before")
    @classmethod
    def coerce_null_lists(cls, value: Any) -> Any:
        return _none_to_list(value)


class JobData(BaseModel):
    title: str
    description: str = ""
    requirements: str = ""
    responsibilities: str = ""
    experience_level: str = ""
    job_type: str = ""
    location: str = ""
    remote_allowed: bool = False
    company_culture: str = ""
    required_skills: list[str] = Field(default_factory=list)
    preferred_skills: list[str] = Field(default_factory=list)


class CandidateSkill(BaseModel):
    name: str
    proficiency_level: int = 3


class CandidateExperience(BaseModel):
    job_title: str = ""
    company_name: str = ""
    description: str = ""
    years: float | None = None


class CandidateEducation(BaseModel):
    degree: str = ""
    field_of_study: str = ""
    institution_name: str = ""


class CandidatePersonality(BaseModel):
    problem_solving_style: str = ""
    work_preference: str = ""
    analytical_score: float = 75
    creative_score: float = 75
    leadership_score: float = 75
    teamwork_score: float = 75
    strengths: list[str] = Field(default_factory=list)


class CandidateData(BaseModel):
    full_name: str
    experience_years: float | None = None
    current_job_title: str | None = None
    skills: list[CandidateSkill] = Field(default_factory=list)
    experience: list[CandidateExperience] = Field(default_factory=list)
    education: list[CandidateEducation] = Field(default_factory=list)
    personality_analysis: CandidatePersonality | None = None
    preferred_location: str | None = None
    remote_preference: bool | None = None


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)
