from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from talentbridge.db.base import Base, TimestampMixin, new_id


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    role: Mapped[str] = mapped_column(String(40), default="job_seeker", nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    portfolio_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    current_job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    experience_years: Mapped[float | None] = mapped_column(Float, nullable=True)
    preferred_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    remote_preference: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    experiences: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    educations: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    personality_assessment_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_analysis_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class JobSeekerProfile(TimestampMixin, Base):
    __tablename__ = "job_seeker_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    headline: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    personality_assessment_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_analysis_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Questionnaire(TimestampMixin, Base):
    __tablename__ = "questionnaires"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(40), default="open_ended", nullable=False)
    category: Mapped[str] = mapped_column(String(80), default="general", nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class QuestionnaireResponse(TimestampMixin, Base):
    __tablename__ = "test_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    category: Mapped[str] = mapped_column(String(80), default="general", nullable=False)
    response_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class PersonalityAnalysis(TimestampMixin, Base):
    __tablename__ = "personality_analysis"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    status: Mapped[str] = mapped_column(String(20), default="queued", nullable=False)
    queued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    problem_solving_style: Mapped[str | None] = mapped_column(Text, nullable=True)
    initiative_level: Mapped[str | None] = mapped_column(Text, nullable=True)
    work_preference: Mapped[str | None] = mapped_column(Text, nullable=True)
    motivational_factors: Mapped[str | None] = mapped_column(Text, nullable=True)
    growth_areas: Mapped[str | None] = mapped_column(Text, nullable=True)
    communication_style: Mapped[str | None] = mapped_column(Text, nullable=True)
    leadership_potential: Mapped[str | None] = mapped_column(Text, nullable=True)

    analytical_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    creative_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    leadership_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    teamwork_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    trait_scores: Mapped[dict[str, float]] = mapped_column(JSON, default=dict, nullable=False)
    ai_confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    personality_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    strengths: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    development_areas: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    ideal_work_environment: Mapped[str | None] = mapped_column(Text, nullable=True)
    analysis_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    analysis_version: Mapped[str] = mapped_column(String(20), default="1.0", nullable=False)


class Company(TimestampMixin, Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_culture: Mapped[str | None] = mapped_column(Text, nullable=True)


class Job(TimestampMixin, Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_id: Mapped[str | None] = mapped_column(ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    owner_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    requirements: Mapped[str] = mapped_column(Text, default="", nullable=False)
    responsibilities: Mapped[str] = mapped_column(Text, default="", nullable=False)
    experience_level: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    job_type: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    remote_allowed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    required_skills: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    preferred_skills: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)


class Application(TimestampMixin, Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("job_id", "user_id", name="uq_application_job_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    status: Mapped[str] = mapped_column(String(40), default="submitted", nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, default="", nullable=False)


class MatchScore(TimestampMixin, Base):
    __tablename__ = "match_scores"
    __table_args__ = (UniqueConstraint("job_id", "candidate_id", name="uq_match_score_job_candidate"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), index=True)
    candidate_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    skills_match_score: Mapped[float] = mapped_column(Float, nullable=False)
    experience_match_score: Mapped[float] = mapped_column(Float, nullable=False)
    culture_fit_score: Mapped[float] = mapped_column(Float, nullable=False)
    personality_match_score: Mapped[float] = mapped_column(Float, nullable=False)
    match_explanation: Mapped[str] = mapped_column(Text, default="", nullable=False)
    strengths: Mapped[str] = mapped_column(Text, default="", nullable=False)
    potential_concerns: Mapped[str] = mapped_column(Text, default="", nullable=False)
    recommendations: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    ai_confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)


class ResumeParsingRecord(TimestampMixin, Base):
    __tablename__ = "resume_parsing_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    original_filename: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    file_type: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    extracted_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    parsing_success: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)
