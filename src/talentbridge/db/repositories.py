from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from talentbridge.db.base import Base, new_id, utcnow
from talentbridge.db.models import (
    Application,
    Company,
    Job,
    JobSeekerProfile,
    MatchScore,
    PersonalityAnalysis,
    Questionnaire,
    QuestionnaireResponse,
    ResumeParsingRecord,
    User,
)
from talentbridge.errors import RecordNotFound, RowAccessDenied


class Repository:
    """Data access for one unit of work.

    With ``owner_id`` set the repository is restricted: user-owned rows of any
    other user are refused with ``RowAccessDenied`` and unpublished jobs of other
    owners are invisible. Without it the repository is elevated.
    """

    def __init__(self, session: AsyncSession, owner_id: str | None = None):
        self.session = session
        self.owner_id = owner_id

    @property
    def is_elevated(self) -> bool:
        return self.owner_id is None

    def _check_owner(self, user_id: str) -> None:
        if self.owner_id is not None and user_id != self.owner_id:
            raise RowAccessDenied(f"rows of user {user_id} are not accessible to {self.owner_id}")

    async def _commit(self, *objects: Base) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        for obj in objects:
            await self.session.refresh(obj)

    async def _upsert(self, model: type[Base], keys: dict[str, Any], values: dict[str, Any]) -> Any:
        """Insert or update the row identified by the unique ``keys`` in one statement.

        Concurrent first writes for the same key cannot collide; the last one wins.
        """
        dialect = postgresql if self.session.get_bind().dialect.name == "postgresql" else sqlite
        now = utcnow()
        statement = dialect.insert(model).values(id=new_id(), created_at=now, **keys, **values, updated_at=now)
        statement = statement.on_conflict_do_update(
            index_elements=list(keys),
            set_={**{name: statement.excluded[name] for name in values}, "updated_at": now},
        )
        try:
            await self.session.execute(statement)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        lookup = select(model).filter_by(**keys).execution_options(populate_existing=True)
        return await self.session.scalar(lookup)

    # Users and profiles

    async def create_user(self, *, email: str, full_name: str = "", role: str = "job_seeker", **values: Any) -> User:
        if not self.is_elevated:
            values.setdefault("id", self.owner_id)
            self._check_owner(values["id"])
        user = User(email=email, full_name=full_name, role=role, **values)
        self.session.add(user)
        await self._commit(user)
        return user

    async def get_user(self, user_id: str) -> User | None:
        self._check_owner(user_id)
        return await self.session.get(User, user_id)

    async def update_user(self, user_id: str, values: dict[str, Any]) -> User:
        self._check_owner(user_id)
        user = await self.session.get(User, user_id)
        if not user:
            raise RecordNotFound(f"user {user_id} not found")
        for key, value in values.items():
            setattr(user, key, value)
        user.updated_at = utcnow()
        await self._commit(user)
        return user

    async def create_or_update_profile(self, user_id: str, values: dict[str, Any] | None = None) -> JobSeekerProfile:
        self._check_owner(user_id)
        existing = await self.session.scalar(select(JobSeekerProfile).where(JobSeekerProfile.user_id == user_id))
        if existing:
            for key, value in (values or {}).items():
                setattr(existing, key, value)
            existing.updated_at = utcnow()
            obj = existing
        else:
            obj = JobSeekerProfile(user_id=user_id, **(values or {}))
            self.session.add(obj)

        await self._commit(obj)
        return obj

    async def get_profile(self, user_id: str) -> JobSeekerProfile | None:
        self._check_owner(user_id)
        return await self.session.scalar(select(JobSeekerProfile).where(JobSeekerProfile.user_id == user_id))

    async def set_completion_flags(
        self,
        user_id: str,
        *,
        personality_assessment_completed: bool | None = None,
        ai_analysis_completed: bool | None = None,
    ) -> None:
        """Mirror the assessment flags onto the user row and its profile, when present."""
        self._check_owner(user_id)
        values: dict[str, bool] = {}
        if personality_assessment_completed is not None:
            values["personality_assessment_completed"] = personality_assessment_completed
        if ai_analysis_completed is not None:
            values["ai_analysis_completed"] = ai_analysis_completed
        if not values:
            return

        now = utcnow()
        user = await self.session.get(User, user_id)
        profile = await self.session.scalar(select(JobSeekerProfile).where(JobSeekerProfile.user_id == user_id))
        for obj in (user, profile):
            if obj is None:
                continue
            for key, value in values.items():
                setattr(obj, key, value)
            obj.updated_at = now
        await self._commit()

    # Questionnaire

    async def list_active_questions(self) -> list[Questionnaire]:
        statement = (
            select(Questionnaire)
            .where(Questionnaire.is_active.is_(True))
            .order_by(Questionnaire.order_index.asc())
        )
        return list((await self.session.scalars(statement)).all())

    async def count_questions(self) -> int:
        return int(await self.session.scalar(select(func.count()).select_from(Questionnaire)) or 0)

    async def add_questions(self, questions: Iterable[dict[str, Any]]) -> int:
        inserted = 0
        for values in questions:
            self.session.add(Questionnaire(**values))
            inserted += 1
        await self._commit()
        return inserted

    async def delete_responses(self, user_id: str) -> None:
        self._check_owner(user_id)
        await self.session.execute(delete(QuestionnaireResponse).where(QuestionnaireResponse.user_id == user_id))
        await self._commit()

    async def insert_responses(self, user_id: str, rows: Iterable[dict[str, Any]]) -> list[QuestionnaireResponse]:
        self._check_owner(user_id)
        objects = [QuestionnaireResponse(user_id=user_id, **row) for row in rows]
        self.session.add_all(objects)
        await self._commit()
        return objects

    async def list_responses(self, user_id: str) -> list[QuestionnaireResponse]:
        self._check_owner(user_id)
        statement = (
            select(QuestionnaireResponse)
            .where(QuestionnaireResponse.user_id == user_id)
            .order_by(QuestionnaireResponse.order_index.asc())
        )
        return list((await self.session.scalars(statement)).all())

    # Personality analysis

    async def get_analysis(self, user_id: str) -> PersonalityAnalysis | None:
        self._check_owner(user_id)
        return await self.session.scalar(select(PersonalityAnalysis).where(PersonalityAnalysis.user_id == user_id))

    async def upsert_analysis(self, user_id: str, values: dict[str, Any]) -> PersonalityAnalysis:
        self._check_owner(user_id)
        return await self._upsert(PersonalityAnalysis, {"user_id": user_id}, values)

    async def mark_analysis_queued(self, user_id: str, queued_at: datetime | None = None) -> PersonalityAnalysis:
        return await self.upsert_analysis(
            user_id,
            {
                "status": "queued",
                "queued_at": queued_at or utcnow(),
                "processed_at": None,
                "error_message": None,
            },
        )

    async def get_completed_analysis(self, user_id: str) -> PersonalityAnalysis | None:
        self._check_owner(user_id)
        statement = select(PersonalityAnalysis).where(
            and_(PersonalityAnalysis.user_id == user_id, PersonalityAnalysis.status == "completed")
        )
        return await self.session.scalar(statement)

    # Companies, jobs, applications

    async def create_company(self, *, owner_id: str, name: str, **values: Any) -> Company:
        self._check_owner(owner_id)
        company = Company(owner_id=owner_id, name=name, **values)
        self.session.add(company)
        await self._commit(company)
        return company

    async def get_company(self, company_id: str) -> Company | None:
        return await self.session.get(Company, company_id)

    async def create_job(self, *, owner_id: str, title: str, **values: Any) -> Job:
        self._check_owner(owner_id)
        job = Job(owner_id=owner_id, title=title, **values)
        self.session.add(job)
        await self._commit(job)
        return job

    async def get_job(self, job_id: str) -> Job | None:
        if self.is_elevated:
            return await self.session.get(Job, job_id)
        statement = select(Job).where(
            and_(Job.id == job_id, or_(Job.status == "published", Job.owner_id == self.owner_id))
        )
        return await self.session.scalar(statement)

    async def list_published_jobs(self, limit: int = 50) -> list[Job]:
        statement = (
            select(Job).where(Job.status == "published").order_by(Job.created_at.desc()).limit(limit)
        )
        return list((await self.session.scalars(statement)).all())

    async def create_application(self, *, job_id: str, user_id: str, cover_letter: str = "") -> Application:
        self._check_owner(user_id)
        application = Application(job_id=job_id, user_id=user_id, cover_letter=cover_letter)
        self.session.add(application)
        await self._commit(application)
        return application

    async def get_application(self, job_id: str, user_id: str) -> Application | None:
        conditions = [Application.job_id == job_id, Application.user_id == user_id]
        if not self.is_elevated:
            conditions.append(Application.user_id == self.owner_id)
        return await self.session.scalar(select(Application).where(and_(*conditions)))

    # Match scores

    async def get_match_score(self, job_id: str, candidate_id: str) -> MatchScore | None:
        self._check_owner(candidate_id)
        statement = select(MatchScore).where(
            and_(MatchScore.job_id == job_id, MatchScore.candidate_id == candidate_id)
        )
        return await self.session.scalar(statement)

    async def upsert_match_score(self, job_id: str, candidate_id: str, values: dict[str, Any]) -> MatchScore:
        self._check_owner(candidate_id)
        return await self._upsert(MatchScore, {"job_id": job_id, "candidate_id": candidate_id}, values)

    # Resume parsing results

    async def replace_resume_result(self, user_id: str, values: dict[str, Any]) -> ResumeParsingRecord:
        self._check_owner(user_id)
        await self.session.execute(delete(ResumeParsingRecord).where(ResumeParsingRecord.user_id == user_id))
        record = ResumeParsingRecord(user_id=user_id, **values)
        self.session.add(record)
        await self._commit(record)
        return record

    async def list_resume_results(self, user_id: str) -> list[ResumeParsingRecord]:
        self._check_owner(user_id)
        statement = select(ResumeParsingRecord).where(ResumeParsingRecord.user_id == user_id)
        return list((await self.session.scalars(statement)).all())
