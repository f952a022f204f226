from __future__ import annotations

import logging
import re
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from talentbridge.config import Settings, get_settings
from talentbridge.core.resume_parser import ResumeParser
from talentbridge.db.models import User
from talentbridge.db.session import Store
from talentbridge.types import EducationEntry, ExperienceEntry, ResumeParsingResult, ServiceResponse

logger = logging.getLogger(__name__)

VALIDATION_CODES = {"missing_required_fields", "invalid_email_format"}
URL_FIELDS = ("linkedin_url", "github_url", "portfolio_url")
_YEAR = re.compile(r"(\d{4})")


def normalize_url(value: str) -> str:
    value = value.strip()
    return value if value.startswith("http") else f"https://{value}"


def _graduation_year(entry: EducationEntry) -> int | None:
    match = _YEAR.search(entry.end_date or "")
    return int(match.group(1)) if match else None


def experience_record(entry: ExperienceEntry) -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "position": entry.job_title,
        "company": entry.company_name,
        "start_date": entry.start_date,
        "end_date": entry.end_date,
        "description": entry.description or "",
        "is_current": bool(entry.is_current),
    }


def education_record(entry: EducationEntry) -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "institution": entry.institution_name,
        "degree": entry.degree,
        "field_of_study": entry.field_of_study,
        "graduation_year": _graduation_year(entry),
    }


def merge_profile(user: User, parsed: ResumeParsingResult) -> tuple[dict[str, Any], list[str]]:
    """Work out which user columns the parsed resume should change.

    Returns the column values to write and a human-readable list of what changed.
    """
    update: dict[str, Any] = {}
    fields_updated: list[str] = []
    personal = parsed.personal_info
    if personal is None:
        return update, fields_updated

    for field_name in ("full_name", "phone", "location"):
        value = getattr(personal, field_name)
        if value and value != getattr(user, field_name):
            update[field_name] = value
            fields_updated.append(field_name)

    for field_name in URL_FIELDS:
        value = getattr(personal, field_name)
        if value and normalize_url(value) != getattr(user, field_name):
            update[field_name] = normalize_url(value)
            fields_updated.append(field_name)

    existing_experiences = list(user.experiences or [])
    new_experiences = [
        record
        for record in map(experience_record, parsed.experience)
        if not any(
            item.get("position") == record["position"] and item.get("company") == record["company"]
            for item in existing_experiences
        )
    ]
    if new_experiences:
        update["experiences"] = existing_experiences + new_experiences
        fields_updated.append(f"experiences (+{len(new_experiences)})")

    existing_educations = list(user.educations or [])
    new_educations = [
        record
        for record in map(education_record, parsed.education)
        if not any(
            item.get("institution") == record["institution"] and item.get("degree") == record["degree"]
            for item in existing_educations
        )
    ]
    if new_educations:
        update["educations"] = existing_educations + new_educations
        fields_updated.append(f"educations (+{len(new_educations)})")

    existing_skills = list(user.skills or [])
    merged_skills = list(dict.fromkeys([*existing_skills, *(skill.name for skill in parsed.skills if skill.name)]))
    if len(merged_skills) > len(existing_skills):
        update["skills"] = merged_skills
        fields_updated.append(f"skills (+{len(merged_skills) - len(existing_skills)})")

    return update, fields_updated


class ResumeService:
    def __init__(self, store: Store, parser: ResumeParser, settings: Settings | None = None):
        self.store = store
        self.parser = parser
        self.settings = settings or get_settings()

    async def parse_resume(
        self,
        user_id: str | None,
        raw_text: str,
        filename: str | None = None,
        file_type: str = "text/plain",
        auto_apply: bool = True,
    ) -> ServiceResponse:
        if not user_id:
            return ServiceResponse.error(401, "Unauthorized")
        if not raw_text or len(raw_text) < self.settings.resume_min_text_length:
            return ServiceResponse.error(
                400, "Could not extract enough text from the resume. Please try a different format."
            )

        result = await self.parser.parse_and_validate_resume(raw_text, filename)
        if not result.success or result.data is None:
            status_code = 400 if result.code in VALIDATION_CODES else 500
            return ServiceResponse(
                status_code=status_code,
                body={"success": False, "error": result.error, "code": result.code},
            )

        parsed = result.data
        fields_updated: list[str] = []
        async with self.store.restricted(user_id) as repo:
            try:
                await repo.replace_resume_result(
                    user_id,
                    {
                        "original_filename": filename or "",
                        "file_type": file_type,
                        "extracted_data": parsed.model_dump(mode="json"),
                        "parsing_success": True,
                        "ai_confidence_score": result.confidence,
                    },
                )
            except SQLAlchemyError:
                logger.warning("Failed to store resume parsing result user_id=%s", user_id, exc_info=True)

            if auto_apply and parsed.personal_info is not None:
                try:
                    user = await repo.get_user(user_id)
                except SQLAlchemyError:
                    logger.exception("Failed to fetch user data user_id=%s", user_id)
                    return ServiceResponse.error(500, "Failed to fetch user data")
                if user is None:
                    return ServiceResponse.error(404, "User not found")

                update, fields_updated = merge_profile(user, parsed)
                if update:
                    try:
                        await repo.update_user(user_id, update)
                    except SQLAlchemyError:
                        logger.warning("Failed to apply resume to profile user_id=%s", user_id, exc_info=True)
                        fields_updated = []

        logger.info("Resume parsed user_id=%s fields_updated=%s", user_id, fields_updated)
        return ServiceResponse(
            status_code=200,
            body={
                "success": True,
                "data": parsed.model_dump(mode="json"),
                "confidence": result.confidence,
                "message": "Resume parsed successfully",
                "fieldsUpdated": fields_updated or None,
            },
        )
