from typing import Optional, Sequence

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from resumeflow.exceptions import BadRequestError

MAX_TEXT_LENGTH = 100
MAX_RESUME_LENGTH = 50_000
MAX_ANSWER_LENGTH = 10_000

EXPERIENCE_LEVELS = ("entry-level", "mid-level", "senior-level", "executive")
QUESTION_CATEGORIES = ("technical", "behavioral", "situational")
SESSION_STATUSES = ("active", "completed", "abandoned")


def require_fields(payload: BaseModel, *fields: str, message: Optional[str] = None) -> None:
    """Reject the request when any of ``fields`` is absent or empty.

    The default message lists every required field by its wire name, in the
    order given.
    """
    if all(getattr(payload, field) for field in fields):
        return
    if message is None:
        names = [to_camel(field) for field in fields]
        message = f"Missing required fields: {', '.join(names)}"
    raise BadRequestError(message)


def check_title_lengths(job_title: str, industry: str) -> None:
    if len(job_title) > MAX_TEXT_LENGTH or len(industry) > MAX_TEXT_LENGTH:
        raise BadRequestError(f"Job title and industry must be under {MAX_TEXT_LENGTH} characters")


def check_resume_length(resume_content: Optional[str]) -> None:
    if resume_content and len(resume_content) > MAX_RESUME_LENGTH:
        raise BadRequestError(f"Resume content too long (max {MAX_RESUME_LENGTH:,} characters)")


def check_answer_lengths(question: str, response: str) -> None:
    if len(question) > MAX_ANSWER_LENGTH or len(response) > MAX_ANSWER_LENGTH:
        raise BadRequestError(f"Question and response must be under {MAX_ANSWER_LENGTH:,} characters")


def check_choice(value: str, allowed: Sequence[str], label: str) -> None:
    if value.strip().lower() not in allowed:
        raise BadRequestError(f"Invalid {label}. Must be one of: {', '.join(allowed)}")


def check_experience_level(value: str) -> None:
    check_choice(value, EXPERIENCE_LEVELS, "experience level")


def check_question_category(value: str) -> None:
    check_choice(value, QUESTION_CATEGORIES, "question category")


def clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def check_job_title_length(job_title: str) -> None:
    if len(job_title) > MAX_TEXT_LENGTH:
        raise BadRequestError(f"Job title must be under {MAX_TEXT_LENGTH} characters")
