import logging

from fastapi import APIRouter, Depends

from resumeflow.deps import get_gemini_client, get_storage, require_user
from resumeflow.exceptions import BadRequestError, InternalServerError, NotFoundError
from resumeflow.gemini_client import GeminiClient
from resumeflow.models import InterviewGenerateRequest, InterviewSession, QuestionSet, SessionStatusRequest
from resumeflow.storage import RecordNotFoundError, Storage
from resumeflow.validation import (
    SESSION_STATUSES,
    check_choice,
    check_experience_level,
    check_resume_length,
    check_title_lengths,
    clean,
    require_fields,
)

logger = logging.getLogger(__name__)
interview_router = APIRouter()


@interview_router.post("/generate")
async def generate_interview(
    body: InterviewGenerateRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
    storage: Storage = Depends(get_storage),
):
    """Generate questions and open an interview session for ``userId``."""
    require_fields(
        body, "user_id", "job_title", "industry", "experience_level",
        message="Missing required fields",
    )
    check_experience_level(body.experience_level)
    job_title, industry = clean(body.job_title), clean(body.industry)
    resume_content = clean(body.resume_content) or None
    check_title_lengths(job_title, industry)
    check_resume_length(resume_content)
    experience_level = clean(body.experience_level)

    try:
        result = await gemini.generate_interview_questions(
            job_title, industry, experience_level, resume_content
        )
        questions = QuestionSet.model_validate(result)
        session_id = await storage.create_interview_session(InterviewSession(
            user_id=clean(body.user_id),
            job_title=job_title,
            industry=industry,
            experience_level=experience_level,
            questions=questions,
        ))
    except Exception as e:
        logger.error(f"Interview generation error: {e}")
        raise InternalServerError("Failed to generate interview questions") from e

    return {"success": True, "sessionId": session_id, "questions": questions}


@interview_router.get("/sessions")
async def list_sessions(uid: str = Depends(require_user), storage: Storage = Depends(get_storage)):
    return {"success": True, "sessions": await storage.get_user_interview_sessions(uid)}


@interview_router.get("/{session_id}")
async def get_session(session_id: str, uid: str = Depends(require_user), storage: Storage = Depends(get_storage)):
    session = await storage.get_interview_session(session_id)
    if not session or session.get("userId") != uid:
        raise NotFoundError("Interview session not found")
    return {"success": True, "session": session}


@interview_router.patch("/{session_id}")
async def update_session_status(
    session_id: str,
    body: SessionStatusRequest,
    uid: str = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    """Mark a session completed or abandoned (or reopen it)."""
    if not body.status:
        raise BadRequestError("Missing required fields: status")
    check_choice(body.status, SESSION_STATUSES, "session status")
    status = clean(body.status).lower()

    session = await storage.get_interview_session(session_id)
    if not session or session.get("userId") != uid:
        raise NotFoundError("Interview session not found")
    try:
        await storage.update_interview_session(session_id, {"status": status})
    except RecordNotFoundError as e:
        raise NotFoundError("Interview session not found") from e

    return {"success": True, "sessionId": session_id, "status": status}
