import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder

from resumeflow.deps import get_gemini_client, get_storage, require_user
from resumeflow.exceptions import BadRequestError, InternalServerError, NotFoundError
from resumeflow.gemini_client import GeminiClient
from resumeflow.models import Resume, ResumeAnalyzeRequest
from resumeflow.pdf_utils import (
    ALLOWED_FILE_TYPES,
    EmptyDocumentError,
    PDFParseError,
    UnsupportedFileTypeError,
    extract_resume_text,
)
from resumeflow.storage import Storage
from resumeflow.validation import check_resume_length, check_title_lengths, clean, require_fields

logger = logging.getLogger(__name__)
resume_router = APIRouter()


@resume_router.post("/resume/upload")
async def upload_resume(
    uid: str = Depends(require_user),
    file: Optional[UploadFile] = File(default=None),
    job_title: Optional[str] = Form(default=None, alias="jobTitle"),
    industry: Optional[str] = Form(default=None),
    storage: Storage = Depends(get_storage),
):
    """Upload a resume file; the record starts in the "uploaded" state."""
    if file is None or not file.filename or not job_title or not industry:
        raise BadRequestError("Missing required fields: file, jobTitle, industry")
    if file.content_type not in ALLOWED_FILE_TYPES:
        raise BadRequestError("Invalid file type. Only PDF and Word documents are supported.")
    job_title, industry = clean(job_title), clean(industry)
    check_title_lengths(job_title, industry)

    content = await file.read()
    try:
        text = await run_in_threadpool(
            extract_resume_text, content, file.content_type, file.filename, job_title, industry
        )
    except (PDFParseError, UnsupportedFileTypeError, EmptyDocumentError) as e:
        raise BadRequestError(f"Failed to extract text from the uploaded file: {e}") from e
    logger.info(f"Extracted {len(text)} characters from {file.filename}")

    resume_id = await storage.create_resume(Resume(
        user_id=uid,
        file_name=file.filename,
        job_title=job_title,
        industry=industry,
        status="uploaded",
        content=text,
    ))
    return {"success": True, "resumeId": resume_id, "resumeContent": text}


async def _mark_failed(storage: Storage, resume_id: str) -> None:
    try:
        await storage.update_resume(resume_id, {"status": "error"})
    except Exception as e:
        logger.error(f"Could not mark resume {resume_id} as failed: {e}")


@resume_router.post("/resume/analyze")
async def analyze_resume(
    body: ResumeAnalyzeRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
    storage: Storage = Depends(get_storage),
):
    """Analyze a stored resume, moving it through analyzing -> analyzed (or error)."""
    require_fields(body, "resume_id", "resume_content", "job_title", "industry", message="Missing required fields")
    resume_id = clean(body.resume_id)
    resume_content, job_title, industry = clean(body.resume_content), clean(body.job_title), clean(body.industry)
    check_title_lengths(job_title, industry)
    check_resume_length(resume_content)

    try:
        await storage.update_resume(resume_id, {"status": "analyzing"})
        analysis = await gemini.analyze_resume(resume_content, job_title, industry)
        await storage.update_resume(resume_id, {
            "status": "analyzed",
            "analysisScore": analysis.overall_score,
            "feedback": jsonable_encoder(analysis),
        })
    except Exception as e:
        logger.error(f"Resume analysis error for {resume_id}: {e}")
        await _mark_failed(storage, resume_id)
        raise InternalServerError("Failed to analyze resume") from e

    return {"success": True, "analysis": analysis}


@resume_router.get("/resumes")
async def list_resumes(uid: str = Depends(require_user), storage: Storage = Depends(get_storage)):
    return {"success": True, "resumes": await storage.get_user_resumes(uid)}


@resume_router.get("/resume/{resume_id}")
async def get_resume(resume_id: str, uid: str = Depends(require_user), storage: Storage = Depends(get_storage)):
    doc = await storage.get_resume(resume_id)
    if not doc or doc.get("userId") != uid:
        raise NotFoundError("Resume not found")
    return {"success": True, "resume": doc}
