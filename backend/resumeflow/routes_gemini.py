import base64
import binascii
import logging
from typing import Tuple

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from resumeflow.deps import get_gemini_client, get_storage, require_user
from resumeflow.exceptions import (
    BadGatewayError,
    BadRequestError,
    BaseHTTPException,
    InternalServerError,
    NotFoundError,
    to_http_error,
)
from resumeflow.gemini_client import AIServiceError, GeminiClient
from resumeflow.models import (
    AnalyzeResumeDirectRequest,
    AnalyzeResumeRequest,
    EvaluateResponseRequest,
    GenerateQuestionsRequest,
    InterviewResponse,
    QuestionSet,
    Resume,
)
from resumeflow.pdf_utils import (
    ALLOWED_FILE_TYPES,
    EmptyDocumentError,
    PDFParseError,
    UnsupportedFileTypeError,
    extract_resume_text,
)
from resumeflow.storage import Storage
from resumeflow.validation import (
    check_answer_lengths,
    check_experience_level,
    check_job_title_length,
    check_question_category,
    check_resume_length,
    check_title_lengths,
    clean,
    require_fields,
)

logger = logging.getLogger(__name__)
gemini_router = APIRouter()

ANALYSIS_UNAVAILABLE = "AI analysis service temporarily unavailable. Please try again."
QUESTIONS_UNAVAILABLE = "AI question generation service temporarily unavailable. Please try again."
EVALUATION_UNAVAILABLE = "AI evaluation service temporarily unavailable. Please try again."
INVALID_FILE_TYPE = "Invalid file type. Only PDF and Word documents are supported."


def _analysis_inputs(body: AnalyzeResumeRequest | AnalyzeResumeDirectRequest) -> Tuple[str, str, str]:
    require_fields(body, "resume_content", "job_title", "industry")
    resume_content, job_title, industry = clean(body.resume_content), clean(body.job_title), clean(body.industry)
    check_title_lengths(job_title, industry)
    check_resume_length(resume_content)
    return resume_content, job_title, industry


async def _extract_upload(body: AnalyzeResumeDirectRequest, job_title: str, industry: str) -> str:
    try:
        file_bytes = base64.b64decode(body.file_data, validate=True)
        logger.info(f"File buffer created for {body.file_name}, size: {len(file_bytes)}")
        return await run_in_threadpool(
            extract_resume_text, file_bytes, body.file_type, body.file_name, job_title, industry
        )
    except binascii.Error as e:
        raise BadRequestError("Failed to extract text from the uploaded file: Invalid base64 file data") from e
    except (PDFParseError, UnsupportedFileTypeError, EmptyDocumentError) as e:
        logger.error(f"Error extracting text from {body.file_name}: {e}")
        raise BadRequestError(f"Failed to extract text from the uploaded file: {e}") from e


@gemini_router.post("/analyze-resume")
async def analyze_resume(
    body: AnalyzeResumeRequest,
    uid: str = Depends(require_user),
    gemini: GeminiClient = Depends(get_gemini_client),
    storage: Storage = Depends(get_storage),
):
    """Analyze resume text and store the feedback on the caller's resume record."""
    resume_content, job_title, industry = _analysis_inputs(body)
    resume_id = clean(body.resume_id)

    try:
        if resume_id:
            existing = await storage.get_resume(resume_id)
            if not existing or existing.get("userId") != uid:
                raise NotFoundError("Resume not found")

        logger.info(f"Calling Gemini for resume analysis ({job_title} / {industry})")
        analysis = await gemini.analyze_resume(resume_content, job_title, industry)

        if resume_id:
            await storage.update_resume(resume_id, {
                "status": "analyzed",
                "analysisScore": analysis.overall_score,
                "feedback": jsonable_encoder(analysis),
            })
        else:
            resume_id = await storage.create_resume(Resume(
                user_id=uid,
                file_name=clean(body.file_name) or "resume.txt",
                job_title=job_title,
                industry=industry,
                status="analyzed",
                analysis_score=analysis.overall_score,
                feedback=analysis,
            ))
    except AIServiceError as e:
        raise to_http_error(e, ANALYSIS_UNAVAILABLE) from e
    except BaseHTTPException:
        raise
    except Exception as e:
        logger.error(f"Resume analysis error: {e}", exc_info=True)
        raise InternalServerError() from e

    logger.info(f"Resume {resume_id} analyzed, overall score {analysis.overall_score}")
    return {
        "success": True,
        "data": analysis,
        "message": "Resume analyzed successfully",
        "resumeId": resume_id,
    }


@gemini_router.post("/analyze-resume-direct")
async def analyze_resume_direct(
    body: AnalyzeResumeDirectRequest,
    gemini: GeminiClient = Depends(get_gemini_client),
):
    """One-shot analysis of pasted text or an uploaded base64 file; nothing is stored."""
    if body.resume_content:
        resume_content, job_title, industry = _analysis_inputs(body)
    else:
        require_fields(body, "file_name", "file_data", "file_type", "job_title", "industry")
        if body.file_type not in ALLOWED_FILE_TYPES:
            raise BadRequestError(INVALID_FILE_TYPE)
        job_title, industry = clean(body.job_title), clean(body.industry)
        check_title_lengths(job_title, industry)
        resume_content = await _extract_upload(body, job_title, industry)

    try:
        analysis = await gemini.analyze_resume(resume_content, job_title, industry)
    except AIServiceError as e:
        raise to_http_error(e, ANALYSIS_UNAVAILABLE) from e
    except Exception as e:
        logger.error(f"Direct resume analysis error: {e}", exc_info=True)
        raise InternalServerError() from e

    return {
        "success": True,
        "data": analysis,
        "message": "Resume analyzed successfully (results not stored)",
    }


@gemini_router.post("/generate-questions")
async def generate_questions(
    body: GenerateQuestionsRequest,
    uid: str = Depends(require_user),
    gemini: GeminiClient = Depends(get_gemini_client),
):
    require_fields(body, "job_title", "industry", "experience_level")
    check_experience_level(body.experience_level)
    job_title, industry = clean(body.job_title), clean(body.industry)
    resume_content = clean(body.resume_content) or None
    check_title_lengths(job_title, industry)
    check_resume_length(resume_content)

    try:
        result = await gemini.generate_interview_questions(
            job_title, industry, clean(body.experience_level), resume_content
        )
        questions = QuestionSet.model_validate(result)
    except AIServiceError as e:
        raise to_http_error(e, QUESTIONS_UNAVAILABLE) from e
    except ValidationError as e:
        logger.error(f"Invalid response structure from AI service: {e}")
        raise BadGatewayError() from e
    except Exception as e:
        logger.error(f"Interview questions generation error: {e}", exc_info=True)
        raise InternalServerError() from e

    return {"success": True, "data": questions}


@gemini_router.post("/evaluate-response")
async def evaluate_response(
    body: EvaluateResponseRequest,
    uid: str = Depends(require_user),
    gemini: GeminiClient = Depends(get_gemini_client),
    storage: Storage = Depends(get_storage),
):
    """Score one interview answer, appending it to the session when one is named."""
    require_fields(body, "question", "response", "job_title", "category")
    check_question_category(body.category)
    question, response_text = clean(body.question), clean(body.response)
    job_title = clean(body.job_title)
    check_job_title_length(job_title)
    check_answer_lengths(question, response_text)
    session_id = clean(body.session_id)

    try:
        if session_id:
            session = await storage.get_interview_session(session_id)
            if not session or session.get("userId") != uid:
                raise NotFoundError("Interview session not found")

        evaluation = await gemini.evaluate_interview_response(
            question, response_text, job_title, clean(body.category)
        )

        if session_id:
            await storage.append_interview_response(session_id, InterviewResponse(
                question=question,
                response=response_text,
                evaluation=evaluation,
            ))
    except AIServiceError as e:
        raise to_http_error(e, EVALUATION_UNAVAILABLE) from e
    except BaseHTTPException:
        raise
    except Exception as e:
        logger.error(f"Interview response evaluation error: {e}", exc_info=True)
        raise InternalServerError() from e

    return {"success": True, "data": evaluation}
