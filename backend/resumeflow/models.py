import math
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

QuestionCategory = Literal["technical", "behavioral", "situational"]
Difficulty = Literal["easy", "medium", "hard"]
ResumeStatus = Literal["uploaded", "analyzing", "analyzed", "error"]
SessionStatus = Literal["active", "completed", "abandoned"]


def _score(upper: int):
    """Integer score that rounds fractions and clamps into ``0..upper``.

    78.5 becomes 78, a section scored 24 becomes 20. Non-numeric values are
    left for pydantic to refuse.
    """

    def coerce(value: Any) -> Any:
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                return value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        if isinstance(value, float) and not math.isfinite(value):
            return value
        return min(max(round(value), 0), upper)

    return Annotated[int, BeforeValidator(coerce)]


SectionScore = _score(20)
Percentage = _score(100)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire and in the database."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# AI results

class SectionScores(CamelModel):
    content: SectionScore = 0
    structure: SectionScore = 0
    impact: SectionScore = 0
    keywords: SectionScore = 0
    presentation: SectionScore = 0


class ATSCompatibility(CamelModel):
    score: Percentage = 0
    issues: List[str] = []


class ResumeAnalysisResult(CamelModel):
    overall_score: Percentage
    section_scores: SectionScores = Field(default_factory=SectionScores)
    strengths: List[str] = []
    improvements: List[str] = []
    recommendations: List[str] = []
    ats_compatibility: ATSCompatibility = Field(default_factory=ATSCompatibility)


class InterviewQuestion(CamelModel):
    id: str
    text: str
    category: QuestionCategory
    difficulty: Difficulty

    @field_validator("category", "difficulty", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class QuestionSet(CamelModel):
    # every list must be present, an empty one is fine
    technical: List[InterviewQuestion]
    behavioral: List[InterviewQuestion]
    situational: List[InterviewQuestion]


class ResponseEvaluation(CamelModel):
    score: Percentage
    strengths: List[str] = []
    improvements: List[str] = []
    suggestions: List[str] = []
    example_response: str = ""


# Token accounting

class TokenUsage(CamelModel):
    input_tokens: int
    output_tokens: int
    total_tokens: int


class CostCalculation(CamelModel):
    input_cost: float
    output_cost: float
    total_cost: float


# Request bodies. Fields are optional so missing ones get the
# "Missing required fields" message instead of a schema error.

class AnalyzeResumeRequest(CamelModel):
    resume_content: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    resume_id: Optional[str] = None
    file_name: Optional[str] = None


class AnalyzeResumeDirectRequest(CamelModel):
    resume_content: Optional[str] = None
    file_name: Optional[str] = None
    file_data: Optional[str] = None
    file_type: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None


class GenerateQuestionsRequest(CamelModel):
    job_title: Optional[str] = None
    industry: Optional[str] = None
    experience_level: Optional[str] = None
    resume_content: Optional[str] = None


class EvaluateResponseRequest(CamelModel):
    question: Optional[str] = None
    response: Optional[str] = None
    job_title: Optional[str] = None
    category: Optional[str] = None
    session_id: Optional[str] = None


class ResumeAnalyzeRequest(CamelModel):
    resume_id: Optional[str] = None
    resume_content: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None


class InterviewGenerateRequest(CamelModel):
    user_id: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    experience_level: Optional[str] = None
    resume_content: Optional[str] = None


class AuthRequest(CamelModel):
    action: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    display_name: Optional[str] = None
    provider_id: str = "google.com"
    provider_id_token: Optional[str] = None


class SessionStatusRequest(CamelModel):
    status: Optional[str] = None


# Persisted records

class UserPreferences(CamelModel):
    target_role: str = ""
    industry: str = ""
    experience_level: str = ""


class AuthUser(CamelModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    provider: str = "password"
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


class Resume(CamelModel):
    id: Optional[str] = None
    user_id: str
    file_name: str
    job_title: str
    industry: str
    status: ResumeStatus = "uploaded"
    analysis_score: Optional[int] = None
    feedback: Optional[ResumeAnalysisResult] = None
    content: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    analyzed_at: Optional[datetime] = None


class InterviewResponse(CamelModel):
    question: str
    response: str
    evaluation: ResponseEvaluation
    timestamp: Optional[datetime] = None


class InterviewSession(CamelModel):
    id: Optional[str] = None
    user_id: str
    job_title: str
    industry: str
    experience_level: str
    questions: QuestionSet
    responses: List[InterviewResponse] = []
    status: SessionStatus = "active"
    created_at: Optional[datetime] = None
