import json
import logging
import re
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from resumeflow.models import QuestionSet, ResponseEvaluation, ResumeAnalysisResult
from resumeflow.token_utils import build_token_usage, estimate_token_count, log_token_cost_analysis

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash-exp"
DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

ResultT = TypeVar("ResultT", bound=BaseModel)

CODE_FENCE_RE = re.compile(r"```(?:json)?\n?|\n?```")


class ConfigurationError(RuntimeError):
    pass


class MalformedJSONError(ValueError):
    pass


class AIServiceError(Exception):
    """Base for every failure of a model call; the message starts with "Failed to <operation>"."""

    def __init__(self, operation: str, detail: str | None = None):
        self.operation = operation
        self.detail = detail
        message = f"Failed to {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AIQuotaError(AIServiceError):
    pass


class AIUnavailableError(AIServiceError):
    pass


class AIInvalidResponseError(AIServiceError):
    pass


ANALYZE_PROMPT_TEMPLATE = """
Role: Expert resume analyzer and career coach with 15+ years of experience in recruitment and talent acquisition.

Task: Analyze the following resume for a {job_title} position in the {industry} industry. Provide comprehensive feedback with specific, actionable recommendations.

Resume Content:
{resume_content}

Analysis Requirements:
1. Score each section out of 20 points (100 total):
   - Content Quality (30%): Relevance, achievements, experience alignment
   - Structure & Format (25%): Organization, readability, ATS compatibility
   - Impact & Quantification (20%): Metrics, results, concrete outcomes
   - Keyword Optimization (15%): Industry terms, role-specific keywords
   - Professional Presentation (10%): Grammar, consistency, visual appeal

2. Identify 3-5 key strengths
3. Provide 3-5 specific improvement areas
4. Give 3-5 actionable recommendations
5. Assess ATS compatibility with specific issues

Output Format: Valid JSON only, no additional text:
{{
  "overallScore": number,
  "sectionScores": {{
    "content": number,
    "structure": number,
    "impact": number,
    "keywords": number,
    "presentation": number
  }},
  "strengths": ["strength1", "strength2", ...],
  "improvements": ["improvement1", "improvement2", ...],
  "recommendations": ["recommendation1", "recommendation2", ...],
  "atsCompatibility": {{
    "score": number,
    "issues": ["issue1", "issue2", ...]
  }}
}}
"""

QUESTIONS_PROMPT_TEMPLATE = """
Role: Senior technical recruiter and interview specialist with expertise in {industry} industry.

Task: Generate comprehensive interview questions for a {job_title} position targeting {experience_level} level candidates.

{resume_context}
Requirements:
1. Generate 5 technical questions relevant to {job_title} role
2. Generate 5 behavioral questions using STAR method framework
3. Generate 5 situational questions for problem-solving assessment
4. Vary difficulty levels appropriately for {experience_level} level
5. Ensure questions are current with industry standards and practices

Output Format: Valid JSON only, no additional text:
{{
  "technical": [
    {{"id": "tech_1", "text": "question text", "category": "technical", "difficulty": "easy|medium|hard"}}
  ],
  "behavioral": [
    {{"id": "behav_1", "text": "question text", "category": "behavioral", "difficulty": "easy|medium|hard"}}
  ],
  "situational": [
    {{"id": "sit_1", "text": "question text", "category": "situational", "difficulty": "easy|medium|hard"}}
  ]
}}
"""

EVALUATE_PROMPT_TEMPLATE = """
Role: Expert interview coach and assessment specialist.

Task: Evaluate the candidate's interview response for a {job_title} position.

Question: {question}
Category: {category}
Candidate Response: {response_text}

Evaluation Criteria:
1. Relevance (30%): Direct question addressing
2. Structure (20%): Clear organization (STAR method for behavioral)
3. Depth (20%): Sufficient detail and insight
4. Professionalism (20%): Appropriate tone and language
5. Impact (10%): Demonstrates value and results

Provide:
- Overall score (0-100)
- 2-3 specific strengths
- 2-3 areas for improvement
- 2-3 actionable suggestions
- Example of a strong response

Output Format: Valid JSON only, no additional text:
{{
  "score": number,
  "strengths": ["strength1", "strength2", ...],
  "improvements": ["improvement1", "improvement2", ...],
  "suggestions": ["suggestion1", "suggestion2", ...],
  "exampleResponse": "example response text"
}}
"""


def build_analysis_prompt(resume_content: str, job_title: str, industry: str) -> str:
    return ANALYZE_PROMPT_TEMPLATE.format(
        resume_content=resume_content,
        job_title=job_title,
        industry=industry,
    )


def build_questions_prompt(
    job_title: str,
    industry: str,
    experience_level: str,
    resume_content: Optional[str] = None,
) -> str:
    resume_context = f"Candidate Resume Context:\n{resume_content}\n" if resume_content else ""
    return QUESTIONS_PROMPT_TEMPLATE.format(
        job_title=job_title,
        industry=industry,
        experience_level=experience_level,
        resume_context=resume_context,
    )


def build_evaluation_prompt(question: str, response_text: str, job_title: str, category: str) -> str:
    return EVALUATE_PROMPT_TEMPLATE.format(
        question=question,
        response_text=response_text,
        job_title=job_title,
        category=category,
    )


def parse_json_response(text: str) -> Any:
    """Parse model output as JSON.

    Code fences are stripped first. If the remainder does not parse, the slice
    between the first "{" and the last "}" is tried once more. Nothing else is
    repaired.
    """
    cleaned = CODE_FENCE_RE.sub("", text).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise MalformedJSONError(f"AI response is not valid JSON: {e}") from e

    raise MalformedJSONError("AI response does not contain a JSON object")


def _is_quota_error(error: httpx.HTTPStatusError) -> bool:
    if error.response.status_code == 429:
        return True
    body = error.response.text.lower()
    return "quota" in body or "resource_exhausted" in body


class GeminiClient:
    """Async client for the Gemini generateContent REST endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        top_k: int = 40,
        top_p: float = 0.95,
        max_output_tokens: int = 8192,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set in environment variables")
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.format(model=model)
        self.generation_config = {
            "temperature": temperature,
            "topK": top_k,
            "topP": top_p,
            "maxOutputTokens": max_output_tokens,
        }
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate_content(self, prompt: str) -> str:
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
            "generationConfig": self.generation_config,
        }
        resp = await self._client.post(
            self.endpoint,
            headers={"Content-Type": "application/json"},
            json=payload,
            params={"key": self.api_key},
        )
        resp.raise_for_status()
        data = resp.json()

        candidates = data.get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
        text_output = "".join(part.get("text", "") for part in parts)

        self._log_usage(prompt, text_output, data.get("usageMetadata") or {})
        return text_output

    def _log_usage(self, prompt: str, text_output: str, usage_metadata: Dict[str, Any]) -> None:
        input_tokens = usage_metadata.get("promptTokenCount", estimate_token_count(prompt))
        output_tokens = usage_metadata.get("candidatesTokenCount", estimate_token_count(text_output))
        log_token_cost_analysis(build_token_usage(input_tokens, output_tokens))

    async def _run(self, operation: str, prompt: str, result_type: Type[ResultT]) -> ResultT:
        try:
            text_output = await self.generate_content(prompt)
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini returned HTTP {e.response.status_code} while trying to {operation}")
            if _is_quota_error(e):
                raise AIQuotaError(operation, "quota exceeded") from e
            raise AIUnavailableError(operation) from e
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed while trying to {operation}: {e}")
            raise AIUnavailableError(operation) from e
        except ValueError as e:
            logger.error(f"Gemini returned a non-JSON body while trying to {operation}: {e}")
            raise AIInvalidResponseError(operation, "invalid AI response") from e

        if not text_output.strip():
            logger.error(f"Gemini returned no text while trying to {operation}")
            raise AIInvalidResponseError(operation, "invalid AI response")

        try:
            parsed = parse_json_response(text_output)
        except MalformedJSONError as e:
            logger.error(f"{e}. Content: {text_output[:500]}")
            raise AIInvalidResponseError(operation, "invalid AI response") from e

        try:
            return result_type.model_validate(parsed)
        except ValidationError as e:
            logger.error(f"Gemini response does not match {result_type.__name__}: {e}")
            raise AIInvalidResponseError(operation, "invalid AI response") from e

    async def analyze_resume(self, resume_content: str, job_title: str, industry: str) -> ResumeAnalysisResult:
        prompt = build_analysis_prompt(resume_content, job_title, industry)
        return await self._run("analyze resume", prompt, ResumeAnalysisResult)

    async def generate_interview_questions(
        self,
        job_title: str,
        industry: str,
        experience_level: str,
        resume_content: Optional[str] = None,
    ) -> QuestionSet:
        prompt = build_questions_prompt(job_title, industry, experience_level, resume_content)
        return await self._run("generate interview questions", prompt, QuestionSet)

    async def evaluate_interview_response(
        self,
        question: str,
        response_text: str,
        job_title: str,
        category: str,
    ) -> ResponseEvaluation:
        prompt = build_evaluation_prompt(question, response_text, job_title, category)
        return await self._run("evaluate interview response", prompt, ResponseEvaluation)
