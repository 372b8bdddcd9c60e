import base64
import logging
import os
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

BACKEND_URL = os.getenv("RESUMEFLOW_API_URL", "http://127.0.0.1:8000")
GENERIC_ERROR = "Something went wrong. Please try again."


class APIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ResumeFlowAPI:
    def __init__(self, base_url: str = BACKEND_URL, timeout: float = 120.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = self.session.post(
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Request to {path} failed: {e}")
            raise APIError(GENERIC_ERROR) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            raise APIError(data.get("error") or GENERIC_ERROR, response.status_code)
        return data

    def authenticate(self, action: str, **fields: Any) -> Dict[str, Any]:
        return self._post("/api/auth", {"action": action, **fields})["user"]

    def analyze_resume_file(self, file_name: str, file_bytes: bytes, file_type: str, job_title: str, industry: str) -> Dict[str, Any]:
        payload = {
            "fileName": file_name,
            "fileData": base64.b64encode(file_bytes).decode("ascii"),
            "fileType": file_type,
            "jobTitle": job_title,
            "industry": industry,
        }
        return self._post("/api/gemini/analyze-resume-direct", payload)["data"]

    def generate_questions(self, token: str, job_title: str, industry: str, experience_level: str, resume_content: Optional[str] = None) -> Dict[str, Any]:
        payload = {
            "jobTitle": job_title,
            "industry": industry,
            "experienceLevel": experience_level,
        }
        if resume_content:
            payload["resumeContent"] = resume_content
        return self._post("/api/gemini/generate-questions", payload, token=token)["data"]

    def evaluate_response(self, token: str, question: str, response: str, job_title: str, category: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        payload = {
            "question": question,
            "response": response,
            "jobTitle": job_title,
            "category": category,
        }
        if session_id:
            payload["sessionId"] = session_id
        return self._post("/api/gemini/evaluate-response", payload, token=token)["data"]
