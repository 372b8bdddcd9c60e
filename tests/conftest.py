import os
from unittest.mock import AsyncMock

import fitz
import pytest
from fastapi.testclient import TestClient

os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["FIREBASE_WEB_API_KEY"] = "test-web-key"
os.environ["MONGODB_URI"] = "mongodb://localhost:27017"

from resumeflow.auth import IdentityClient  # noqa: E402
from resumeflow.deps import (  # noqa: E402
    get_gemini_client,
    get_identity_client,
    get_storage,
    get_token_verifier,
)
from resumeflow.gemini_client import GeminiClient  # noqa: E402
from resumeflow.main import app  # noqa: E402
from resumeflow.models import (  # noqa: E402
    ATSCompatibility,
    InterviewQuestion,
    QuestionSet,
    ResponseEvaluation,
    ResumeAnalysisResult,
    SectionScores,
)
from resumeflow.storage import Storage  # noqa: E402

AUTH_HEADERS = {"Authorization": "Bearer valid-token"}
USER_ID = "user-1"


class FakeVerifier:
    def verify(self, token):
        if token == "valid-token":
            return {"uid": USER_ID}
        if token == "no-uid-token":
            return {}
        raise ValueError("Token expired")


@pytest.fixture
def gemini():
    return AsyncMock(spec=GeminiClient)


@pytest.fixture
def storage():
    return AsyncMock(spec=Storage)


@pytest.fixture
def identity():
    return AsyncMock(spec=IdentityClient)


@pytest.fixture
def client(gemini, storage, identity):
    app.dependency_overrides[get_gemini_client] = lambda: gemini
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_identity_client] = lambda: identity
    app.dependency_overrides[get_token_verifier] = lambda: FakeVerifier()
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def analysis_result():
    return ResumeAnalysisResult(
        overall_score=78,
        section_scores=SectionScores(content=16, structure=15, impact=14, keywords=17, presentation=16),
        strengths=["Clear project descriptions", "Relevant cloud experience"],
        improvements=["Quantify achievements"],
        recommendations=["Add a skills summary"],
        ats_compatibility=ATSCompatibility(score=82, issues=["Tables in header"]),
    )


@pytest.fixture
def question_set():
    return QuestionSet(
        technical=[InterviewQuestion(id="tech_1", text="Explain CAP theorem", category="technical", difficulty="medium")],
        behavioral=[InterviewQuestion(id="behav_1", text="Tell me about a conflict", category="behavioral", difficulty="easy")],
        situational=[InterviewQuestion(id="sit_1", text="Production is down", category="situational", difficulty="hard")],
    )


@pytest.fixture
def evaluation():
    return ResponseEvaluation(
        score=72,
        strengths=["Structured answer"],
        improvements=["More detail on results"],
        suggestions=["Use the STAR method"],
        example_response="In my last role I ...",
    )


def make_pdf(*pages):
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def two_page_pdf():
    return make_pdf("First page text", "Second page text")


@pytest.fixture
def blank_pdf():
    return make_pdf("")
