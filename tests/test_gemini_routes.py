import base64

import pytest
from conftest import AUTH_HEADERS, USER_ID

from resumeflow.gemini_client import AIInvalidResponseError, AIQuotaError, AIUnavailableError

ANALYZE_URL = "/api/gemini/analyze-resume"
DIRECT_URL = "/api/gemini/analyze-resume-direct"
QUESTIONS_URL = "/api/gemini/generate-questions"
EVALUATE_URL = "/api/gemini/evaluate-response"


def analysis_body(**overrides):
    body = {"resumeContent": "Experienced Python developer", "jobTitle": "Engineer", "industry": "Tech"}
    body.update(overrides)
    return body


def questions_body(**overrides):
    body = {"jobTitle": "Engineer", "industry": "Tech", "experienceLevel": "mid-level"}
    body.update(overrides)
    return body


# authentication

def test_missing_authorization_header(client):
    response = client.post(ANALYZE_URL, json=analysis_body())
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized - Missing or invalid token"}


def test_malformed_authorization_header(client):
    response = client.post(ANALYZE_URL, json=analysis_body(), headers={"Authorization": "Token abc"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized - Missing or invalid token"}


def test_token_verification_failure(client):
    response = client.post(ANALYZE_URL, json=analysis_body(), headers={"Authorization": "Bearer expired"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized - Token verification failed"}


def test_token_without_uid(client):
    response = client.post(ANALYZE_URL, json=analysis_body(), headers={"Authorization": "Bearer no-uid-token"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized - Invalid token"}


def test_auth_is_checked_before_body_validation(client, gemini):
    response = client.post(QUESTIONS_URL, json={})
    assert response.status_code == 401
    gemini.generate_interview_questions.assert_not_called()


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_wrong_method_is_405(client, method):
    response = client.request(method.upper(), ANALYZE_URL)
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


# analyze-resume

def test_analyze_resume_returns_wrapper_result(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result
    storage.create_resume.return_value = "resume-1"

    response = client.post(ANALYZE_URL, json=analysis_body(), headers=AUTH_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == analysis_result.model_dump(by_alias=True)
    assert body["message"] == "Resume analyzed successfully"
    assert body["resumeId"] == "resume-1"
    saved = storage.create_resume.call_args.args[0]
    assert saved.user_id == USER_ID
    assert saved.status == "analyzed"
    assert saved.analysis_score == 78
    assert saved.feedback == analysis_result


def test_analyze_resume_updates_existing_record(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result
    storage.get_resume.return_value = {"id": "resume-9", "userId": USER_ID}

    response = client.post(ANALYZE_URL, json=analysis_body(resumeId="resume-9"), headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json()["resumeId"] == "resume-9"
    resume_id, updates = storage.update_resume.call_args.args
    assert resume_id == "resume-9"
    assert updates["feedback"]["overallScore"] == 78
    storage.create_resume.assert_not_called()


def test_analyze_resume_of_another_user_is_404(client, gemini, storage):
    storage.get_resume.return_value = {"id": "resume-9", "userId": "someone-else"}

    response = client.post(ANALYZE_URL, json=analysis_body(resumeId="resume-9"), headers=AUTH_HEADERS)

    assert response.status_code == 404
    assert response.json() == {"error": "Resume not found"}
    gemini.analyze_resume.assert_not_called()


@pytest.mark.parametrize("missing", ["resumeContent", "jobTitle", "industry"])
def test_analyze_resume_missing_fields(client, missing):
    body = analysis_body()
    del body[missing]
    response = client.post(ANALYZE_URL, json=body, headers=AUTH_HEADERS)
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields: resumeContent, jobTitle, industry"}


def test_analyze_resume_content_length_limit(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result
    storage.create_resume.return_value = "resume-1"

    accepted = client.post(ANALYZE_URL, json=analysis_body(resumeContent="a" * 50_000), headers=AUTH_HEADERS)
    rejected = client.post(ANALYZE_URL, json=analysis_body(resumeContent="a" * 50_001), headers=AUTH_HEADERS)

    assert accepted.status_code == 200
    assert rejected.status_code == 400
    assert rejected.json() == {"error": "Resume content too long (max 50,000 characters)"}


def test_analyze_resume_job_title_too_long(client):
    response = client.post(ANALYZE_URL, json=analysis_body(jobTitle="x" * 101), headers=AUTH_HEADERS)
    assert response.status_code == 400
    assert response.json() == {"error": "Job title and industry must be under 100 characters"}


def test_analyze_resume_limits_apply_after_trimming(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result
    storage.create_resume.return_value = "resume-1"

    response = client.post(
        ANALYZE_URL,
        json=analysis_body(jobTitle="x" * 100 + " ", resumeContent="a" * 50_000 + "\n"),
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    gemini.analyze_resume.assert_awaited_once_with("a" * 50_000, "x" * 100, "Tech")


def test_analyze_resume_trims_inputs(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result
    storage.create_resume.return_value = "resume-1"

    client.post(
        ANALYZE_URL,
        json=analysis_body(resumeContent="  My resume \n", jobTitle=" Engineer ", industry="\tTech "),
        headers=AUTH_HEADERS,
    )

    gemini.analyze_resume.assert_awaited_once_with("My resume", "Engineer", "Tech")


def test_analyze_resume_quota_is_429(client, gemini):
    gemini.analyze_resume.side_effect = AIQuotaError("analyze resume", "quota exceeded")
    response = client.post(ANALYZE_URL, json=analysis_body(), headers=AUTH_HEADERS)
    assert response.status_code == 429
    assert response.json() == {"error": "Service temporarily at capacity. Please try again in a few minutes."}


def test_analyze_resume_unavailable_is_503(client, gemini):
    gemini.analyze_resume.side_effect = AIUnavailableError("analyze resume")
    response = client.post(ANALYZE_URL, json=analysis_body(), headers=AUTH_HEADERS)
    assert response.status_code == 503
    assert response.json() == {"error": "AI analysis service temporarily unavailable. Please try again."}


def test_analyze_resume_invalid_ai_data_is_502(client, gemini):
    gemini.analyze_resume.side_effect = AIInvalidResponseError("analyze resume", "invalid AI response")
    response = client.post(ANALYZE_URL, json=analysis_body(), headers=AUTH_HEADERS)
    assert response.status_code == 502
    assert response.json() == {"error": "AI service returned invalid data. Please try again."}


def test_analyze_resume_storage_failure_is_500(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result
    storage.create_resume.side_effect = RuntimeError("connection reset")
    response = client.post(ANALYZE_URL, json=analysis_body(), headers=AUTH_HEADERS)
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error. Please try again."}


def test_analyze_resume_rejects_malformed_json(client):
    response = client.post(
        ANALYZE_URL,
        content=b"{not json",
        headers={**AUTH_HEADERS, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


# analyze-resume-direct

def test_direct_analysis_of_text_stores_nothing(client, gemini, storage, analysis_result):
    gemini.analyze_resume.return_value = analysis_result

    response = client.post(DIRECT_URL, json=analysis_body())

    assert response.status_code == 200
    assert response.json()["message"] == "Resume analyzed successfully (results not stored)"
    assert "resumeId" not in response.json()
    storage.create_resume.assert_not_called()


def test_direct_analysis_of_pdf_upload(client, gemini, analysis_result, two_page_pdf):
    gemini.analyze_resume.return_value = analysis_result
    body = {
        "fileName": "cv.pdf",
        "fileData": base64.b64encode(two_page_pdf).decode(),
        "fileType": "application/pdf",
        "jobTitle": "Engineer",
        "industry": "Tech",
    }

    response = client.post(DIRECT_URL, json=body)

    assert response.status_code == 200
    gemini.analyze_resume.assert_awaited_once_with("First page text\nSecond page text", "Engineer", "Tech")


def test_direct_analysis_rejects_unknown_file_type(client, gemini):
    body = {
        "fileName": "cv.png",
        "fileData": base64.b64encode(b"png").decode(),
        "fileType": "image/png",
        "jobTitle": "Engineer",
        "industry": "Tech",
    }
    response = client.post(DIRECT_URL, json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid file type. Only PDF and Word documents are supported."}
    gemini.analyze_resume.assert_not_called()


def test_direct_analysis_of_corrupt_pdf(client, gemini):
    body = {
        "fileName": "cv.pdf",
        "fileData": base64.b64encode(b"garbage").decode(),
        "fileType": "application/pdf",
        "jobTitle": "Engineer",
        "industry": "Tech",
    }
    response = client.post(DIRECT_URL, json=body)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Failed to extract text from the uploaded file")
    gemini.analyze_resume.assert_not_called()


def test_direct_analysis_without_content_or_file(client):
    response = client.post(DIRECT_URL, json={"jobTitle": "Engineer", "industry": "Tech"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields")


# generate-questions

def test_generate_questions(client, gemini, question_set):
    gemini.generate_interview_questions.return_value = question_set

    response = client.post(QUESTIONS_URL, json=questions_body(), headers=AUTH_HEADERS)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [q["id"] for q in data["behavioral"]] == ["behav_1"]
    gemini.generate_interview_questions.assert_awaited_once_with("Engineer", "Tech", "mid-level", None)


@pytest.mark.parametrize("level", ["mid-level", "MID-LEVEL", "  Mid-Level "])
def test_experience_level_is_case_insensitive_and_forwarded_as_given(client, gemini, question_set, level):
    gemini.generate_interview_questions.return_value = question_set

    response = client.post(QUESTIONS_URL, json=questions_body(experienceLevel=level), headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert gemini.generate_interview_questions.call_args.args[2] == level.strip()


def test_invalid_experience_level(client, gemini):
    response = client.post(QUESTIONS_URL, json=questions_body(experienceLevel="guru"), headers=AUTH_HEADERS)
    assert response.status_code == 400
    assert response.json() == {
        "error": "Invalid experience level. Must be one of: entry-level, mid-level, senior-level, executive"
    }
    gemini.generate_interview_questions.assert_not_called()


def test_generate_questions_missing_fields(client):
    response = client.post(QUESTIONS_URL, json={"jobTitle": "Engineer"}, headers=AUTH_HEADERS)
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields: jobTitle, industry, experienceLevel"}


def test_generate_questions_missing_behavioral_is_502(client, gemini):
    gemini.generate_interview_questions.return_value = {"technical": [], "situational": []}

    response = client.post(QUESTIONS_URL, json=questions_body(), headers=AUTH_HEADERS)

    assert response.status_code == 502
    assert response.json() == {"error": "AI service returned invalid data. Please try again."}


def test_generate_questions_passes_resume_context(client, gemini, question_set):
    gemini.generate_interview_questions.return_value = question_set
    client.post(QUESTIONS_URL, json=questions_body(resumeContent=" Resume text "), headers=AUTH_HEADERS)
    assert gemini.generate_interview_questions.call_args.args[3] == "Resume text"


def test_generate_questions_title_limit_applies_after_trimming(client, gemini, question_set):
    gemini.generate_interview_questions.return_value = question_set

    response = client.post(QUESTIONS_URL, json=questions_body(industry=" " + "t" * 100), headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert gemini.generate_interview_questions.call_args.args[1] == "t" * 100


def test_generate_questions_unavailable_is_503(client, gemini):
    gemini.generate_interview_questions.side_effect = AIUnavailableError("generate interview questions")
    response = client.post(QUESTIONS_URL, json=questions_body(), headers=AUTH_HEADERS)
    assert response.status_code == 503
    assert response.json() == {"error": "AI question generation service temporarily unavailable. Please try again."}


# evaluate-response

def evaluate_body(**overrides):
    body = {
        "question": "Tell me about a conflict",
        "response": "I listened first, then ...",
        "jobTitle": "Engineer",
        "category": "behavioral",
    }
    body.update(overrides)
    return body


def test_evaluate_response(client, gemini, storage, evaluation):
    gemini.evaluate_interview_response.return_value = evaluation

    response = client.post(EVALUATE_URL, json=evaluate_body(), headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json()["data"]["exampleResponse"] == "In my last role I ..."
    storage.append_interview_response.assert_not_called()


def test_evaluate_response_is_appended_to_session(client, gemini, storage, evaluation):
    gemini.evaluate_interview_response.return_value = evaluation
    storage.get_interview_session.return_value = {"id": "session-1", "userId": USER_ID}

    response = client.post(EVALUATE_URL, json=evaluate_body(sessionId="session-1"), headers=AUTH_HEADERS)

    assert response.status_code == 200
    session_id, entry = storage.append_interview_response.call_args.args
    assert session_id == "session-1"
    assert entry.question == "Tell me about a conflict"
    assert entry.evaluation.score == 72


def test_evaluate_response_unknown_session_is_404(client, gemini, storage):
    storage.get_interview_session.return_value = None
    response = client.post(EVALUATE_URL, json=evaluate_body(sessionId="missing"), headers=AUTH_HEADERS)
    assert response.status_code == 404
    gemini.evaluate_interview_response.assert_not_called()


def test_evaluate_response_invalid_category(client):
    response = client.post(EVALUATE_URL, json=evaluate_body(category="trivia"), headers=AUTH_HEADERS)
    assert response.status_code == 400
    assert response.json() == {
        "error": "Invalid question category. Must be one of: technical, behavioral, situational"
    }


def test_evaluate_response_answer_too_long(client):
    response = client.post(EVALUATE_URL, json=evaluate_body(response="a" * 10_001), headers=AUTH_HEADERS)
    assert response.status_code == 400
    assert response.json() == {"error": "Question and response must be under 10,000 characters"}


def test_evaluate_response_limit_ignores_surrounding_whitespace(client, gemini, evaluation):
    gemini.evaluate_interview_response.return_value = evaluation

    response = client.post(
        EVALUATE_URL, json=evaluate_body(response="\n" + "a" * 10_000 + "  "), headers=AUTH_HEADERS
    )

    assert response.status_code == 200
    assert gemini.evaluate_interview_response.call_args.args[1] == "a" * 10_000
