import streamlit as st

from api_client import APIError, ResumeFlowAPI
from auth_context import AuthContext

FILE_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
EXPERIENCE_LEVELS = ["entry-level", "mid-level", "senior-level", "executive"]

st.set_page_config(page_title="ResumeFlow", layout="wide")

if "auth" not in st.session_state:
    st.session_state.auth = AuthContext(ResumeFlowAPI())
auth: AuthContext = st.session_state.auth
api = auth.api

# Sidebar: account
with st.sidebar:
    st.header("👤 Account")
    if auth.user:
        st.write(f"Signed in as **{auth.user.get('displayName') or auth.user.get('email')}**")
        if st.button("Log out"):
            auth.logout()
            st.rerun()
    else:
        mode = st.radio("Mode", ["Sign in", "Register"], horizontal=True)
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        display_name = st.text_input("Display name") if mode == "Register" else ""
        if st.button(mode):
            try:
                if mode == "Sign in":
                    auth.sign_in(email, password)
                else:
                    auth.sign_up(email, password, display_name)
                st.rerun()
            except APIError:
                pass
        google_token = st.text_input("Google ID token (optional)")
        if st.button("Continue with Google"):
            try:
                if auth.sign_in_with_google(google_token):
                    st.rerun()
            except APIError:
                pass
    if auth.error:
        st.error(auth.error)
        if st.button("Dismiss"):
            auth.clear_error()
            st.rerun()

st.title("📄 ResumeFlow")
st.markdown("### AI resume feedback and interview preparation")

with st.expander("How it works", expanded=not auth.user):
    col1, col2, col3 = st.columns(3)
    col1.markdown("**1. Upload**  \nPDF or Word resume plus the role you are targeting.")
    col2.markdown("**2. Get scored**  \nSection scores, ATS issues and concrete fixes.")
    col3.markdown("**3. Practice**  \nTailored interview questions with feedback on your answers.")

resume_tab, interview_tab = st.tabs(["Resume analysis", "Interview practice"])

with resume_tab:
    uploaded_file = st.file_uploader("Upload your resume", type=list(FILE_TYPES))
    job_title = st.text_input("Target job title", max_chars=100)
    industry = st.text_input("Industry", max_chars=100)

    if uploaded_file and job_title and industry:
        if st.button("Analyze Resume"):
            with st.spinner("Analyzing your resume... Please wait ⏳"):
                extension = uploaded_file.name.rsplit(".", 1)[-1].lower()
                try:
                    result = api.analyze_resume_file(
                        uploaded_file.name,
                        uploaded_file.getvalue(),
                        FILE_TYPES.get(extension, uploaded_file.type),
                        job_title,
                        industry,
                    )
                except APIError as e:
                    st.error(f"❌ {e.message}")
                else:
                    st.success("✅ Resume analyzed successfully!")
                    st.metric("Overall score", f"{result['overallScore']} / 100")

                    st.subheader("📊 Section scores")
                    for section, score in result["sectionScores"].items():
                        st.progress(score / 20, text=f"{section}: {score} / 20")

                    st.subheader("✅ Strengths")
                    for item in result["strengths"]:
                        st.write(f"- {item}")

                    st.subheader("⚠️ Improvements")
                    for item in result["improvements"]:
                        st.write(f"- {item}")

                    st.subheader("💡 Recommendations")
                    for item in result["recommendations"]:
                        st.write(f"- {item}")

                    ats = result["atsCompatibility"]
                    st.subheader("🤖 ATS compatibility")
                    st.write(f"**Score:** {ats['score']} / 100")
                    for issue in ats["issues"]:
                        st.write(f"- {issue}")
    else:
        st.info("Please upload a resume and enter a job title and industry to begin.")

with interview_tab:
    if not auth.user:
        st.info("Sign in to generate interview questions.")
    else:
        q_title = st.text_input("Job title", key="q_title", max_chars=100)
        q_industry = st.text_input("Industry", key="q_industry", max_chars=100)
        level = st.selectbox("Experience level", EXPERIENCE_LEVELS)

        if q_title and q_industry and st.button("Generate Questions"):
            with st.spinner("Generating questions..."):
                try:
                    st.session_state.questions = api.generate_questions(
                        auth.id_token, q_title, q_industry, level
                    )
                except APIError as e:
                    st.error(f"❌ {e.message}")

        questions = st.session_state.get("questions")
        if questions:
            for category in ("technical", "behavioral", "situational"):
                st.subheader(category.capitalize())
                for question in questions.get(category, []):
                    with st.expander(f"{question['text']} ({question['difficulty']})"):
                        answer = st.text_area("Your answer", key=f"answer_{question['id']}")
                        if answer and st.button("Evaluate", key=f"eval_{question['id']}"):
                            try:
                                evaluation = api.evaluate_response(
                                    auth.id_token, question["text"], answer, q_title, category
                                )
                            except APIError as e:
                                st.error(f"❌ {e.message}")
                            else:
                                st.write(f"**Score:** {evaluation['score']} / 100")
                                for tip in evaluation["suggestions"]:
                                    st.write(f"- {tip}")
                                st.write("**Example response:**")
                                st.write(evaluation["exampleResponse"])
