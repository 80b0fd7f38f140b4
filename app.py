import streamlit as st
import pandas as pd
import logging

from config import configure_logging, load_settings
from document_reader import ATTENDANCE_UPLOAD_TYPES, STUDENT_UPLOAD_TYPES
from errors import PortalError
from excel_generator import generate_review_excel
from gemini_service import draft_notice, generate_chat_response
from import_flow import ATTENDANCE, STUDENTS, ImportSession, Stage
from models import Assignment, Role, User
from portal_store import PortalStore
from student_assistant import build_student_prompt

settings = load_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Student Portal Import Console",
    page_icon="🎓",
    layout="wide"
)

st.title("🎓 Student Portal Import Console")
st.markdown("*Import rosters and attendance from PDF, Word or photos using AI*")


def _seed_store() -> PortalStore:
    store = PortalStore(settings=settings)
    store.add_staff("Dr. K. Rao", "T1001", "password123", "ECE",
                    assignments=[Assignment("ECE", 1, "A"), Assignment("ECE", 2, "A")])
    return store


# ── Session state ────────────────────────────────────────────────────────────
if "store" not in st.session_state:
    st.session_state.store = _seed_store()
for key in ["student_session", "attendance_session", "feedback"]:
    if key not in st.session_state:
        st.session_state[key] = None

store: PortalStore = st.session_state.store

# ── Sidebar: key status + acting user ────────────────────────────────────────
with st.sidebar:
    st.header("🔑 API Configuration")
    if settings.gemini_api_key:
        st.success("✅ API key loaded automatically.")
    else:
        st.warning("Set GEMINI_API_KEY in secrets or the environment to enable AI extraction.")

    st.header("👤 Acting as")
    staff = [u for u in store.users() if u.role != Role.STUDENT]
    labels = {f"{u.name} ({u.roll_number})": u for u in staff}
    labels["Super Admin"] = User(0, "Super Admin", "TSUPER", "", Role.SUPER_ADMIN, "ALL")
    acting_user = labels[st.selectbox("Operator", list(labels), index=len(labels) - 1)]


def _session(state_key: str, kind: str) -> ImportSession:
    session = st.session_state[state_key]
    if session is None or session.stage in (Stage.COMMITTED, Stage.CANCELLED):
        session = ImportSession(store, kind, acting_user=acting_user, settings=settings)
        st.session_state[state_key] = session
    elif session.stage == Stage.UPLOAD:
        session.acting_user = acting_user
    return session


def render_import(state_key: str, kind: str, types: list):
    session = _session(state_key, kind)

    if session.stage == Stage.UPLOAD:
        uploaded = st.file_uploader("Upload document", type=types, key=f"{state_key}_uploader")
        if session.error:
            st.error(f"❌ {session.error}")
        if uploaded and st.button("🤖 Process with AI", type="primary", key=f"{state_key}_process",
                                  disabled=not settings.gemini_api_key):
            with st.spinner("🔍 The AI is analyzing your document. This may take a moment..."):
                try:
                    session.upload(uploaded.getvalue(), uploaded.name, uploaded.type)
                except PortalError:
                    pass  # kept on the session and shown above
            st.rerun()
        return

    report = session.report
    st.subheader("📋 Review Extracted Data")
    st.info(report.summary())
    st.dataframe(report.to_dataframe(), use_container_width=True, height=400)

    c1, c2, c3 = st.columns(3)
    if c1.button("✅ Confirm Import", type="primary", disabled=not session.can_commit,
                 key=f"{state_key}_confirm"):
        try:
            st.session_state.feedback = session.confirm()
        except PortalError as e:
            st.session_state.feedback = f"❌ {e}"
        st.rerun()
    if c2.button("✖️ Cancel", key=f"{state_key}_cancel"):
        session.cancel()
        st.rerun()
    c3.download_button(
        label="⬇️ Download Review (Excel)",
        data=generate_review_excel(report),
        file_name=f"{kind}_import_review.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        key=f"{state_key}_download",
    )


if st.session_state.feedback:
    st.success(st.session_state.feedback)

tab1, tab2, tab3, tab4 = st.tabs(["👥 Import Students", "📅 Import Attendance", "📚 Students", "💬 Assistant"])

with tab1:
    render_import("student_session", STUDENTS, STUDENT_UPLOAD_TYPES)

with tab2:
    render_import("attendance_session", ATTENDANCE, ATTENDANCE_UPLOAD_TYPES)

with tab3:
    users, student_data = store.snapshot()
    data_by_user = {sd.user_id: sd for sd in student_data}
    rows = [
        {
            "Roll No": u.roll_number, "Name": u.name, "Dept": u.department,
            "Year": data_by_user[u.id].current_year if u.id in data_by_user else "",
            "Section": u.section or "",
            "Attendance %": data_by_user[u.id].overall_attendance() if u.id in data_by_user else "",
        }
        for u in users if u.role == Role.STUDENT
    ]
    if rows:
        st.dataframe(pd.DataFrame(rows), use_container_width=True)
    else:
        st.info("👆 No students yet. Import a roster to begin.")

with tab4:
    students = {f"{u.name} ({u.roll_number})": u for u in store.users() if u.role == Role.STUDENT}
    who = st.selectbox("Ask as", ["Staff / Admin"] + list(students))
    thinking = st.toggle("Deep Thinking")
    question = st.text_input("Question")
    if st.button("Ask", disabled=not question):
        user = students.get(who, acting_user)
        prompt = build_student_prompt(user, store.get_student_data(user.id), question)
        with st.spinner("Thinking..."):
            st.markdown(generate_chat_response(prompt, thinking, settings))

    st.divider()
    st.subheader("📝 Draft a Notice")
    topic = st.text_area("Notice topic")
    if st.button("Draft", disabled=not topic):
        try:
            notice = draft_notice(topic, acting_user.department, acting_user.name, settings)
            st.markdown(f"**{notice['title']}**\n\n{notice['content']}")
        except PortalError as e:
            st.error(f"❌ Notice drafting failed: {e}")

st.divider()
st.caption("Student Portal Import Console | Powered by Gemini AI")
