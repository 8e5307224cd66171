import streamlit as st

from quizdesk.app_state import init_app
from quizdesk.auth import dashboard_for
from quizdesk.models import Role
from quizdesk.ui import apply_global_styles, hero, render_sidebar, ROLE_LABELS

st.set_page_config(
    page_title="QuizDesk",
    page_icon="📚",
    layout="wide",
    initial_sidebar_state="expanded",
)

init_app()
apply_global_styles()
render_sidebar()

hero(
    "📚 QuizDesk",
    "Teachers build subjects, modules and timed quizzes; students join with a code and take them.",
)

user = st.session_state.user
if user is None:
    col1, col2, col3 = st.columns(3)
    with col1:
        st.subheader("Teachers")
        st.write("Create subjects, share the join code, add modules and publish quizzes when ready.")
    with col2:
        st.subheader("Students")
        st.write("Join a subject with the code from your teacher and attempt its active quizzes.")
    with col3:
        st.subheader("Admins")
        st.write("Manage teacher and student accounts and reset passwords.")
    st.info("Sign in from the sidebar to continue.")
else:
    role = Role(user["role"])
    st.success(f"Welcome back, {user.get('name') or user.get('email')}.")
    if st.button(f"Open the {ROLE_LABELS[role].lower()} dashboard", type="primary"):
        st.switch_page(dashboard_for(role))
