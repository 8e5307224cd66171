import streamlit as st

from quizdesk.app_state import init_app
from quizdesk.ui import ROLE_LABELS, apply_global_styles, hero, render_sidebar, show_error
from quizdesk.auth import change_password
from quizdesk.errors import QuizDeskError
from quizdesk.models import Role

st.set_page_config(page_title="Profile", page_icon="👤", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

user = st.session_state.user
if user is None:
    st.info("Please sign in first")
    st.stop()

hero("Profile", "Your account details.")

st.markdown(f"**Name:** {user['name']}")
st.markdown(f"**Email:** {user['email']}")
st.markdown(f"**Role:** {ROLE_LABELS[Role(user['role'])]}")
if user.get("roll"):
    st.markdown(f"**Roll number:** {user['roll']}")

st.divider()
st.subheader("Change password")
with st.form("change_password_form", clear_on_submit=True):
    current = st.text_input("Current password", type="password")
    new = st.text_input("New password", type="password")
    confirm = st.text_input("Confirm new password", type="password")
    if st.form_submit_button("Update password", type="primary"):
        if new != confirm:
            st.error("New passwords do not match.")
        else:
            try:
                change_password(user["id"], current, new)
                st.success("Password updated.")
            except QuizDeskError as e:
                show_error(e)
