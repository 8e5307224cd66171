import logging
from datetime import datetime

import streamlit as st

from quizdesk.auth import authenticate_user, create_user, dashboard_for, require_role
from quizdesk.app_state import sign_in, sign_out
from quizdesk.errors import QuizDeskError, UnauthorizedError
from quizdesk.models import Role

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    Role.STUDENT: "Student",
    Role.TEACHER: "Teacher",
    Role.ADMIN: "Admin",
}


def apply_global_styles():
    st.markdown(
        """
        <style>
        @import url('https://fonts.googleapis.com/css2?family=Space+Grotesk:wght@400;600;700&family=IBM+Plex+Sans:wght@400;600&display=swap');

        :root {
            --bg-0: #0b0f14;
            --bg-1: #0f141b;
            --fg-0: #e6edf3;
            --fg-1: #c6d1dc;
            --accent: #4cc9f0;
            --warn: #ffb703;
        }

        .stApp {
            background: radial-gradient(1200px 600px at 15% -10%, #1a2230 0%, var(--bg-0) 60%);
            color: var(--fg-0);
            font-family: "IBM Plex Sans", sans-serif;
        }

        h1, h2, h3, h4 {
            font-family: "Space Grotesk", sans-serif;
            letter-spacing: 0.3px;
        }

        .hero {
            padding: 1.5rem 1.75rem;
            background: linear-gradient(120deg, #141b24 0%, #0f141b 55%, #111925 100%);
            border: 1px solid #1f2a38;
            border-radius: 16px;
            box-shadow: 0 12px 40px rgba(0, 0, 0, 0.35);
            margin-bottom: 1.5rem;
        }

        .hero p {
            color: var(--fg-1);
            margin: 0;
        }

        .quiz-timer {
            font-family: "Space Grotesk", sans-serif;
            font-size: 1.6rem;
            font-weight: 700;
            text-align: right;
            color: var(--accent);
        }

        .quiz-timer.low {
            color: var(--warn);
        }

        [data-testid="stSidebarNav"] {
            display: none;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def hero(title: str, subtitle: str = ""):
    st.markdown(
        f"""
        <div class="hero">
            <h2>{title}</h2>
            <p>{subtitle}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def format_time(value) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value))
        except ValueError:
            return str(value)
    if dt.tzinfo:
        dt = dt.astimezone()
    return dt.strftime("%d %b %Y %H:%M")


def show_error(error: Exception, fallback: str = "Something went wrong. Please try again."):
    """Report a service failure; typed failures carry a user-facing message."""
    if isinstance(error, QuizDeskError) and error.message:
        st.error(error.message)
    else:
        logger.exception("Unexpected error")
        st.error(fallback)


def guard(role: Role):
    """Stop the page unless the signed-in user holds ``role``."""
    user = st.session_state.get("user")
    try:
        require_role(user, role)
    except UnauthorizedError as e:
        st.info(e.message)
        st.stop()
    return user


def render_sidebar():
    with st.sidebar:
        st.header("Account")
        render_auth()

        st.divider()

        render_nav()


def render_auth():
    if st.session_state.user is None:
        auth_options = ["Sign in", "Register"]
        auth_tab = st.selectbox("Account", auth_options, key="auth_tab")
        if auth_tab == auth_options[0]:
            role = st.selectbox(
                "Role", list(Role), format_func=lambda r: ROLE_LABELS[r], key="login_role"
            )
            email = st.text_input("Email", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")
            if st.button("Sign in", key="login_btn"):
                try:
                    user = authenticate_user(email, password, role)
                    sign_in(user)
                    st.switch_page(dashboard_for(user.role))
                except UnauthorizedError:
                    st.error("Invalid credentials")
                except QuizDeskError as e:
                    show_error(e)
        else:
            reg_name = st.text_input("Full name", key="reg_name")
            reg_email = st.text_input("Email", key="reg_email")
            reg_password = st.text_input("Password", type="password", key="reg_password")
            reg_role = st.selectbox(
                "Role",
                [Role.STUDENT, Role.TEACHER],
                format_func=lambda r: ROLE_LABELS[r],
                key="reg_role",
            )
            reg_roll = None
            if reg_role == Role.STUDENT:
                reg_roll = st.text_input("Roll number", key="reg_roll") or None
            if st.button("Register", key="reg_btn"):
                try:
                    create_user(reg_name, reg_email, reg_password, role=reg_role, roll=reg_roll)
                    st.success("Registration complete. You can sign in now.")
                except QuizDeskError as e:
                    show_error(e)
    else:
        user = st.session_state.user
        st.markdown(f"**Signed in:** {user.get('name') or user.get('email')}")
        st.caption(ROLE_LABELS[Role(user["role"])])
        if st.button("Sign out", key="logout_btn"):
            sign_out()
            st.switch_page("app.py")


def render_nav():
    user = st.session_state.get("user")

    st.header("Menu")
    st.page_link("app.py", label="Home", icon="🏠")
    if user is None:
        return
    role = Role(user["role"])
    st.page_link(dashboard_for(role), label=f"{ROLE_LABELS[role]} dashboard", icon="📋")
    if role in (Role.TEACHER, Role.STUDENT):
        st.page_link("pages/5_Reports.py", label="Reports", icon="📊")
    st.page_link("pages/4_Profile.py", label="Profile", icon="👤")
