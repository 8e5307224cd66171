import streamlit as st

from quizdesk.logging_config import setup_logging
from quizdesk.db import init_db


def init_app():
    setup_logging()
    init_db()

    if "user" not in st.session_state:
        st.session_state.user = None

    # the quiz attempt in progress, owned by this browser session only
    if "attempt" not in st.session_state:
        st.session_state.attempt = None

    if "last_attempt_result" not in st.session_state:
        st.session_state.last_attempt_result = None

    if "revealed_password" not in st.session_state:
        st.session_state.revealed_password = None


def sign_in(user):
    st.session_state.user = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "roll": user.roll,
    }


def sign_out():
    attempt = st.session_state.get("attempt")
    if attempt is not None and attempt.countdown is not None:
        attempt.countdown.cancel()
    st.session_state.user = None
    st.session_state.attempt = None
    st.session_state.last_attempt_result = None
    st.session_state.revealed_password = None
