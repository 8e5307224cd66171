import math

import streamlit as st

from quizdesk.app_state import init_app
from quizdesk.ui import ROLE_LABELS, apply_global_styles, guard, hero, render_sidebar, show_error
from quizdesk.auth import create_user, reset_password
from quizdesk.config import PAGE_SIZE
from quizdesk.errors import QuizDeskError
from quizdesk.models import Role
from quizdesk.users import delete_user, get_stats, list_users, update_user

st.set_page_config(page_title="Admin Dashboard", page_icon="\U0001f6e0", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

user = guard(Role.ADMIN)

hero("Admin Dashboard", "Accounts and system overview.")

try:
    stats = get_stats()
except QuizDeskError as e:
    show_error(e)
    st.stop()

col1, col2, col3 = st.columns(3)
col1.metric("Teachers", stats["teachers"])
col2.metric("Students", stats["students"])
col3.metric("Subjects", stats["subjects"])

revealed = st.session_state.revealed_password
if revealed:
    st.warning(
        f"New password for {revealed['email']}: `{revealed['password']}`. "
        "It is shown only once, share it with the user now."
    )
    if st.button("Hide password"):
        st.session_state.revealed_password = None
        st.rerun()

st.divider()

with st.expander("Add user"):
    with st.form("add_user_form", clear_on_submit=True):
        new_name = st.text_input("Full name")
        new_email = st.text_input("Email")
        new_password = st.text_input("Password", type="password")
        new_role = st.selectbox("Role", list(Role), format_func=lambda r: ROLE_LABELS[r])
        new_roll = st.text_input("Roll number (students only)")
        if st.form_submit_button("Create user", type="primary"):
            try:
                create_user(
                    new_name,
                    new_email,
                    new_password,
                    role=new_role,
                    roll=(new_roll or None) if new_role == Role.STUDENT else None,
                )
                st.success("User created.")
            except QuizDeskError as e:
                show_error(e)


def render_user_row(row):
    col_info, col_actions = st.columns([3, 2])
    with col_info:
        roll = f" · roll {row['roll']}" if row["roll"] else ""
        st.markdown(f"**{row['name']}** · {row['email']}{roll}")
    with col_actions:
        col_edit, col_reset, col_delete = st.columns(3)
        with col_edit:
            with st.popover("Edit"):
                with st.form(f"edit_{row['id']}"):
                    name = st.text_input("Full name", value=row["name"])
                    email = st.text_input("Email", value=row["email"])
                    role = st.selectbox(
                        "Role",
                        list(Role),
                        index=list(Role).index(Role(row["role"])),
                        format_func=lambda r: ROLE_LABELS[r],
                    )
                    roll = st.text_input("Roll number", value=row["roll"] or "")
                    if st.form_submit_button("Save"):
                        try:
                            update_user(row["id"], name, email, role, roll or None)
                            st.rerun()
                        except QuizDeskError as e:
                            show_error(e)
        with col_reset:
            if st.button("Reset password", key=f"reset_{row['id']}"):
                try:
                    password = reset_password(row["id"])
                    st.session_state.revealed_password = {"email": row["email"], "password": password}
                    st.rerun()
                except QuizDeskError as e:
                    show_error(e)
        with col_delete:
            disabled = row["id"] == user["id"]
            if st.button("Delete", key=f"delete_{row['id']}", disabled=disabled):
                try:
                    delete_user(row["id"])
                    st.rerun()
                except QuizDeskError as e:
                    show_error(e)


def render_user_tab(role):
    search = st.text_input("Search by name or email", key=f"search_{role.value}")
    page_key = f"page_{role.value}"
    page = st.session_state.get(page_key, 1)
    try:
        result = list_users(search=search, role=role, page=page, limit=PAGE_SIZE)
    except QuizDeskError as e:
        show_error(e)
        return

    pages = max(1, math.ceil(result["total"] / result["limit"]))
    if page > pages:
        st.session_state[page_key] = pages
        st.rerun()

    if not result["users"]:
        st.info("No users found.")
    for row in result["users"]:
        render_user_row(row)

    col_prev, col_status, col_next = st.columns([1, 2, 1])
    with col_prev:
        if st.button("Previous", key=f"prev_{role.value}", disabled=page <= 1):
            st.session_state[page_key] = page - 1
            st.rerun()
    with col_status:
        st.caption(f"Page {page} of {pages} · {result['total']} user(s)")
    with col_next:
        if st.button("Next", key=f"next_{role.value}", disabled=page >= pages):
            st.session_state[page_key] = page + 1
            st.rerun()


tab_teachers, tab_students, tab_admins = st.tabs(["Teachers", "Students", "Admins"])
with tab_teachers:
    render_user_tab(Role.TEACHER)
with tab_students:
    render_user_tab(Role.STUDENT)
with tab_admins:
    render_user_tab(Role.ADMIN)
