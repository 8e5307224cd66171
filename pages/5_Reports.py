import altair as alt
import pandas as pd
import streamlit as st

from quizdesk.app_state import init_app
from quizdesk.ui import apply_global_styles, format_time, hero, render_sidebar, show_error
from quizdesk.analytics import histogram_frame, score_history, scores_frame, student_stats, subject_report
from quizdesk.errors import QuizDeskError
from quizdesk.models import Role
from quizdesk.scores import get_scores_for_student, get_scores_for_subject
from quizdesk.subjects import list_subjects_for_teacher

st.set_page_config(page_title="Reports", page_icon="📊", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

user = st.session_state.user
if user is None:
    st.info("Please sign in first")
    st.stop()

role = Role(user["role"])
if role not in (Role.TEACHER, Role.STUDENT):
    st.info("Reports are available to teachers and students.")
    st.stop()


def render_teacher_reports():
    hero("Reports", "Attempts, averages and score distributions per quiz.")
    subjects = list_subjects_for_teacher(user["id"])
    if not subjects:
        st.info("You have not created any subjects yet.")
        return

    subject = st.selectbox("Subject", subjects, format_func=lambda s: f"{s.name} ({s.code})")
    modules = subject.get_modules()
    module_options = [None] + [m.id for m in modules]
    module_names = {m.id: m.name for m in modules}
    col_module, col_history = st.columns([3, 1])
    with col_module:
        module_id = st.selectbox(
            "Module",
            module_options,
            format_func=lambda m: "All modules" if m is None else module_names[m],
        )
    with col_history:
        st.write("")
        include_history = st.toggle("Include earlier quizzes", value=False)

    scores = get_scores_for_subject(subject.id)
    sections = subject_report(subject, scores, module_id=module_id, current_only=not include_history)
    if not sections:
        st.info("No modules or quizzes exist for this selection.")
        return

    for section in sections:
        summary = section["summary"]
        label = "current" if section["is_current"] else "earlier"
        status = "active" if section["is_active"] else "inactive"
        st.markdown(f"### {section['module_name']}")
        st.caption(f"Quiz created {format_time(section['created_at'])} · {label} · {status}")
        col1, col2, col3 = st.columns(3)
        col1.metric("Attempts", summary["attempt_count"])
        col2.metric("Average Score", summary["average_score"])
        col3.metric("Max Score", section["max_score"])
        if not section["scores"]:
            st.caption("No attempts yet.")
            continue
        chart = alt.Chart(histogram_frame(section["histogram"])).mark_bar(color="#4cc9f0").encode(
            x=alt.X("range:N", title="Score", sort=None),
            y=alt.Y("students:Q", title="# of Students", axis=alt.Axis(tickMinStep=1)),
            tooltip=["range", "students"],
        ).properties(height=220)
        st.altair_chart(chart, use_container_width=True)
        df = scores_frame(section["scores"])
        st.dataframe(df, use_container_width=True, hide_index=True)
        st.download_button(
            "Download CSV",
            df.to_csv(index=False).encode("utf-8"),
            file_name=f"{subject.code}_{section['quiz_id']}.csv",
            mime="text/csv",
            key=f"report_csv_{section['quiz_id']}",
        )
        st.divider()


def render_student_reports():
    hero("My Progress", "Every quiz you have submitted.")
    scores = get_scores_for_student(user["id"])
    stats = student_stats(scores)
    col1, col2, col3 = st.columns(3)
    col1.metric("Quizzes Taken", stats["quizzes_taken"])
    average = stats["average_score"]
    col2.metric("Average Score", average if average == "N/A" else f"{average}%")
    col3.metric("Best Subject", stats["best_subject"])

    history = score_history(scores)
    if not history:
        st.info("You haven't taken any quizzes yet.")
        return

    df = pd.DataFrame(history)
    df["percent"] = (df["score"] / df["max_score"] * 100).round(1)
    chart = alt.Chart(df).mark_line(point=True, color="#4cc9f0").encode(
        x=alt.X("submitted_at:T", title="Submitted"),
        y=alt.Y("percent:Q", title="Score %", scale=alt.Scale(domain=[0, 100])),
        tooltip=["subject_name", "module_name", "score", "max_score"],
    ).properties(height=260)
    st.altair_chart(chart, use_container_width=True)

    df["submitted_at"] = df["submitted_at"].map(format_time)
    st.dataframe(
        df[["subject_name", "module_name", "score", "max_score", "submitted_at"]],
        use_container_width=True,
        hide_index=True,
    )


try:
    if role == Role.TEACHER:
        render_teacher_reports()
    else:
        render_student_reports()
except QuizDeskError as e:
    show_error(e, "Could not load reports. Please reload the page.")
