import altair as alt
import streamlit as st

from quizdesk.app_state import init_app
from quizdesk.ui import apply_global_styles, format_time, guard, hero, render_sidebar, show_error
from quizdesk.analytics import histogram_frame, scores_frame, subject_report
from quizdesk.config import DEFAULT_TIME_LIMIT, OPTIONS_PER_QUESTION, QUESTIONS_PER_QUIZ
from quizdesk.errors import QuizDeskError
from quizdesk.models import QuestionType, Role
from quizdesk.mutator import add_module, append_quiz, delete_module, rename_module, toggle_quiz_active
from quizdesk.scores import get_scores_for_subject
from quizdesk.subjects import create_subject, delete_subject, list_subjects_for_teacher, rename_subject

st.set_page_config(page_title="Teacher Dashboard", page_icon="🏫", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

user = guard(Role.TEACHER)

hero("Teacher Dashboard", "Subjects, modules and quizzes you own.")


def render_quiz(quiz):
    for idx, q in enumerate(quiz.questions, start=1):
        st.markdown(f"**Q{idx}: {q.text}**")
        if q.type == QuestionType.MULTIPLE_CHOICE:
            for o_idx, opt in enumerate(q.options or []):
                mark = "✅" if o_idx == q.correct else "▫️"
                st.write(f"{mark} {opt}")
        else:
            st.write(f"Answer: `{q.answer}`")


def render_quiz_creator(subject, module):
    with st.form(key=f"quiz_form_{module.id}"):
        st.markdown(f"#### New quiz for {module.name}")
        time_limit = st.number_input(
            "Time limit (minutes)",
            min_value=1,
            value=DEFAULT_TIME_LIMIT,
            step=1,
            key=f"tl_{module.id}",
        )
        raw_questions = []
        for i in range(QUESTIONS_PER_QUIZ):
            st.markdown(f"**Question {i + 1}**")
            text = st.text_area("Question text", key=f"qtext_{module.id}_{i}")
            cols = st.columns(OPTIONS_PER_QUESTION)
            options = []
            for j, col in enumerate(cols):
                with col:
                    options.append(st.text_input(f"Option {j + 1}", key=f"qopt_{module.id}_{i}_{j}"))
            correct = st.radio(
                "Correct option",
                list(range(OPTIONS_PER_QUESTION)),
                format_func=lambda j: f"Option {j + 1}",
                index=None,
                horizontal=True,
                key=f"qcorrect_{module.id}_{i}",
            )
            raw_questions.append({
                "type": QuestionType.MULTIPLE_CHOICE,
                "text": text,
                "options": options,
                "correct": correct,
            })
            st.divider()

        if st.form_submit_button("Save quiz", type="primary"):
            try:
                append_quiz(subject.id, module.id, raw_questions, int(time_limit))
                st.session_state[f"creating_{module.id}"] = False
                st.success("Quiz created. It stays hidden from students until you activate it.")
                st.rerun()
            except QuizDeskError as e:
                show_error(e)


def render_modules(subject):
    new_module = st.text_input("New module name", key=f"new_mod_{subject.id}")
    if st.button("Add module", key=f"add_mod_{subject.id}"):
        try:
            add_module(subject.id, new_module)
            st.rerun()
        except QuizDeskError as e:
            show_error(e)

    modules = subject.get_modules()
    if not modules:
        st.info("No modules yet.")
        return

    for module in modules:
        st.markdown("---")
        col_name, col_rename, col_delete = st.columns([3, 1, 0.3])
        with col_name:
            name = st.text_input("Module", value=module.name, key=f"mod_name_{module.id}")
        with col_rename:
            st.write("")
            if st.button("Rename", key=f"mod_rename_{module.id}"):
                try:
                    rename_module(subject.id, module.id, name)
                    st.rerun()
                except QuizDeskError as e:
                    show_error(e)
        with col_delete:
            st.write("")
            if st.button("🗑", key=f"mod_del_{module.id}", help="Delete module"):
                try:
                    delete_module(subject.id, module.id)
                    st.rerun()
                except QuizDeskError as e:
                    show_error(e)

        quiz = module.current_quiz
        if quiz is None:
            st.caption("No quiz yet.")
        else:
            status = "Active" if quiz.is_active else "Inactive"
            st.write(
                f"Current quiz: {len(quiz.questions)} questions, {quiz.time_limit} min, "
                f"created {format_time(quiz.created_at)} ({status})"
            )
            if len(module.quizzes) > 1:
                st.caption(f"{len(module.quizzes) - 1} earlier quiz(zes) kept in history.")
            col_toggle, col_view = st.columns(2)
            with col_toggle:
                label = "Deactivate" if quiz.is_active else "Activate"
                if st.button(label, key=f"toggle_{quiz.id}"):
                    try:
                        toggle_quiz_active(subject.id, module.id, quiz.id)
                        st.rerun()
                    except QuizDeskError as e:
                        show_error(e)
            with col_view:
                with st.popover("View quiz"):
                    render_quiz(quiz)

        creating_key = f"creating_{module.id}"
        if st.button("Create new quiz", key=f"create_quiz_{module.id}"):
            st.session_state[creating_key] = True
        if st.session_state.get(creating_key):
            render_quiz_creator(subject, module)


def render_analytics(subject):
    try:
        scores = get_scores_for_subject(subject.id)
    except QuizDeskError as e:
        show_error(e)
        return
    sections = subject_report(subject, scores)
    if not sections:
        st.info("No modules or quizzes exist for this subject yet.")
        return

    for section in sections:
        summary = section["summary"]
        st.markdown(f"**{section['module_name']}**")
        st.caption(
            f"{summary['attempt_count']} attempt(s) • Average Score: {summary['average_score']}"
        )
        if not section["scores"]:
            continue
        chart = alt.Chart(histogram_frame(section["histogram"])).mark_bar(color="#4cc9f0").encode(
            x=alt.X("range:N", title="Score", sort=None),
            y=alt.Y("students:Q", title="# of Students", axis=alt.Axis(tickMinStep=1)),
            tooltip=["range", "students"],
        ).properties(height=200, title="Score Distribution")
        col_chart, col_top = st.columns([2, 1])
        with col_chart:
            st.altair_chart(chart, use_container_width=True)
        with col_top:
            st.markdown("Top scores")
            st.dataframe(section["leaderboard"], use_container_width=True, hide_index=True)
        df = scores_frame(section["scores"])
        st.dataframe(df, use_container_width=True, hide_index=True)
        st.download_button(
            "Download CSV",
            df.to_csv(index=False).encode("utf-8"),
            file_name=f"{subject.code}_{section['quiz_id']}.csv",
            mime="text/csv",
            key=f"csv_{section['quiz_id']}",
        )


st.subheader("Create subject")
col_a, col_b = st.columns([3, 1])
with col_a:
    subject_name = st.text_input("Subject name", key="new_subject_name")
with col_b:
    st.write("")
    if st.button("Create", type="primary"):
        try:
            created = create_subject(subject_name, user["id"])
            st.success(f"Subject created. Join code: {created.code}")
        except QuizDeskError as e:
            show_error(e)

st.markdown("---")
st.subheader("My subjects")
try:
    subjects = list_subjects_for_teacher(user["id"])
except QuizDeskError as e:
    show_error(e)
    st.stop()

if not subjects:
    st.info("You have not created any subjects yet.")

for subject in subjects:
    with st.expander(f"{subject.name} · code {subject.code}"):
        tab_modules, tab_analytics, tab_settings = st.tabs(["Modules", "Analytics", "Settings"])
        with tab_modules:
            render_modules(subject)
        with tab_analytics:
            render_analytics(subject)
        with tab_settings:
            new_name = st.text_input("Subject name", value=subject.name, key=f"subj_name_{subject.id}")
            new_code = st.text_input("Join code", value=subject.code, key=f"subj_code_{subject.id}")
            if st.button("Save", key=f"subj_save_{subject.id}"):
                try:
                    rename_subject(subject.id, new_name, new_code)
                    st.rerun()
                except QuizDeskError as e:
                    show_error(e)
            st.warning("Deleting a subject cannot be undone. Scores already recorded are kept.")
            if st.button("Delete subject", key=f"subj_del_{subject.id}"):
                try:
                    delete_subject(subject.id)
                    st.rerun()
                except QuizDeskError as e:
                    show_error(e)
