import streamlit as st

from quizdesk.app_state import init_app
from quizdesk.ui import apply_global_styles, format_time, guard, hero, render_sidebar, show_error
from quizdesk.analytics import score_history
from quizdesk.attempt import AttemptState, available_quizzes, open_attempt
from quizdesk.errors import QuizDeskError
from quizdesk.models import QuestionType, Role
from quizdesk.scores import get_scores_for_student
from quizdesk.subjects import get_student_subjects, join_subject, leave_subject

st.set_page_config(page_title="Student Dashboard", page_icon="🎒", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

user = guard(Role.STUDENT)


def answer_key(attempt, question):
    return f"ans_{attempt.quiz_id}_{question.id}"


def collect_answers(attempt):
    if attempt.state != AttemptState.IN_PROGRESS:
        return
    for q in attempt.questions:
        value = st.session_state.get(answer_key(attempt, q))
        if value is not None and value != "":
            attempt.answer(q.id, value)


def finish(attempt):
    st.session_state.last_attempt_result = {
        "score": attempt.score,
        "max_score": attempt.max_score,
        "per_question": attempt.per_question,
        "submitted_by": attempt.submitted_by,
        "error": attempt.error.message if attempt.error else None,
    }
    # the attempt is discarded whether or not the score was stored
    st.session_state.attempt = None


@st.fragment(run_every=1)
def render_timer(attempt):
    collect_answers(attempt)
    if attempt.state == AttemptState.IN_PROGRESS:
        attempt.countdown.sync(attempt.deadline)
    if attempt.state == AttemptState.SUBMITTED:
        finish(attempt)
        st.rerun()
    low = " low" if attempt.countdown.remaining < 60 else ""
    st.markdown(
        f"<div class='quiz-timer{low}'>{attempt.countdown.display()}</div>",
        unsafe_allow_html=True,
    )


def render_attempt(attempt, module_name):
    col_title, col_timer = st.columns([3, 1])
    with col_title:
        st.subheader(f"Quiz: {module_name}")
    with col_timer:
        render_timer(attempt)

    for idx, q in enumerate(attempt.questions, start=1):
        st.markdown(f"**Q{idx}: {q.text}**")
        if q.type == QuestionType.MULTIPLE_CHOICE:
            st.radio(
                f"q_{q.id}",
                list(range(len(q.options or []))),
                format_func=lambda o, opts=q.options: opts[o],
                index=None,
                key=answer_key(attempt, q),
                label_visibility="collapsed",
            )
        else:
            st.text_input(f"q_{q.id}", key=answer_key(attempt, q), label_visibility="collapsed")

    if st.button("Submit quiz", type="primary", disabled=attempt.state != AttemptState.IN_PROGRESS):
        try:
            collect_answers(attempt)
            attempt.submit(reason="manual")
        except QuizDeskError as e:
            attempt.error = attempt.error or e
        finish(attempt)
        st.rerun()


attempt = st.session_state.attempt
if attempt is not None:
    render_attempt(attempt, st.session_state.get("attempt_module_name", ""))
    st.stop()

hero("Student Dashboard", f"Welcome, {user.get('name') or user.get('email')}.")

result = st.session_state.last_attempt_result
if result:
    if result["error"]:
        st.error(f"Error submitting your score: {result['error']}")
    else:
        if result["submitted_by"] == "timeout":
            st.info("Time's up! Your quiz was submitted automatically.")
        st.success(f"Quiz submitted! Your score: {result['score']} out of {result['max_score']}")
    if st.button("Dismiss"):
        st.session_state.last_attempt_result = None
        st.rerun()

st.subheader("Join a subject")
col_code, col_join = st.columns([3, 1])
with col_code:
    join_code = st.text_input("Subject code", key="join_code")
with col_join:
    st.write("")
    if st.button("Join", type="primary"):
        try:
            joined = join_subject(user["id"], join_code)
            st.success(f"Successfully joined {joined.name}!")
        except QuizDeskError as e:
            show_error(e)

st.markdown("---")
st.subheader("My subjects")
try:
    subjects = get_student_subjects(user["id"])
except QuizDeskError as e:
    show_error(e, "Could not load your subjects. Please reload the page.")
    st.stop()

if not subjects:
    st.info("You have not joined any subjects yet.")

for subject in subjects:
    with st.expander(f"{subject['name']} · {subject['teacher_name']}", expanded=True):
        open_quizzes = available_quizzes(subject["modules"])
        if not open_quizzes:
            st.caption("No active quizzes right now.")
        for module, quiz in open_quizzes:
            col_info, col_start = st.columns([3, 1])
            with col_info:
                st.write(f"**{module.name}** · {len(quiz.questions)} questions · {quiz.time_limit} min")
            with col_start:
                if st.button("Start quiz", key=f"start_{subject['id']}_{quiz.id}"):
                    try:
                        st.session_state.attempt = open_attempt(subject["id"], quiz.id, user["id"])
                        st.session_state.attempt_module_name = module.name
                        st.session_state.last_attempt_result = None
                        st.rerun()
                    except QuizDeskError as e:
                        show_error(e)
        if st.button("Leave subject", key=f"leave_{subject['id']}"):
            try:
                leave_subject(user["id"], subject["id"])
                st.rerun()
            except QuizDeskError as e:
                show_error(e)

st.markdown("---")
st.subheader("My scores")
try:
    history = score_history(get_scores_for_student(user["id"]))
except QuizDeskError as e:
    show_error(e, "Could not load score history.")
    history = []

if history:
    st.dataframe(
        [
            {
                "Subject": h["subject_name"],
                "Module": h["module_name"],
                "Score": f"{h['score']} / {h['max_score']}",
                "Date": format_time(h["submitted_at"]),
            }
            for h in history
        ],
        use_container_width=True,
        hide_index=True,
    )
else:
    st.info("You haven't taken any quizzes yet.")
