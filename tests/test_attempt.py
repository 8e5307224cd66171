import asyncio
import random
import threading
import time
from datetime import timedelta

import pytest
from sqlalchemy.exc import DatabaseError

from conftest import fib, mc
from quizdesk.attempt import (
    AttemptState,
    Countdown,
    QuizAttempt,
    available_quizzes,
    begin_attempt,
    compute_score,
    grade_answers,
    open_attempt,
    submit_attempt,
)
from quizdesk.errors import ConflictError, NotFoundError, StoreUnavailableError, ValidationError
from quizdesk.models import Module, Question, Quiz
from quizdesk.mutator import add_module, append_quiz, toggle_quiz_active
from quizdesk.scores import get_scores_for_subject


def make_quiz(n=5, active=True, time_limit=5):
    questions = [Question.model_validate(mc(f'Q{i}', correct=i % 4)) for i in range(n)]
    return Quiz(questions=questions, is_active=active, time_limit=time_limit)


def all_correct(quiz):
    return {q.id: q.correct for q in quiz.questions}


def published_quiz(subject):
    module = add_module(subject.id, 'Module 1')
    questions = [mc(f'Q{i}', correct=i % 4) for i in range(5)]
    quiz = append_quiz(subject.id, module.id, questions)
    toggle_quiz_active(subject.id, module.id, quiz.id)
    return module, quiz


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)
        return len(self.calls)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def test_all_correct_scores_ten():
    quiz = make_quiz()
    assert compute_score(quiz, all_correct(quiz)) == 10


def test_two_correct_three_blank_scores_four():
    quiz = make_quiz()
    answers = {q.id: q.correct for q in quiz.questions[:2]}
    assert compute_score(quiz, answers) == 4


def test_wrong_and_malformed_answers_score_zero():
    quiz = make_quiz(n=3)
    q0, q1, q2 = quiz.questions
    answers = {q0.id: (q0.correct + 1) % 4, q1.id: 'not a number', q2.id: True}
    assert compute_score(quiz, answers) == 0


def test_string_index_answers_are_accepted():
    quiz = make_quiz(n=1)
    q = quiz.questions[0]
    assert compute_score(quiz, {q.id: str(q.correct)}) == 2


def test_fill_in_blank_is_never_awarded_points():
    quiz = Quiz(questions=[Question.model_validate(fib('Capital?', 'Paris'))], is_active=True)
    qid = quiz.questions[0].id
    assert compute_score(quiz, {qid: 'Paris'}) == 0
    assert compute_score(quiz, {qid: 'paris!'}) == 0


def test_scoring_is_pure():
    quiz = make_quiz()
    answers = all_correct(quiz)
    snapshot = dict(answers)
    assert compute_score(quiz, answers) == compute_score(quiz, answers)
    assert answers == snapshot


def test_grade_answers_follows_original_question_order():
    quiz = make_quiz(n=3)
    per_q = grade_answers(quiz, {quiz.questions[1].id: quiz.questions[1].correct})
    assert [pq['question_id'] for pq in per_q] == [q.id for q in quiz.questions]
    assert [pq['points'] for pq in per_q] == [0, 2, 0]


# ---------------------------------------------------------------------------
# Countdown
# ---------------------------------------------------------------------------

def test_countdown_fires_expiry_once():
    fired = []
    countdown = Countdown(2, on_expire=lambda: fired.append(1))
    assert countdown.display() == '00:02'
    for _ in range(4):
        countdown.tick()
    assert fired == [1]
    assert countdown.remaining == 0
    assert countdown.expired and not countdown.running


def test_cancelled_countdown_never_fires():
    fired = []
    countdown = Countdown(1, on_expire=lambda: fired.append(1))
    countdown.cancel()
    countdown.tick()
    assert fired == []
    assert countdown.remaining == 1


def test_countdown_reports_each_tick():
    seen = []
    countdown = Countdown(3, on_expire=lambda: None, on_tick=seen.append)
    for _ in range(3):
        countdown.tick()
    assert seen == [2, 1, 0]


def test_countdown_run_loop_expires():
    fired = []
    countdown = Countdown(3, on_expire=lambda: fired.append(1))
    asyncio.run(countdown.run(interval=0))
    assert fired == [1]


def test_countdown_display_formats_minutes():
    assert Countdown(300, on_expire=lambda: None).display() == '05:00'
    assert Countdown(61, on_expire=lambda: None).display() == '01:01'


# ---------------------------------------------------------------------------
# Attempt lifecycle
# ---------------------------------------------------------------------------

def test_begin_shuffles_into_a_permutation():
    quiz = make_quiz(n=5)
    original = [q.id for q in quiz.questions]
    orders = set()
    for seed in range(20):
        attempt = begin_attempt(quiz, 'user_1', 'subj_1', rng=random.Random(seed), submitter=Recorder())
        ids = [q.id for q in attempt.questions]
        assert sorted(ids) == sorted(original)
        assert len(ids) == len(original)
        orders.add(tuple(ids))
    assert len(orders) > 1
    # the stored quiz keeps its own order
    assert [q.id for q in quiz.questions] == original


def test_begin_sets_deadline_from_time_limit():
    quiz = make_quiz(time_limit=3)
    attempt = begin_attempt(quiz, 'user_1', 'subj_1', submitter=Recorder())
    assert attempt.state == AttemptState.IN_PROGRESS
    assert attempt.deadline - attempt.started_at == timedelta(minutes=3)
    assert attempt.countdown.remaining == 180


def test_inactive_quiz_cannot_be_started():
    with pytest.raises(ConflictError):
        begin_attempt(make_quiz(active=False), 'user_1', 'subj_1', submitter=Recorder())


def test_attempt_cannot_begin_twice():
    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=Recorder())
    with pytest.raises(ConflictError):
        attempt.begin()


def test_submit_before_begin_is_rejected():
    attempt = QuizAttempt(make_quiz(), 'user_1', 'subj_1', submitter=Recorder())
    with pytest.raises(ConflictError):
        attempt.submit()


def test_answer_for_unknown_question_is_rejected():
    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=Recorder())
    with pytest.raises(NotFoundError):
        attempt.answer('q_missing', 0)


def test_manual_submit_then_timeout_writes_once():
    recorder = Recorder()
    quiz = make_quiz()
    attempt = begin_attempt(quiz, 'user_1', 'subj_1', submitter=recorder)
    for qid, value in all_correct(quiz).items():
        attempt.answer(qid, value)

    attempt.submit(reason='manual')
    attempt.countdown.sync(attempt.deadline, now=attempt.deadline)
    assert attempt.submit(reason='manual') is None

    assert recorder.calls == [('user_1', quiz, 'subj_1', 10)]
    assert attempt.submitted_by == 'manual'


def test_timeout_then_manual_submit_writes_once(subject, student):
    _, quiz = published_quiz(subject)
    attempt = open_attempt(subject.id, quiz.id, student.id)

    attempt.countdown.sync(attempt.deadline, now=attempt.deadline)
    assert attempt.state == AttemptState.SUBMITTED
    assert attempt.submitted_by == 'timeout'
    assert attempt.submit(reason='manual') is None

    scores = get_scores_for_subject(subject.id)
    assert len(scores) == 1
    assert scores[0]['score'] == 0
    assert scores[0]['student_name'] == 'Student S'


def test_submit_persists_score(subject, student):
    _, quiz = published_quiz(subject)
    attempt = open_attempt(subject.id, quiz.id, student.id)
    answers = all_correct(quiz)

    row = attempt.submit(answers)

    assert row.score == 10
    assert attempt.score == 10
    assert attempt.countdown.cancelled
    assert [s['score'] for s in get_scores_for_subject(subject.id)] == [10]


def test_quiz_closed_mid_attempt_is_rejected(subject, student):
    module, quiz = published_quiz(subject)
    attempt = open_attempt(subject.id, quiz.id, student.id)
    toggle_quiz_active(subject.id, module.id, quiz.id)

    with pytest.raises(ConflictError):
        attempt.submit()
    assert isinstance(attempt.error, ConflictError)
    # not retried
    assert attempt.submit() is None
    assert get_scores_for_subject(subject.id) == []


def test_store_failure_is_kept_on_the_attempt():
    def failing(*args):
        raise StoreUnavailableError('down')

    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=failing)
    with pytest.raises(StoreUnavailableError):
        attempt.submit()
    assert attempt.state == AttemptState.SUBMITTED
    assert attempt.error.message == 'down'


def test_timeout_store_failure_does_not_raise():
    def failing(*args):
        raise StoreUnavailableError('down')

    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=failing)
    attempt.countdown.sync(attempt.deadline, now=attempt.deadline + timedelta(seconds=5))
    assert attempt.submitted_by == 'timeout'
    assert isinstance(attempt.error, StoreUnavailableError)


def test_database_error_during_timeout_is_reported_not_raised():
    def failing(*args):
        raise DatabaseError('INSERT INTO score', {}, Exception('disk I/O error'))

    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=failing)
    attempt.countdown.sync(attempt.deadline, now=attempt.deadline)
    assert attempt.state == AttemptState.SUBMITTED
    assert isinstance(attempt.error, StoreUnavailableError)
    assert attempt.error.status_code == 500


def test_database_error_on_manual_submit_raises_store_unavailable():
    def failing(*args):
        raise DatabaseError('INSERT INTO score', {}, Exception('disk I/O error'))

    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=failing)
    with pytest.raises(StoreUnavailableError):
        attempt.submit()
    assert attempt.error is not None
    assert attempt.submit() is None


def test_concurrent_manual_submit_and_timeout_write_once():
    calls = []

    def slow_submitter(*args):
        calls.append(args)
        time.sleep(0.05)
        return len(calls)

    attempt = begin_attempt(make_quiz(), 'user_1', 'subj_1', submitter=slow_submitter)
    start = threading.Barrier(2)

    def manual():
        start.wait()
        attempt.submit(reason='manual')

    def timeout():
        start.wait()
        attempt.countdown.sync(attempt.deadline, now=attempt.deadline)

    threads = [threading.Thread(target=manual), threading.Thread(target=timeout)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert len(calls) == 1
    assert attempt.state == AttemptState.SUBMITTED
    assert attempt.submitted_by in ('manual', 'timeout')


def test_submit_attempt_rejects_score_above_maximum(subject, student):
    _, quiz = published_quiz(subject)
    with pytest.raises(ValidationError):
        submit_attempt(student.id, quiz, subject.id, 12)


def test_available_quizzes_lists_active_current_quizzes_only():
    active = make_quiz()
    old_active = make_quiz()
    modules = [
        Module(name='Open', quizzes=[active]),
        Module(name='Superseded', quizzes=[old_active, make_quiz(active=False)]),
        Module(name='Empty'),
    ]
    assert [(m.name, q.id) for m, q in available_quizzes(modules)] == [('Open', active.id)]
