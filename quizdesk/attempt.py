"""Timed quiz attempts: shuffled questions, a countdown, scoring and a single submission."""
import asyncio
import logging
import math
import random
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from quizdesk.config import POINTS_PER_QUESTION
from quizdesk.errors import ConflictError, NotFoundError, QuizDeskError, StoreUnavailableError, ValidationError
from quizdesk.models import Module, Question, QuestionType, Quiz, Score, now_utc
from quizdesk.mutator import locate_quiz
from quizdesk.scores import append_score
from quizdesk.subjects import get_subject

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def _selected_index(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    return None


def is_correct(question: Question, value) -> bool:
    if question.type == QuestionType.MULTIPLE_CHOICE:
        selected = _selected_index(value)
        return selected is not None and selected == question.correct
    # fill-in-blank has no agreed grading rule yet and is never awarded points
    return False


def grade_answers(quiz: Quiz, answers: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Per-question results in the quiz's original question order."""
    answers = answers or {}
    per_q = []
    for q in quiz.questions:
        correct = is_correct(q, answers.get(q.id))
        per_q.append({
            'question_id': q.id,
            'correct': correct,
            'points': POINTS_PER_QUESTION if correct else 0,
        })
    return per_q


def compute_score(quiz: Quiz, answers: Mapping[str, Any]) -> int:
    """2 points per correctly answered question, 0 otherwise; no partial credit."""
    return sum(pq['points'] for pq in grade_answers(quiz, answers))


# ---------------------------------------------------------------------------
# Countdown
# ---------------------------------------------------------------------------

class Countdown:
    """A cancellable per-attempt countdown driven by one-second ticks.

    ``on_expire`` fires exactly once, when the remaining time first reaches
    zero; nothing fires after ``cancel()``.
    """

    def __init__(self, seconds: int, on_expire: Callable[[], Any],
                 on_tick: Optional[Callable[[int], Any]] = None):
        self.remaining = max(0, int(seconds))
        self.cancelled = False
        self.expired = False
        self._on_expire = on_expire
        self._on_tick = on_tick

    @property
    def running(self) -> bool:
        return not (self.cancelled or self.expired)

    def display(self) -> str:
        minutes, seconds = divmod(self.remaining, 60)
        return f"{minutes:02d}:{seconds:02d}"

    def tick(self):
        if not self.running:
            return
        self.remaining = max(0, self.remaining - 1)
        self._notify()

    def sync(self, deadline: datetime, now: Optional[datetime] = None):
        """Realign with the wall clock, for UIs that cannot tick every second."""
        if not self.running:
            return
        now = now or now_utc()
        self.remaining = max(0, math.ceil((deadline - now).total_seconds()))
        self._notify()

    def cancel(self):
        self.cancelled = True

    async def run(self, interval: float = 1.0):
        while self.running:
            await asyncio.sleep(interval)
            self.tick()

    def _notify(self):
        if self._on_tick:
            self._on_tick(self.remaining)
        if self.remaining <= 0 and self.running:
            self.expired = True
            self._on_expire()


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

def submit_attempt(student_id: str, quiz: Quiz, subject_id: str, score: int) -> Score:
    """Persist one score, after checking the quiz still exists and is still open."""
    subject = get_subject(subject_id)
    _, current = locate_quiz(subject.get_modules(), quiz.id)
    if not current.is_active:
        raise ConflictError("This quiz was closed before your answers were submitted.")
    if score > current.max_score:
        raise ValidationError("Score exceeds the maximum for this quiz.")
    return append_score(student_id, quiz.id, subject_id, score)


class QuizAttempt:
    """One student's timed attempt at one quiz.

    Owns its question order and its countdown. ``submit`` succeeds at most
    once whether it is called by the student or by the countdown expiring;
    if the store write fails the attempt is not retried.
    """

    def __init__(self, quiz: Quiz, student_id: str, subject_id: str,
                 submitter: Optional[Callable[[str, Quiz, str, int], Any]] = None,
                 rng: Optional[random.Random] = None):
        self.quiz = quiz
        self.quiz_id = quiz.id
        self.student_id = student_id
        self.subject_id = subject_id
        self.state = AttemptState.NOT_STARTED
        self.questions: List[Question] = []
        self.answers: Dict[str, Any] = {}
        self.started_at: Optional[datetime] = None
        self.deadline: Optional[datetime] = None
        self.countdown: Optional[Countdown] = None
        self.score: Optional[int] = None
        self.per_question: List[Dict[str, Any]] = []
        self.submitted_by: Optional[str] = None
        self.result = None
        self.error: Optional[QuizDeskError] = None
        self._submitter = submitter or submit_attempt
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    @property
    def max_score(self) -> int:
        return self.quiz.max_score

    def begin(self, now: Optional[datetime] = None) -> "QuizAttempt":
        if self.state != AttemptState.NOT_STARTED:
            raise ConflictError("This attempt has already started.")
        if not self.quiz.is_active:
            raise ConflictError("This quiz is not active.")
        if not self.quiz.questions:
            raise ValidationError("This quiz has no questions.")
        questions = list(self.quiz.questions)
        self._rng.shuffle(questions)
        self.questions = questions
        self.started_at = now or now_utc()
        self.deadline = self.started_at + timedelta(minutes=self.quiz.time_limit)
        self.countdown = Countdown(self.quiz.time_limit * 60, on_expire=self._on_timeout)
        self.state = AttemptState.IN_PROGRESS
        logger.info(f"Student {self.student_id} started quiz {self.quiz_id} (deadline {self.deadline.isoformat()})")
        return self

    def answer(self, question_id: str, value):
        if self.state != AttemptState.IN_PROGRESS:
            raise ConflictError("This attempt is not in progress.")
        if not any(q.id == question_id for q in self.quiz.questions):
            raise NotFoundError("Question not found")
        self.answers[question_id] = value

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        if self.deadline is None:
            return self.quiz.time_limit * 60
        now = now or now_utc()
        return max(0, math.ceil((self.deadline - now).total_seconds()))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.deadline is not None and self.remaining_seconds(now) <= 0

    def submit(self, answers: Optional[Mapping[str, Any]] = None, reason: str = "manual"):
        """Score and persist the attempt; later calls return None and write nothing."""
        with self._lock:
            if self.state == AttemptState.NOT_STARTED:
                raise ConflictError("This attempt has not started.")
            if self.state == AttemptState.SUBMITTED:
                logger.info(f"Ignoring {reason} submit for quiz {self.quiz_id}: already submitted")
                return None
            self.state = AttemptState.SUBMITTED
        if self.countdown:
            self.countdown.cancel()
        if answers:
            self.answers.update(answers)
        self.per_question = grade_answers(self.quiz, self.answers)
        self.score = sum(pq['points'] for pq in self.per_question)
        self.submitted_by = reason
        try:
            self.result = self._submitter(self.student_id, self.quiz, self.subject_id, self.score)
        except SQLAlchemyError as e:
            self.error = StoreUnavailableError("The data store is unavailable. Your answers were not saved.")
            logger.error(f"Submission of quiz {self.quiz_id} by {self.student_id} failed ({reason}): {e}")
            raise self.error from e
        except QuizDeskError as e:
            self.error = e
            logger.error(f"Submission of quiz {self.quiz_id} by {self.student_id} failed ({reason}): {e}")
            raise
        logger.info(f"Quiz {self.quiz_id} submitted by {self.student_id} ({reason}): {self.score}/{self.max_score}")
        return self.result

    def _on_timeout(self):
        logger.info(f"Time is up for quiz {self.quiz_id} ({self.student_id}), submitting automatically")
        try:
            self.submit(reason="timeout")
        except QuizDeskError as e:
            # the countdown has no caller to raise to; self.error carries it to the UI
            logger.warning(f"Automatic submission lost for quiz {self.quiz_id}: {e.message}")


def begin_attempt(quiz: Quiz, student_id: str, subject_id: str,
                  rng: Optional[random.Random] = None, now: Optional[datetime] = None,
                  submitter: Optional[Callable[[str, Quiz, str, int], Any]] = None) -> QuizAttempt:
    return QuizAttempt(quiz, student_id, subject_id, submitter=submitter, rng=rng).begin(now)


def available_quizzes(modules: List[Module]) -> List[Tuple[Module, Quiz]]:
    """The current quiz of every module, when it is open to students."""
    return [(m, m.current_quiz) for m in modules if m.current_quiz and m.current_quiz.is_active]


def open_attempt(subject_id: str, quiz_id: str, student_id: str) -> QuizAttempt:
    subject = get_subject(subject_id)
    _, quiz = locate_quiz(subject.get_modules(), quiz_id)
    return begin_attempt(quiz, student_id, subject_id)
