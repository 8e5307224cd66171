"""Structural edits to the modules/quizzes embedded in a subject record.

Every operation reads the subject's whole ``modules`` document, applies one
edit in memory and writes the whole document back. The write is guarded by
the subject's ``version`` column: if another request wrote the subject in
between, the write matches no row, the document is re-read and the edit is
re-applied (up to ``MUTATION_RETRIES`` times) before giving up with a
ConflictError. Edits are never merged field by field.
"""
import logging
from typing import Any, Callable, Iterable, List, Tuple, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update

from quizdesk.config import DEFAULT_TIME_LIMIT, MUTATION_RETRIES, OPTIONS_PER_QUESTION
from quizdesk.db import session_scope
from quizdesk.errors import ConflictError, NotFoundError, ValidationError
from quizdesk.models import Module, Question, QuestionType, Quiz, Subject, dump_modules

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_module(modules: List[Module], module_id: str) -> Module:
    for module in modules:
        if module.id == module_id:
            return module
    raise NotFoundError("Module not found")


def find_quiz(module: Module, quiz_id: str) -> Quiz:
    for quiz in module.quizzes:
        if quiz.id == quiz_id:
            return quiz
    raise NotFoundError("Quiz not found")


def locate_quiz(modules: List[Module], quiz_id: str) -> Tuple[Module, Quiz]:
    """Find the module holding ``quiz_id`` anywhere in the subject."""
    for module in modules:
        for quiz in module.quizzes:
            if quiz.id == quiz_id:
                return module, quiz
    raise NotFoundError("Quiz not found")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_question(q: Question, position: int):
    label = f"Question {position}"
    if not (q.text or "").strip():
        raise ValidationError(f"{label}: text is required.")
    if q.type == QuestionType.MULTIPLE_CHOICE:
        options = q.options or []
        if len(options) != OPTIONS_PER_QUESTION or any(not (o or "").strip() for o in options):
            raise ValidationError(f"{label}: exactly {OPTIONS_PER_QUESTION} non-empty options are required.")
        if isinstance(q.correct, bool) or q.correct is None or not 0 <= q.correct < OPTIONS_PER_QUESTION:
            raise ValidationError(f"{label}: choose the correct option.")
    else:
        raise ValidationError(f"{label}: only multiple-choice questions can be graded.")


def validate_questions(questions: Iterable[Any]) -> List[Question]:
    """Coerce dicts into Question documents and enforce the question-set rules."""
    try:
        parsed = [q if isinstance(q, Question) else Question.model_validate(q) for q in questions or []]
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed question set: {e.errors()[0].get('msg')}") from e
    if not parsed:
        raise ValidationError("A quiz needs at least one question.")
    for position, q in enumerate(parsed, start=1):
        _check_question(q, position)
    if len({q.id for q in parsed}) != len(parsed):
        raise ValidationError("Question ids must be unique within a quiz.")
    return parsed


def build_quiz(questions: Iterable[Any], time_limit: int = DEFAULT_TIME_LIMIT) -> Quiz:
    if isinstance(time_limit, bool) or not isinstance(time_limit, int) or time_limit < 1:
        raise ValidationError("Time limit must be a positive number of minutes.")
    # new quizzes are never visible to students until toggled on
    return Quiz(questions=validate_questions(questions), time_limit=time_limit, is_active=False)


# ---------------------------------------------------------------------------
# Read-modify-write
# ---------------------------------------------------------------------------

def apply_mutation(subject_id: str, edit: Callable[[List[Module]], T], action: str,
                   retries: int | None = None) -> T:
    """Run ``edit`` on the subject's module list and persist the whole list."""
    retries = MUTATION_RETRIES if retries is None else retries
    for attempt in range(retries + 1):
        with session_scope() as session:
            subject = session.get(Subject, subject_id)
            if not subject:
                raise NotFoundError("Subject not found")
            base_version = subject.version
            modules = subject.get_modules()
            result = edit(modules)
            res = session.exec(
                update(Subject)
                .where(Subject.id == subject_id, Subject.version == base_version)
                .values(modules=dump_modules(modules), version=base_version + 1)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount == 1:
                session.commit()
                logger.info(f"{action} on subject {subject_id} (version {base_version + 1})")
                return result
            session.rollback()
        logger.warning(f"Stale write for {action} on subject {subject_id} (attempt {attempt + 1})")
    raise ConflictError("This subject was changed by someone else. Please reload and try again.")


def add_module(subject_id: str, name: str) -> Module:
    if not (name or "").strip():
        raise ValidationError("Module name cannot be empty")
    module = Module(name=name.strip())

    def edit(modules):
        modules.append(module)
        return module

    return apply_mutation(subject_id, edit, "add_module")


def rename_module(subject_id: str, module_id: str, new_name: str) -> Module:
    if not (new_name or "").strip():
        raise ValidationError("Module name cannot be empty")

    def edit(modules):
        module = find_module(modules, module_id)
        module.name = new_name.strip()
        return module

    return apply_mutation(subject_id, edit, "rename_module")


def delete_module(subject_id: str, module_id: str) -> None:
    def edit(modules):
        modules.remove(find_module(modules, module_id))

    apply_mutation(subject_id, edit, "delete_module")


def append_quiz(subject_id: str, module_id: str, questions: Iterable[Any],
                time_limit: int = DEFAULT_TIME_LIMIT) -> Quiz:
    quiz = build_quiz(questions, time_limit)

    def edit(modules):
        find_module(modules, module_id).quizzes.append(quiz)
        return quiz

    return apply_mutation(subject_id, edit, "append_quiz")


def toggle_quiz_active(subject_id: str, module_id: str, quiz_id: str) -> bool:
    """Flip ``is_active`` and return the new value. Not safe to retry blindly."""
    def edit(modules):
        quiz = find_quiz(find_module(modules, module_id), quiz_id)
        quiz.is_active = not quiz.is_active
        return quiz.is_active

    return apply_mutation(subject_id, edit, "toggle_quiz_active")
