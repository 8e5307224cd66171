import json
import logging
from typing import Any, Dict, List

from sqlmodel import col, select

from quizdesk.db import session_scope
from quizdesk.errors import ValidationError
from quizdesk.models import Module, Score, Subject, User

logger = logging.getLogger(__name__)


def append_score(student_id: str, quiz_id: str, subject_id: str, score: int) -> Score:
    if not student_id or not quiz_id or not subject_id:
        raise ValidationError("studentId, quizId and subjectId are required")
    if isinstance(score, bool) or not isinstance(score, int) or score < 0:
        raise ValidationError("Score must be a non-negative integer")
    with session_scope() as session:
        row = Score(student_id=student_id, quiz_id=quiz_id, subject_id=subject_id, score=score)
        session.add(row)
        session.commit()
        session.refresh(row)
    logger.info(f"Score {score} saved for student {student_id} on quiz {quiz_id}")
    return row


def get_scores_for_subject(subject_id: str) -> List[Dict[str, Any]]:
    """All scores of a subject joined with student name and roll, newest first."""
    with session_scope() as session:
        q = (
            select(Score, User.name, User.roll)
            .join(User, User.id == Score.student_id, isouter=True)
            .where(Score.subject_id == subject_id)
            .order_by(col(Score.submitted_at).desc(), col(Score.id).desc())
        )
        results = []
        for sc, student_name, student_roll in session.exec(q):
            results.append({
                'id': sc.id,
                'score': sc.score,
                'submitted_at': sc.submitted_at,
                'quiz_id': sc.quiz_id,
                'subject_id': sc.subject_id,
                'student_id': sc.student_id,
                'student_name': student_name or 'Unknown',
                'student_roll': student_roll,
            })
        return results


def get_scores_for_student(student_id: str) -> List[Dict[str, Any]]:
    """A student's scores joined with subject name and modules, newest first."""
    with session_scope() as session:
        q = (
            select(Score, Subject.name, Subject.modules)
            .join(Subject, Subject.id == Score.subject_id, isouter=True)
            .where(Score.student_id == student_id)
            .order_by(col(Score.submitted_at).desc(), col(Score.id).desc())
        )
        results = []
        for sc, subject_name, modules in session.exec(q):
            results.append({
                'id': sc.id,
                'score': sc.score,
                'submitted_at': sc.submitted_at,
                'quiz_id': sc.quiz_id,
                'subject_id': sc.subject_id,
                'student_id': sc.student_id,
                'subject_name': subject_name or 'Unknown',
                'modules': [Module.model_validate(m) for m in json.loads(modules or "[]")],
            })
        return results
