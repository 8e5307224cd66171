import json
import logging
import random
import string
from typing import Any, Dict, List

from sqlalchemy import update
from sqlmodel import col, select

from quizdesk.config import SUBJECT_CODE_LENGTH
from quizdesk.db import session_scope
from quizdesk.errors import ConflictError, NotFoundError, ValidationError
from quizdesk.models import Role, Subject, User

logger = logging.getLogger(__name__)


def _generate_code(length: int = SUBJECT_CODE_LENGTH) -> str:
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


def _subject_row(subject: Subject, teacher_name: str | None) -> Dict[str, Any]:
    return {
        'id': subject.id,
        'name': subject.name,
        'code': subject.code,
        'teacher_id': subject.teacher_id,
        'teacher_name': teacher_name or 'Unknown',
        'modules': subject.get_modules(),
    }


def _clean_code(code: str) -> str:
    code = (code or "").strip().upper()
    if not code.isalnum():
        raise ValidationError("Subject code must be letters and digits only")
    return code


def _code_taken(session, code: str, exclude_id: str | None = None) -> bool:
    q = select(Subject).where(Subject.code == code)
    if exclude_id:
        q = q.where(Subject.id != exclude_id)
    return session.exec(q).first() is not None


def create_subject(name: str, teacher_id: str, code: str | None = None) -> Subject:
    if not (name or "").strip():
        raise ValidationError("Subject name cannot be empty")
    with session_scope() as session:
        teacher = session.get(User, teacher_id)
        if not teacher or teacher.role != Role.TEACHER.value:
            raise NotFoundError("Teacher not found")
        if code is not None:
            code = _clean_code(code)
            if _code_taken(session, code):
                raise ConflictError("This subject code is already in use.")
        else:
            code = _generate_code()
            # ensure unique code
            while _code_taken(session, code):
                code = _generate_code()
        subject = Subject(name=name.strip(), code=code, teacher_id=teacher_id)
        session.add(subject)
        session.commit()
        session.refresh(subject)
    logger.info(f"Subject {subject.id} created by {teacher_id} with code {subject.code}")
    return subject


def get_subject(subject_id: str) -> Subject:
    with session_scope() as session:
        subject = session.get(Subject, subject_id)
    if not subject:
        raise NotFoundError("Subject not found")
    return subject


def list_subjects_for_teacher(teacher_id: str) -> List[Subject]:
    with session_scope() as session:
        q = select(Subject).where(Subject.teacher_id == teacher_id).order_by(Subject.created_at)
        return list(session.exec(q))


def list_all_subjects() -> List[Dict[str, Any]]:
    """Every subject with its teacher's display name."""
    with session_scope() as session:
        q = select(Subject, User.name).join(User, User.id == Subject.teacher_id, isouter=True)
        return [_subject_row(s, teacher_name) for s, teacher_name in session.exec(q)]


def rename_subject(subject_id: str, name: str, code: str | None = None) -> None:
    """Change the subject's name and, when ``code`` is given, its join code."""
    if not (name or "").strip():
        raise ValidationError("Subject name cannot be empty")
    values = {'name': name.strip(), 'version': Subject.version + 1}
    with session_scope() as session:
        if code is not None:
            values['code'] = _clean_code(code)
            if _code_taken(session, values['code'], exclude_id=subject_id):
                raise ConflictError("This subject code is already in use.")
        res = session.exec(
            update(Subject)
            .where(Subject.id == subject_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            raise NotFoundError("Subject not found")
        session.commit()
    logger.info(f"Subject {subject_id} renamed")


def delete_subject(subject_id: str) -> None:
    # scores and student enrolments keep their (now dangling) references
    with session_scope() as session:
        subject = session.get(Subject, subject_id)
        if not subject:
            raise NotFoundError("Subject not found")
        session.delete(subject)
        session.commit()
    logger.info(f"Subject {subject_id} deleted")


def join_subject(student_id: str, code: str) -> Subject:
    code = (code or "").strip().upper()
    with session_scope() as session:
        subject = session.exec(select(Subject).where(Subject.code == code)).first()
        if not subject:
            raise NotFoundError("Invalid subject code.")
        student = session.get(User, student_id)
        if not student:
            raise NotFoundError("Student not found.")
        joined = student.get_joined_subjects()
        if subject.id in joined:
            raise ConflictError("You have already joined this subject.")
        joined.append(subject.id)
        student.joined_subjects = json.dumps(joined)
        session.add(student)
        session.commit()
    logger.info(f"Student {student_id} joined subject {subject.id}")
    return subject


def leave_subject(student_id: str, subject_id: str) -> None:
    with session_scope() as session:
        student = session.get(User, student_id)
        if not student:
            raise NotFoundError("Student not found.")
        joined = student.get_joined_subjects()
        if subject_id not in joined:
            raise NotFoundError("You are not enrolled in this subject.")
        joined.remove(subject_id)
        student.joined_subjects = json.dumps(joined)
        session.add(student)
        session.commit()
    logger.info(f"Student {student_id} left subject {subject_id}")


def get_student_subjects(student_id: str) -> List[Dict[str, Any]]:
    """Subjects the student joined, in joining order, with teacher names and modules."""
    with session_scope() as session:
        student = session.get(User, student_id)
        if not student:
            raise NotFoundError("Student not found.")
        subject_ids = student.get_joined_subjects()
        if not subject_ids:
            return []
        q = (
            select(Subject, User.name)
            .join(User, User.id == Subject.teacher_id, isouter=True)
            .where(col(Subject.id).in_(subject_ids))
        )
        rows = {s.id: _subject_row(s, teacher_name) for s, teacher_name in session.exec(q)}
    # subjects deleted after joining are skipped
    return [rows[sid] for sid in subject_ids if sid in rows]
