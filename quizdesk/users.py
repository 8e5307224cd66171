import logging
from typing import Any, Dict

from sqlalchemy import func, or_
from sqlmodel import col, select

from quizdesk.config import PAGE_SIZE
from quizdesk.db import session_scope
from quizdesk.errors import ConflictError, NotFoundError, ValidationError
from quizdesk.models import Role, Subject, User

logger = logging.getLogger(__name__)


def _public(user: User) -> Dict[str, Any]:
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'roll': user.roll,
    }


def list_users(search: str = "", role: Role | str | None = None, page: int = 1, limit: int = PAGE_SIZE):
    """Paginated user listing for the admin dashboard.

    ``search`` matches name or email (SQL LIKE). Returns
    ``{'users', 'total', 'page', 'limit'}``.
    """
    page = max(1, int(page or 1))
    limit = max(1, int(limit or PAGE_SIZE))
    term = f"%{search or ''}%"
    conditions = [or_(col(User.name).like(term), col(User.email).like(term))]
    if role is not None:
        conditions.append(User.role == Role(role).value)

    with session_scope() as session:
        total = session.exec(select(func.count()).select_from(User).where(*conditions)).one()
        q = (
            select(User)
            .where(*conditions)
            .order_by(User.name)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        users = [_public(u) for u in session.exec(q)]
    return {'users': users, 'total': total, 'page': page, 'limit': limit}


def update_user(user_id: str, name: str, email: str, role: Role | str, roll: str | None = None) -> User:
    email = (email or "").strip().lower()
    if not email or not (name or "").strip():
        raise ValidationError("Name and email are required")
    with session_scope() as session:
        user = session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        clash = session.exec(select(User).where(User.email == email, User.id != user_id)).first()
        if clash:
            raise ConflictError("User with this email already exists")
        user.name = name.strip()
        user.email = email
        user.role = Role(role).value
        user.roll = roll
        session.add(user)
        session.commit()
        session.refresh(user)
    logger.info(f"Updated user {user_id}")
    return user


def delete_user(user_id: str) -> None:
    # subjects and scores that reference the user are left in place
    with session_scope() as session:
        user = session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        session.delete(user)
        session.commit()
    logger.info(f"Deleted user {user_id}")


def get_stats() -> Dict[str, int]:
    with session_scope() as session:
        teachers = session.exec(
            select(func.count()).select_from(User).where(User.role == Role.TEACHER.value)
        ).one()
        students = session.exec(
            select(func.count()).select_from(User).where(User.role == Role.STUDENT.value)
        ).one()
        subjects = session.exec(select(func.count()).select_from(Subject)).one()
    return {'teachers': teachers, 'students': students, 'subjects': subjects}
