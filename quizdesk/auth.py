import logging
import secrets
import string

from passlib.context import CryptContext
from sqlmodel import select

from quizdesk.config import PASSWORD_MIN_LENGTH
from quizdesk.db import session_scope
from quizdesk.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from quizdesk.models import Role, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# every role lands on exactly one dashboard page
DASHBOARD_PAGES = {
    Role.TEACHER: "pages/1_Teacher.py",
    Role.STUDENT: "pages/2_Student.py",
    Role.ADMIN: "pages/3_Admin.py",
}
_undispatched = set(Role) - set(DASHBOARD_PAGES)
if _undispatched:
    raise RuntimeError(f"No dashboard for roles: {sorted(r.value for r in _undispatched)}")


def dashboard_for(role: Role | str) -> str:
    return DASHBOARD_PAGES[Role(role)]


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _generate_password(length: int = 8) -> str:
    return ''.join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(length))


def create_user(name: str, email: str, password: str, role: Role | str = Role.STUDENT,
                roll: str | None = None, user_id: str | None = None) -> User:
    role = Role(role)
    email = (email or "").strip().lower()
    if not email or not password or not (name or "").strip():
        raise ValidationError("Name, email and password are required")
    with session_scope() as session:
        existing = session.exec(select(User).where(User.email == email)).first()
        if existing:
            raise ConflictError("User with this email already exists")
        user = User(name=name.strip(), email=email, password_hash=hash_password(password),
                    role=role.value, roll=roll)
        if user_id:
            user.id = user_id
        session.add(user)
        session.commit()
        session.refresh(user)
        logger.info(f"Created {role.value} account {user.id}")
        return user


def authenticate_user(email: str, password: str, role: Role | str) -> User:
    """Return the user matching email, password and role, else raise UnauthorizedError."""
    role = Role(role)
    email = (email or "").strip().lower()
    with session_scope() as session:
        q = select(User).where(User.email == email, User.role == role.value)
        user = session.exec(q).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Failed {role.value} login for {email}")
        raise UnauthorizedError("Invalid credentials")
    return user


def get_user_by_id(user_id: str) -> User:
    with session_scope() as session:
        user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def require_role(user: dict | User | None, role: Role | str) -> Role:
    """Guard a dashboard: the signed-in user must hold ``role``."""
    if user is None:
        raise UnauthorizedError("Please sign in first")
    actual = user.get("role") if isinstance(user, dict) else user.role
    if Role(actual) != Role(role):
        raise UnauthorizedError("Not authorized")
    return Role(actual)


def change_password(user_id: str, current_password: str, new_password: str) -> None:
    if len(new_password or "") < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"New password must be at least {PASSWORD_MIN_LENGTH} characters long.")
    with session_scope() as session:
        user = session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if not verify_password(current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        session.add(user)
        session.commit()
    logger.info(f"Password changed for {user_id}")


def reset_password(user_id: str) -> str:
    """Store a fresh random password and return it in plain text, once."""
    new_password = _generate_password()
    with session_scope() as session:
        user = session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        user.password_hash = hash_password(new_password)
        session.add(user)
        session.commit()
    logger.info(f"Password reset for {user_id}")
    return new_password
