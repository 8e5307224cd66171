import pytest

from quizdesk.auth import (
    DASHBOARD_PAGES,
    authenticate_user,
    change_password,
    create_user,
    dashboard_for,
    get_user_by_id,
    require_role,
    reset_password,
)
from quizdesk.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from quizdesk.models import Role


def test_register_and_sign_in():
    user = create_user('Ada', ' Ada@Example.com ', 'secret1', role=Role.TEACHER)
    assert user.email == 'ada@example.com'
    assert user.password_hash != 'secret1'

    signed_in = authenticate_user('ADA@example.com', 'secret1', Role.TEACHER)
    assert signed_in.id == user.id
    assert get_user_by_id(user.id).name == 'Ada'


def test_duplicate_email_is_a_conflict():
    create_user('Ada', 'ada@example.com', 'secret1')
    with pytest.raises(ConflictError):
        create_user('Other', 'ADA@example.com', 'secret2')


def test_missing_fields_are_rejected():
    with pytest.raises(ValidationError):
        create_user('', 'x@example.com', 'secret1')
    with pytest.raises(ValidationError):
        create_user('X', 'x@example.com', '')


@pytest.mark.parametrize('email,password,role', [
    ('ada@example.com', 'wrong', Role.STUDENT),
    ('ada@example.com', 'secret1', Role.TEACHER),
    ('nobody@example.com', 'secret1', Role.STUDENT),
])
def test_bad_credentials_or_role_mismatch(email, password, role):
    create_user('Ada', 'ada@example.com', 'secret1', role=Role.STUDENT)
    with pytest.raises(UnauthorizedError) as exc:
        authenticate_user(email, password, role)
    assert exc.value.status_code == 401


def test_unknown_user_is_not_found():
    with pytest.raises(NotFoundError):
        get_user_by_id('user_missing')


def test_require_role():
    assert require_role({'role': 'admin'}, Role.ADMIN) == Role.ADMIN
    with pytest.raises(UnauthorizedError):
        require_role(None, Role.ADMIN)
    with pytest.raises(UnauthorizedError):
        require_role({'role': 'student'}, Role.TEACHER)


def test_every_role_has_a_dashboard():
    assert set(DASHBOARD_PAGES) == set(Role)
    assert dashboard_for('teacher') == 'pages/1_Teacher.py'
    assert dashboard_for(Role.STUDENT) == 'pages/2_Student.py'
    assert dashboard_for(Role.ADMIN) == 'pages/3_Admin.py'


def test_change_password():
    user = create_user('Ada', 'ada@example.com', 'secret1')
    with pytest.raises(UnauthorizedError):
        change_password(user.id, 'wrong', 'newsecret')
    with pytest.raises(ValidationError):
        change_password(user.id, 'secret1', '123')

    change_password(user.id, 'secret1', 'newsecret')
    assert authenticate_user('ada@example.com', 'newsecret', Role.STUDENT).id == user.id


def test_reset_password_returns_new_plaintext_once():
    user = create_user('Ada', 'ada@example.com', 'secret1')
    new_password = reset_password(user.id)
    assert len(new_password) == 8
    assert authenticate_user('ada@example.com', new_password, Role.STUDENT).id == user.id
    with pytest.raises(UnauthorizedError):
        authenticate_user('ada@example.com', 'secret1', Role.STUDENT)
    with pytest.raises(NotFoundError):
        reset_password('user_missing')
