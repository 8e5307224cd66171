import os

import pytest

TEST_DB = os.path.join(os.path.dirname(__file__), 'test_app.db')
# must be set before quizdesk.config is imported
os.environ['DATABASE_URL'] = f"sqlite:///{TEST_DB}"

from sqlmodel import SQLModel

from quizdesk.db import engine, get_session, init_db
from quizdesk.models import Role, Subject, User


def _remove_db():
    try:
        os.remove(TEST_DB)
    except FileNotFoundError:
        pass


@pytest.fixture(scope='session', autouse=True)
def reset_db():
    # Ensure a clean DB for the test session
    _remove_db()
    init_db()
    yield
    engine.dispose()
    _remove_db()


@pytest.fixture(autouse=True)
def clean_tables():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


def make_user(name, email, role=Role.STUDENT, roll=None):
    with get_session() as s:
        user = User(name=name, email=email, password_hash='x', role=role.value, roll=roll)
        s.add(user); s.commit(); s.refresh(user)
        return user


@pytest.fixture
def teacher():
    return make_user('Teacher T', 'teacher@example.com', role=Role.TEACHER)


@pytest.fixture
def student():
    return make_user('Student S', 'student@example.com', roll='S001')


@pytest.fixture
def subject(teacher):
    with get_session() as s:
        subj = Subject(name='Physics', code='PHY101', teacher_id=teacher.id)
        s.add(subj); s.commit(); s.refresh(subj)
        return subj


def mc(text, correct=0, options=None):
    return {
        'type': 'multiple_choice',
        'text': text,
        'options': options or ['a', 'b', 'c', 'd'],
        'correct': correct,
    }


def fib(text, answer):
    return {'type': 'fill_in_blank', 'text': text, 'answer': answer}
