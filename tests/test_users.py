import pytest

from conftest import make_user
from quizdesk.errors import ConflictError, NotFoundError, ValidationError
from quizdesk.models import Role
from quizdesk.subjects import create_subject
from quizdesk.users import delete_user, get_stats, list_users, update_user


def seed():
    make_user('Teacher One', 't1@example.com', role=Role.TEACHER)
    make_user('Teacher Two', 't2@example.com', role=Role.TEACHER)
    for i in range(5):
        make_user(f'Student {i}', f's{i}@school.org', roll=f'R{i}')


def test_list_users_filters_by_role_and_paginates():
    seed()
    first = list_users(role=Role.STUDENT, page=1, limit=2)
    assert first['total'] == 5
    assert [u['name'] for u in first['users']] == ['Student 0', 'Student 1']

    last = list_users(role=Role.STUDENT, page=3, limit=2)
    assert [u['name'] for u in last['users']] == ['Student 4']
    assert last['page'] == 3 and last['limit'] == 2


def test_list_users_search_matches_name_or_email():
    seed()
    assert list_users(search='Teacher')['total'] == 2
    assert list_users(search='school.org')['total'] == 5
    assert list_users(search='s3@')['users'][0]['roll'] == 'R3'
    assert list_users(search='nobody')['users'] == []


def test_update_user():
    seed()
    target = list_users(search='Student 0')['users'][0]
    updated = update_user(target['id'], 'Renamed', 'NEW@example.com', Role.TEACHER)
    assert updated.email == 'new@example.com'
    assert updated.role == 'teacher'
    with pytest.raises(ConflictError):
        update_user(target['id'], 'Renamed', 't1@example.com', Role.TEACHER)
    with pytest.raises(NotFoundError):
        update_user('user_missing', 'X', 'x@example.com', Role.STUDENT)


def test_delete_user():
    seed()
    target = list_users(search='Student 1')['users'][0]
    delete_user(target['id'])
    assert list_users(role=Role.STUDENT)['total'] == 4
    with pytest.raises(NotFoundError):
        delete_user(target['id'])


def test_stats():
    seed()
    teacher = list_users(role=Role.TEACHER)['users'][0]
    create_subject('Maths', teacher['id'])
    assert get_stats() == {'teachers': 2, 'students': 5, 'subjects': 1}


@pytest.mark.parametrize('name,email', [('', 'x@example.com'), ('X', ''), ('X', None), ('   ', 'x@example.com')])
def test_update_user_requires_name_and_email(name, email):
    seed()
    target = list_users(search='Student 2')['users'][0]
    with pytest.raises(ValidationError):
        update_user(target['id'], name, email, Role.STUDENT)
    assert list_users(search='Student 2')['users'][0]['email'] == 's2@school.org'
