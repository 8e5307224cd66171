from datetime import timezone

from quizdesk.db import get_session
from quizdesk.models import Module, Quiz, Score, Subject, User, dump_modules


def test_datetime_fields_are_timezone_aware():
    with get_session() as s:
        teacher = User(name='T', email='tz_teacher@example.com', password_hash='x', role='teacher')
        s.add(teacher)
        s.flush()  # ensure defaults applied but before DB roundtrip
        # in-memory default should be timezone-aware
        assert teacher.created_at.tzinfo is not None and teacher.created_at.tzinfo == timezone.utc
        s.commit()

        subject = Subject(name='TZ Subject', code='TZ0001', teacher_id=teacher.id)
        s.add(subject)
        s.flush()
        assert subject.created_at.tzinfo == timezone.utc
        s.commit()

        score = Score(student_id='user_s', quiz_id='quiz_q', subject_id=subject.id, score=4)
        s.add(score)
        s.flush()
        assert score.submitted_at.tzinfo == timezone.utc
        s.commit()


def test_embedded_quiz_timestamps_survive_serialization():
    quiz = Quiz()
    assert quiz.created_at.tzinfo == timezone.utc
    subject = Subject(name="S", code="C", teacher_id="t", modules=dump_modules([Module(name="M", quizzes=[quiz])]))
    restored = subject.get_modules()[0].quizzes[0]
    assert restored.created_at == quiz.created_at
    assert restored.created_at.tzinfo is not None
