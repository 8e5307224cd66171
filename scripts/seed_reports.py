import argparse
import random
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from sqlmodel import select

from quizdesk.db import get_session, init_db
from quizdesk.models import Score, Subject, User, QuestionType, now_utc
from quizdesk.mutator import add_module, append_quiz, toggle_quiz_active
from quizdesk.subjects import join_subject
from quizdesk.config import POINTS_PER_QUESTION, QUESTIONS_PER_QUIZ


SEED_USER_PREFIX = "seed_student"
SEED_MODULE_PREFIX = "[SEED]"


def _question_defs(module_no):
    defs = []
    for qn in range(QUESTIONS_PER_QUIZ):
        defs.append(
            {
                "type": QuestionType.MULTIPLE_CHOICE,
                "text": f"Seed question {module_no}-{qn+1}",
                "options": ["Option A", "Option B", "Option C", "Option D"],
                "correct": qn % 4,
            }
        )
    return defs


def main():
    parser = argparse.ArgumentParser(description="Seed report data for a subject.")
    parser.add_argument("--subject-code", required=True, help="Subject code to seed.")
    parser.add_argument("--students", type=int, default=12)
    parser.add_argument("--modules", type=int, default=2)
    args = parser.parse_args()

    random.seed(42)
    init_db()
    code = args.subject_code.strip().upper()

    with get_session() as session:
        subject = session.exec(select(Subject).where(Subject.code == code)).first()
        if not subject:
            raise SystemExit(f"Subject not found for code: {code}")
        if any(m.name.startswith(SEED_MODULE_PREFIX) for m in subject.get_modules()):
            raise SystemExit(
                "Seed modules already exist for this subject. "
                "Run scripts/seed_reports_cleanup.py first."
            )

        users = []
        for i in range(args.students):
            email = f"{SEED_USER_PREFIX}+{code.lower()}_{i+1}@example.com"
            user = session.exec(select(User).where(User.email == email)).first()
            if not user:
                user = User(
                    name=f"Seed Student {i+1}",
                    email=email,
                    password_hash="seed",
                    role="student",
                    roll=f"S{i+1:03d}",
                )
                session.add(user)
                session.commit()
                session.refresh(user)
            users.append(user)

    for user in users:
        if subject.id not in user.get_joined_subjects():
            join_subject(user.id, code)

    quizzes = []
    for mi in range(args.modules):
        module = add_module(subject.id, f"{SEED_MODULE_PREFIX} Module {mi+1}")
        quiz = append_quiz(subject.id, module.id, _question_defs(mi + 1))
        toggle_quiz_active(subject.id, module.id, quiz.id)
        quizzes.append(quiz)

    # weak / average / strong segments
    with get_session() as session:
        for idx, user in enumerate(users):
            if idx % 3 == 0:
                success_rate = 0.35
            elif idx % 3 == 1:
                success_rate = 0.6
            else:
                success_rate = 0.85

            for quiz in quizzes:
                correct = sum(1 for _ in quiz.questions if random.random() < success_rate)
                session.add(
                    Score(
                        student_id=user.id,
                        quiz_id=quiz.id,
                        subject_id=subject.id,
                        score=correct * POINTS_PER_QUESTION,
                        submitted_at=now_utc() - timedelta(days=random.randint(0, 20)),
                    )
                )
        session.commit()

    print(
        f"Seed complete for subject {subject.name} ({code}). "
        f"Students={args.students}, Modules={args.modules}"
    )


if __name__ == "__main__":
    main()
