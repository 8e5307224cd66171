import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from sqlmodel import col, select

from quizdesk.db import get_session
from quizdesk.models import Score, Subject, User
from quizdesk.mutator import delete_module


SEED_USER_PREFIX = "seed_student"
SEED_MODULE_PREFIX = "[SEED]"


def main():
    parser = argparse.ArgumentParser(description="Cleanup seeded report data for a subject.")
    parser.add_argument("--subject-code", required=True, help="Subject code to cleanup.")
    args = parser.parse_args()
    code = args.subject_code.strip().upper()

    with get_session() as session:
        subject = session.exec(select(Subject).where(Subject.code == code)).first()
        if not subject:
            raise SystemExit(f"Subject not found for code: {code}")

    seed_modules = [m for m in subject.get_modules() if m.name.startswith(SEED_MODULE_PREFIX)]
    seed_quiz_ids = [q.id for m in seed_modules for q in m.quizzes]
    for module in seed_modules:
        delete_module(subject.id, module.id)

    with get_session() as session:
        if seed_quiz_ids:
            session.exec(
                Score.__table__.delete().where(col(Score.quiz_id).in_(seed_quiz_ids))
            )

        seed_users = session.exec(
            select(User).where(col(User.email).like(f"{SEED_USER_PREFIX}+{code.lower()}_%"))
        ).all()
        seed_user_ids = [u.id for u in seed_users]
        if seed_user_ids:
            session.exec(
                Score.__table__.delete().where(col(Score.student_id).in_(seed_user_ids))
            )
            session.exec(
                User.__table__.delete().where(col(User.id).in_(seed_user_ids))
            )

        session.commit()

    print(f"Seed cleanup complete for subject code {code}.")


if __name__ == "__main__":
    main()
