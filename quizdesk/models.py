import json
import uuid
from enum import Enum
from typing import List, Optional
from datetime import datetime, timezone

from pydantic import BaseModel, Field as DocField
from sqlalchemy import Text
from sqlmodel import SQLModel, Field

from quizdesk.config import DEFAULT_TIME_LIMIT, POINTS_PER_QUESTION


def now_utc():
    return datetime.now(timezone.utc)


def uid(prefix: str = "id") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:9]}"


class Role(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"
    ADMIN = "admin"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_IN_BLANK = "fill_in_blank"


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

class User(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uid("user"), primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = Field(default=Role.STUDENT.value, index=True)  # admin|teacher|student
    roll: Optional[str] = None
    joined_subjects: str = Field(default="[]")  # JSON list of subject ids
    created_at: datetime = Field(default_factory=now_utc)

    def get_joined_subjects(self) -> List[str]:
        return json.loads(self.joined_subjects or "[]")


class Subject(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uid("subj"), primary_key=True)
    name: str
    code: str = Field(index=True, unique=True)
    teacher_id: str = Field(index=True)
    modules: str = Field(default="[]", sa_type=Text)  # JSON list of Module documents
    version: int = Field(default=0)
    created_at: datetime = Field(default_factory=now_utc)

    def get_modules(self) -> List["Module"]:
        return [Module.model_validate(m) for m in json.loads(self.modules or "[]")]


class Score(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True)
    quiz_id: str = Field(index=True)
    subject_id: str = Field(index=True)
    score: int
    submitted_at: datetime = Field(default_factory=now_utc)


# ---------------------------------------------------------------------------
# Documents embedded in Subject.modules
# ---------------------------------------------------------------------------

class Question(BaseModel):
    id: str = DocField(default_factory=lambda: uid("q"))
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    text: str
    options: Optional[List[str]] = None
    correct: Optional[int] = None  # index into options
    answer: Optional[str] = None  # expected text for fill-in-blank


class Quiz(BaseModel):
    id: str = DocField(default_factory=lambda: uid("quiz"))
    questions: List[Question] = DocField(default_factory=list)
    created_at: datetime = DocField(default_factory=now_utc)
    time_limit: int = DEFAULT_TIME_LIMIT  # minutes
    is_active: bool = False

    @property
    def max_score(self) -> int:
        return POINTS_PER_QUESTION * len(self.questions)


class Module(BaseModel):
    id: str = DocField(default_factory=lambda: uid("mod"))
    name: str
    quizzes: List[Quiz] = DocField(default_factory=list)

    @property
    def current_quiz(self) -> Optional[Quiz]:
        """The most recently appended quiz; older ones are kept as history."""
        return self.quizzes[-1] if self.quizzes else None


def dump_modules(modules: List[Module]) -> str:
    return json.dumps([m.model_dump(mode="json") for m in modules])
