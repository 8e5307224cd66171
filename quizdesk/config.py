import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./app.db")
SQL_ECHO = os.getenv("SQL_ECHO", "False").lower() == "true"

LOG_LEVEL = os.getenv("QUIZDESK_LOG_LEVEL", "INFO").upper()

# quiz defaults
DEFAULT_TIME_LIMIT = int(os.getenv("QUIZDESK_DEFAULT_TIME_LIMIT", 5))  # minutes
QUESTIONS_PER_QUIZ = int(os.getenv("QUIZDESK_QUESTIONS_PER_QUIZ", 5))
POINTS_PER_QUESTION = 2
OPTIONS_PER_QUESTION = 4

# number of times a stale subject write is re-read and re-applied
MUTATION_RETRIES = int(os.getenv("QUIZDESK_MUTATION_RETRIES", 1))

PASSWORD_MIN_LENGTH = int(os.getenv("QUIZDESK_PASSWORD_MIN_LENGTH", 6))
SUBJECT_CODE_LENGTH = int(os.getenv("QUIZDESK_CODE_LENGTH", 6))
PAGE_SIZE = int(os.getenv("QUIZDESK_PAGE_SIZE", 10))

if DEFAULT_TIME_LIMIT < 1:
    raise ValueError("QUIZDESK_DEFAULT_TIME_LIMIT must be a positive number of minutes.")
if MUTATION_RETRIES < 0:
    raise ValueError("QUIZDESK_MUTATION_RETRIES cannot be negative.")
