import logging

from quizdesk.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def setup_logging(level: str | None = None):
    """Configure the root logger once per process.

    Streamlit re-executes page scripts on every interaction, so repeated
    calls must not stack handlers.
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
    # SQL echo goes through its own logger
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
