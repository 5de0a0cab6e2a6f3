"""SQLite persistence for questions, sessions and answer records."""
from .memory import asked_question_ids, insert_answer, list_answers
from .migrate import migrate
from .questions import QuestionCatalog, QuestionRecord
from .sessions import SessionNotFound, SessionRecord

__all__ = [
    "QuestionCatalog",
    "QuestionRecord",
    "SessionNotFound",
    "SessionRecord",
    "asked_question_ids",
    "insert_answer",
    "list_answers",
    "migrate",
]
