import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterable

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from storage.questions import QuestionCatalog
from config.settings import settings


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture
def catalog() -> QuestionCatalog:
    return QuestionCatalog()


@pytest.fixture
def seed(catalog: QuestionCatalog) -> Callable[..., None]:
    """Insert ``count`` questions sharing a domain/difficulty/target profile."""

    def _seed(
        prefix: str,
        count: int,
        *,
        domain: str = "general",
        difficulty: int = 1,
        targets: Iterable[str] = ("student",),
        probability: float = 0.5,
        **extra: Any,
    ) -> None:
        for index in range(count):
            question: Dict[str, Any] = {
                "question_id": f"{prefix}_{index:02d}",
                "domain": domain,
                "difficulty": difficulty,
                "career_target": list(targets),
                "probability": probability,
                "prompts": {"en": f"{prefix} question {index}", "fr": f"{prefix} question {index} (fr)"},
                "media": {"en": f"https://media.test/{prefix}_{index}_en.mp4"},
            }
            question.update(extra)
            catalog.add(**question)

    return _seed
