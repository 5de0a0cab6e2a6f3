"""Question and sequencing payloads shared by the sequencer and the engine."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from storage.questions import QuestionRecord

SequenceAction = Literal["INIT_Q1", "INIT_SEQUENCE"]


class QuestionOut(BaseModel):
    """Question as exposed to the engine."""

    id: int
    question_id: str
    domain: str
    sub_domain: Optional[str] = None
    difficulty: int
    prompts: Dict[str, str] = Field(default_factory=dict)
    media: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: QuestionRecord) -> "QuestionOut":
        return cls(
            id=record.id,
            question_id=record.question_id,
            domain=record.domain,
            sub_domain=record.sub_domain,
            difficulty=record.difficulty,
            prompts=dict(record.prompts),
            media=dict(record.media),
        )


class SequenceResult(BaseModel):
    """Outcome of one sequencing call."""

    action: SequenceAction
    session_id: str
    question: Optional[QuestionOut] = None
    questions: List[QuestionOut] = Field(default_factory=list)
    total_questions: int = 0
    events: List[Dict[str, Any]] = Field(default_factory=list)

    def is_ready(self) -> bool:
        """Whether the engine can start playback from this result."""

        if self.action == "INIT_Q1":
            return True
        return bool(self.questions)


__all__ = ["QuestionOut", "SequenceAction", "SequenceResult"]
