"""Adaptive question sequencing for interview sessions."""
from .models import QuestionOut, SequenceResult
from .policy import SequencingPlan
from .pyramid import resolve_pyramid
from .sequencer import QuestionSequencer

__all__ = ["QuestionOut", "QuestionSequencer", "SequenceResult", "SequencingPlan", "resolve_pyramid"]
