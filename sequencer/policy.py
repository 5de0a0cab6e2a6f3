"""Sequencing policy tables: difficulty cascades, domain fallbacks and block quotas."""
from __future__ import annotations

from typing import Dict, List, Tuple

from pydantic import BaseModel, Field

GENERAL_DOMAIN = "general"

DIFFICULTY_CASCADE: Dict[int, List[int]] = {
    1: [1, 2, 3],
    2: [2, 1, 3],
    3: [3, 2, 1],
}

DOMAIN_FALLBACK: Dict[str, List[str]] = {
    "marketing": [GENERAL_DOMAIN],
    "sales": [GENERAL_DOMAIN],
    "finance": [GENERAL_DOMAIN],
    "consulting": [GENERAL_DOMAIN],
    "tech": [GENERAL_DOMAIN],
    "hr": [GENERAL_DOMAIN],
    "legal": [GENERAL_DOMAIN],
    "product": [GENERAL_DOMAIN],
    "ops": [GENERAL_DOMAIN],
    "supply_chain": [GENERAL_DOMAIN],
    "production": [GENERAL_DOMAIN],
    "accounting": [GENERAL_DOMAIN],
    "banking": [GENERAL_DOMAIN],
    GENERAL_DOMAIN: [GENERAL_DOMAIN],
}


class SequencingPlan(BaseModel):
    """Per-difficulty quotas for both blocks, as ``(level, count)`` pairs in order."""

    general_block: List[Tuple[int, int]] = Field(default_factory=lambda: [(1, 4), (2, 4), (3, 4)])
    domain_block: List[Tuple[int, int]] = Field(default_factory=lambda: [(1, 7), (2, 5), (3, 5)])

    @property
    def max_questions(self) -> int:
        return sum(count for _, count in self.general_block) + sum(count for _, count in self.domain_block)


def cascade_for(level: int) -> List[int]:
    return DIFFICULTY_CASCADE.get(level, [level])


def fallback_chain(domain: str) -> List[str]:
    """Alternate domains tried when ``domain`` cannot fill its quota."""

    return DOMAIN_FALLBACK.get(domain, [GENERAL_DOMAIN])


__all__ = [
    "DIFFICULTY_CASCADE",
    "DOMAIN_FALLBACK",
    "GENERAL_DOMAIN",
    "SequencingPlan",
    "cascade_for",
    "fallback_chain",
]
