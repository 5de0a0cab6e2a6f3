"""Career target pyramids: which stages' content a candidate may receive."""
from __future__ import annotations

from typing import Dict, List, Optional

# Ladders are ordered from the highest rung to the lowest.
ELITE_LADDER: List[str] = ["exec", "manager", "professional", "graduate", "student"]
OPERATIONAL_LADDER: List[str] = ["op_supervisor", "op_experienced", "op_junior", "op_entry"]

_STAGE_ALIASES: Dict[str, str] = {
    "executive": "exec",
    "mid": "professional",
    "employee": "professional",
    "leader": "manager",
}


def ladder_for(segment: Optional[str]) -> List[str]:
    """Return the ladder for ``segment``; anything but ``operational`` uses the elite ladder."""

    return OPERATIONAL_LADDER if segment == "operational" else ELITE_LADDER


def normalize_stage(segment: Optional[str], stage: Optional[str]) -> str:
    """Map free-form stage labels onto a rung of the segment's ladder.

    Unknown or empty stages resolve to the lowest rung.
    """

    ladder = ladder_for(segment)
    key = (stage or "").strip().lower()
    if ladder is OPERATIONAL_LADDER:
        if key and not key.startswith("op_"):
            key = f"op_{key}"
    else:
        key = _STAGE_ALIASES.get(key, key)
    return key if key in ladder else ladder[-1]


def resolve_pyramid(segment: Optional[str], stage: Optional[str]) -> List[str]:
    """Expand ``stage`` to itself plus every lower rung, highest first."""

    ladder = ladder_for(segment)
    rung = normalize_stage(segment, stage)
    return ladder[ladder.index(rung):]


__all__ = [
    "ELITE_LADDER",
    "OPERATIONAL_LADDER",
    "ladder_for",
    "normalize_stage",
    "resolve_pyramid",
]
