from __future__ import annotations

import pytest

from sequencer.pyramid import ELITE_LADDER, OPERATIONAL_LADDER, normalize_stage, resolve_pyramid


def test_graduate_resolves_to_graduate_and_student():
    assert resolve_pyramid("elite", "graduate") == ["graduate", "student"]


def test_exec_is_eligible_for_every_elite_stage():
    assert resolve_pyramid("elite", "exec") == ELITE_LADDER


@pytest.mark.parametrize(
    "stage, expected",
    [
        ("executive", "exec"),
        ("mid", "professional"),
        ("employee", "professional"),
        ("leader", "manager"),
        ("Manager", "manager"),
    ],
)
def test_elite_aliases(stage, expected):
    assert normalize_stage("elite", stage) == expected


def test_operational_prefix_is_optional():
    assert normalize_stage("operational", "supervisor") == "op_supervisor"
    assert normalize_stage("operational", "op_supervisor") == "op_supervisor"
    assert resolve_pyramid("operational", "junior") == ["op_junior", "op_entry"]


@pytest.mark.parametrize("segment, lowest", [("elite", "student"), ("operational", "op_entry"), (None, "student")])
def test_unknown_or_missing_stage_falls_back_to_lowest_rung(segment, lowest):
    assert resolve_pyramid(segment, "astronaut") == [lowest]
    assert resolve_pyramid(segment, None) == [lowest]


@pytest.mark.parametrize("ladder, segment", [(ELITE_LADDER, "elite"), (OPERATIONAL_LADDER, "operational")])
def test_higher_stages_never_see_less_content(ladder, segment):
    sizes = [len(resolve_pyramid(segment, stage)) for stage in ladder]
    assert sizes == sorted(sizes, reverse=True)
    assert sizes[0] > sizes[-1]
