from __future__ import annotations

from services.answer_metrics import answer_record, hesitations_count, speaking_speed_wpm


def test_speaking_speed():
    assert speaking_speed_wpm("one two three four five six", 3000) == 120
    assert speaking_speed_wpm("anything at all", 0) == 0


def test_hesitations_are_whole_words():
    assert hesitations_count("Euh, I think uh the humble answer is... hum erm") == 4


def test_answer_record_drops_missing_scores():
    record = answer_record(
        user_id="u1",
        session_id="s1",
        question_id="q_1",
        transcript="  uh I led the migration  ",
        lang="en",
        duration_ms=60_000,
        pauses_count=2,
        stress_score=0.3,
        posture_score=None,
    )

    assert record["transcript"] == "uh I led the migration"
    assert record["speaking_speed_wpm"] == 5
    assert record["hesitations_count"] == 1
    assert record["stress_score"] == 0.3
    assert "posture_score" not in record
