from __future__ import annotations

import asyncio
from typing import List, Optional

from config.settings import settings
from engine.idle_manager import EngagementState, IdleManager
from engine.playlist import PlaylistQueue


class _Recorder:
    def __init__(self) -> None:
        self.advanced = 0
        self.spoken: List[str] = []
        self.states: List[EngagementState] = []
        self.idle: Optional[IdleManager] = None

    async def on_next(self) -> None:
        self.advanced += 1

    async def speak(self, text: str) -> None:
        self.states.append(self.idle.state)
        self.spoken.append(text)


def _manager(recorder: _Recorder, **kwargs) -> IdleManager:
    kwargs.setdefault("silence_seconds", 60)
    idle = IdleManager(PlaylistQueue(), on_next_question=recorder.on_next, speak=recorder.speak, **kwargs)
    recorder.idle = idle
    return idle


def test_start_loop_enqueues_idle_cycle_and_arms_timer():
    async def scenario():
        idle = _manager(_Recorder())
        idle.start_loop()
        keys = [ref.key for ref in idle.playlist.pending()]
        assert keys == ["idle_listen"] * settings.IDLE_LISTEN_CLIPS + ["idle_smile"]
        assert idle.state == EngagementState.LISTENING
        assert idle.timer_armed
        idle.stop()

    asyncio.run(scenario())


def test_silence_before_speech_never_advances():
    async def scenario():
        recorder = _Recorder()
        idle = _manager(recorder)
        idle.start_loop()
        for _ in range(5):
            await idle.handle_silence()
        assert idle.state == EngagementState.LISTENING
        assert idle.timer_armed
        assert recorder.advanced == 0
        assert recorder.spoken == []
        idle.stop()

    asyncio.run(scenario())


def test_speak_then_two_silences_clarifies_then_advances_once():
    async def scenario():
        recorder = _Recorder()
        idle = _manager(recorder)
        idle.start_loop()
        idle.on_user_speaking()

        await idle.handle_silence()
        assert recorder.states == [EngagementState.CLARIFYING]
        assert recorder.spoken == [settings.DEFAULT_FOLLOWUP_TEXT]
        assert idle.state == EngagementState.LISTENING
        assert idle.relance_count == 1
        pending = [ref.key for ref in idle.playlist.pending()]
        assert pending.index("clarify_end_alt") < pending.index("clarify_end")
        assert pending[-1] == "idle_smile"

        await idle.handle_silence()
        assert recorder.advanced == 1
        assert idle.state == EngagementState.ADVANCING
        assert idle.relance_count == 0
        assert not idle.timer_armed
        idle.stop()

    asyncio.run(scenario())


def test_speech_between_silences_resets_relance():
    async def scenario():
        recorder = _Recorder()
        idle = _manager(recorder)
        idle.on_user_speaking()
        await idle.handle_silence()
        idle.on_user_speaking()
        await idle.handle_silence()
        assert recorder.advanced == 0
        assert len(recorder.spoken) == 2
        idle.stop()

    asyncio.run(scenario())


def test_followup_accessor_supplies_relance_text():
    async def scenario():
        recorder = _Recorder()

        async def followup() -> str:
            return "Could you give a concrete example?"

        idle = _manager(recorder, followup_text=followup)
        idle.on_user_speaking()
        await idle.handle_silence()
        assert recorder.spoken == ["Could you give a concrete example?"]
        idle.stop()

    asyncio.run(scenario())


def test_clarify_error_advances():
    class BrokenCatalog:
        def url(self, key: str, lang: str) -> str:
            raise RuntimeError("media store offline")

    async def scenario():
        recorder = _Recorder()
        idle = _manager(recorder, media=BrokenCatalog())
        idle.on_user_speaking()
        await idle.handle_silence()
        assert recorder.advanced == 1
        assert idle.state == EngagementState.ADVANCING
        idle.stop()

    asyncio.run(scenario())


def test_rearming_cancels_previous_timer():
    async def scenario():
        idle = _manager(_Recorder())
        idle.on_user_speaking()
        first = idle._timer
        idle.on_user_speaking()
        assert first.cancelled()
        assert idle._timer is not first
        idle.reset_context()
        assert not idle.timer_armed
        assert not idle.has_spoken
        idle.stop()

    asyncio.run(scenario())


def test_timer_drives_two_strikes_rule():
    async def scenario():
        recorder = _Recorder()
        idle = _manager(recorder, silence_seconds=0.01)
        idle.start_loop()
        idle.on_user_speaking()
        for _ in range(200):
            await asyncio.sleep(0.01)
            if recorder.advanced:
                break
        await asyncio.sleep(0.05)
        await idle.drain()
        assert recorder.advanced == 1
        assert len(recorder.spoken) == 1
        idle.stop()

    asyncio.run(scenario())


def test_stopped_manager_ignores_signals():
    async def scenario():
        recorder = _Recorder()
        idle = _manager(recorder)
        idle.stop()
        idle.on_user_speaking()
        await idle.handle_silence()
        idle.start_loop()
        assert idle.state == EngagementState.STOPPED
        assert not idle.timer_armed
        assert idle.playlist.size() == 0
        assert recorder.advanced == 0

    asyncio.run(scenario())
