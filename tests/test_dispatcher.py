import asyncio

import pytest

from nippo.services.pipeline.dispatcher import CorrectionDispatcher
from nippo.services.pipeline.models import Segment, SegmentState


def _segment(seq: int, text: str, session_id: str = "s1") -> Segment:
    return Segment(session_id=session_id, sequence_number=seq, raw_text=text)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_corrected_segment_is_reported(self, fake_corrector, settle):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append)

        dispatcher.dispatch(_segment(0, "kyou wa"), "question")
        assert dispatcher.in_flight == 1
        await settle()

        assert [s.corrected_text for s in completed] == ["<kyou wa>"]
        assert completed[0].state == SegmentState.CORRECTED
        assert fake_corrector.calls == [("kyou wa", "question")]
        assert dispatcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_short_segment_skips_correction(self, fake_corrector):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append, min_chars=3)

        dispatcher.dispatch(_segment(0, "a"))

        # resolved synchronously, no task scheduled
        assert dispatcher.in_flight == 0
        assert completed[0].corrected_text == "a"
        assert fake_corrector.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_dispatch_is_ignored(self, fake_corrector, settle):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append)

        segment = _segment(0, "once only")
        dispatcher.dispatch(segment)
        dispatcher.dispatch(segment)
        await settle()

        assert len(fake_corrector.calls) == 1
        assert len(completed) == 1

    @pytest.mark.asyncio
    async def test_failure_resolves_with_raw_text_and_warns(self, fake_corrector, settle):
        completed: list[Segment] = []
        warnings: list[tuple[Segment, Exception]] = []
        fake_corrector.failures.add("broken words")
        dispatcher = CorrectionDispatcher(
            fake_corrector, completed.append, on_warning=lambda s, e: warnings.append((s, e))
        )

        dispatcher.dispatch(_segment(0, "broken words"))
        await settle()

        assert completed[0].state == SegmentState.FAILED
        assert completed[0].merged_text == "broken words"
        assert len(warnings) == 1
        assert len(fake_corrector.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_correction_counts_as_failure(self, settle):
        class EmptyCorrector:
            async def correct(self, raw_text, context_hint=None):
                return "   "

        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(EmptyCorrector(), completed.append)

        dispatcher.dispatch(_segment(0, "some words"))
        await settle()

        assert completed[0].state == SegmentState.FAILED
        assert completed[0].merged_text == "some words"

    @pytest.mark.asyncio
    async def test_completions_arrive_in_completion_order(self, fake_corrector, settle):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append)
        first_gate = fake_corrector.gate("first one")

        dispatcher.dispatch(_segment(0, "first one"))
        dispatcher.dispatch(_segment(1, "second one"))
        await settle()
        assert [s.sequence_number for s in completed] == [1]
        assert dispatcher.pending_sequences() == [0]

        first_gate.set()
        await settle()
        assert [s.sequence_number for s in completed] == [1, 0]


class TestCancelAndDrain:
    @pytest.mark.asyncio
    async def test_cancel_session_drops_in_flight_calls(self, fake_corrector, settle):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append)
        fake_corrector.gate("slow words")

        dispatcher.dispatch(_segment(0, "slow words", session_id="s1"))
        dispatcher.dispatch(_segment(0, "other words", session_id="s2"))
        assert dispatcher.pending_sequences("s1") == [0]

        assert dispatcher.cancel_session("s1") == [0]
        await settle()

        assert [s.session_id for s in completed] == ["s2"]
        assert dispatcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_every_call(self, fake_corrector):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append)
        fake_corrector.delays.update({"slow one": 0.02, "slower one": 0.04})

        dispatcher.dispatch(_segment(0, "slower one"))
        dispatcher.dispatch(_segment(1, "slow one"))
        await asyncio.wait_for(dispatcher.drain(), timeout=1)

        assert dispatcher.in_flight == 0
        assert sorted(s.sequence_number for s in completed) == [0, 1]

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending_returns(self, fake_corrector):
        dispatcher = CorrectionDispatcher(fake_corrector, lambda s: None)
        await asyncio.wait_for(dispatcher.drain(), timeout=1)

    @pytest.mark.asyncio
    async def test_cancel_all_reports_every_session(self, fake_corrector, settle):
        completed: list[Segment] = []
        dispatcher = CorrectionDispatcher(fake_corrector, completed.append)
        fake_corrector.gate("slow one")
        fake_corrector.gate("slow two")

        dispatcher.dispatch(_segment(0, "slow one", session_id="s1"))
        dispatcher.dispatch(_segment(1, "quick", session_id="s1"))
        dispatcher.dispatch(_segment(2, "slow two", session_id="s2"))
        await settle()

        assert dispatcher.cancel_all() == {"s1": [0], "s2": [2]}
        await settle()
        assert dispatcher.in_flight == 0

        # dispatch history is gone, so the numbers can be reused
        dispatcher.dispatch(_segment(0, "again"))
        await settle()
        assert [s.raw_text for s in completed] == ["quick", "again"]
