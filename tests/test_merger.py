from nippo.services.pipeline.merger import DraftMerger
from nippo.services.pipeline.models import Segment


def _segment(seq: int, text: str, session_id: str = "s1") -> Segment:
    segment = Segment(session_id=session_id, sequence_number=seq, raw_text=text)
    segment.resolve(text.upper())
    return segment


class TestApply:
    def setup_method(self):
        self.merger = DraftMerger()

    def test_in_order_segments_are_space_joined(self):
        self.merger.apply(_segment(0, "kyou wa"))
        self.merger.apply(_segment(1, "hare"))

        assert self.merger.get_text() == "KYOU WA HARE"
        assert self.merger.buffer.last_applied_sequence == 1

    def test_out_of_order_segment_is_held_until_predecessor(self):
        assert self.merger.apply(_segment(1, "second")) is False
        assert self.merger.get_text() == ""
        assert self.merger.held_sequences == [1]

        assert self.merger.apply(_segment(0, "first")) is True
        assert self.merger.get_text() == "FIRST SECOND"
        assert self.merger.held_sequences == []

    def test_reverse_completion_flushes_in_sequence_order(self):
        for seq in (3, 2, 1):
            self.merger.apply(_segment(seq, f"s{seq}"))
        assert self.merger.get_text() == ""

        self.merger.apply(_segment(0, "s0"))
        assert self.merger.get_text() == "S0 S1 S2 S3"

    def test_stale_sequence_is_discarded(self):
        self.merger.apply(_segment(0, "once"))
        assert self.merger.apply(_segment(0, "again")) is False
        assert self.merger.get_text() == "ONCE"

    def test_duplicate_held_sequence_is_discarded(self):
        self.merger.apply(_segment(1, "held"))
        assert self.merger.apply(_segment(1, "other")) is False
        self.merger.apply(_segment(0, "zero"))
        assert self.merger.get_text() == "ZERO HELD"

    def test_failed_segment_contributes_raw_text(self):
        segment = Segment(session_id="s1", sequence_number=0, raw_text="raw words")
        segment.fail()
        self.merger.apply(segment)
        assert self.merger.get_text() == "raw words"

    def test_segments_of_consecutive_sessions_share_one_order(self):
        self.merger.apply(_segment(1, "new session", session_id="s2"))
        self.merger.apply(_segment(0, "old session", session_id="s1"))
        assert self.merger.get_text() == "OLD SESSION NEW SESSION"


class TestDiscardSession:
    def setup_method(self):
        self.merger = DraftMerger()

    def test_late_result_of_discarded_session_is_dropped(self):
        self.merger.discard_session("s1", [0])
        assert self.merger.apply(_segment(0, "late")) is False
        assert self.merger.get_text() == ""
        assert self.merger.buffer.last_applied_sequence == 0

    def test_skipped_sequences_release_later_segments(self):
        self.merger.apply(_segment(0, "kept", session_id="s1"))
        self.merger.apply(_segment(3, "after", session_id="s3"))

        self.merger.discard_session("s2", [1, 2])

        assert self.merger.get_text() == "KEPT AFTER"
        assert self.merger.buffer.last_applied_sequence == 3

    def test_held_segments_of_discarded_session_are_dropped(self):
        self.merger.apply(_segment(1, "held", session_id="s2"))
        self.merger.discard_session("s2", [2])
        self.merger.apply(_segment(3, "next", session_id="s3"))

        assert self.merger.get_text() == ""
        assert self.merger.held_sequences == [3]

        self.merger.apply(_segment(0, "first", session_id="s1"))
        assert self.merger.get_text() == "FIRST NEXT"

    def test_discard_without_pending_work_changes_nothing(self):
        self.merger.apply(_segment(0, "text"))
        assert self.merger.discard_session("s9") is False
        assert self.merger.get_text() == "TEXT"


class TestManualText:
    def setup_method(self):
        self.merger = DraftMerger()

    def test_manual_text_overwrites_buffer(self):
        self.merger.apply(_segment(0, "spoken"))
        self.merger.set_manual_text("typed")

        assert self.merger.get_text() == "typed"
        assert self.merger.buffer.manually_edited is True

    def test_later_segments_append_after_edit(self):
        self.merger.apply(_segment(1, "late"))
        self.merger.set_manual_text("X")
        self.merger.apply(_segment(0, "early"))

        assert self.merger.get_text() == "X EARLY LATE"

    def test_no_double_space_after_trailing_whitespace(self):
        self.merger.set_manual_text("X\n")
        self.merger.apply(_segment(0, "next"))
        assert self.merger.get_text() == "X\nNEXT"


class TestInitialTextAndClear:
    def test_initial_text_is_not_a_manual_edit(self):
        merger = DraftMerger("previous answer")
        merger.apply(_segment(0, "more"))

        assert merger.get_text() == "previous answer MORE"
        assert merger.buffer.manually_edited is False

    def test_clear_resets_everything(self):
        merger = DraftMerger("seed")
        merger.apply(_segment(0, "one"))
        merger.apply(_segment(2, "held"))
        merger.set_manual_text("edited")

        merger.clear()

        assert merger.get_text() == ""
        assert merger.buffer.last_applied_sequence == -1
        assert merger.buffer.manually_edited is False
        assert merger.held_sequences == []

    def test_discarded_session_stays_discarded_after_clear(self):
        merger = DraftMerger()
        merger.discard_session("s1", [0])
        merger.clear()

        assert merger.apply(_segment(0, "late")) is False
        assert merger.apply(_segment(0, "fresh", session_id="s2")) is True
        assert merger.get_text() == "FRESH"
