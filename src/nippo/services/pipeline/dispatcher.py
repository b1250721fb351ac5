import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

from nippo.services.pipeline.models import CorrectionRequest, Segment

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[Segment], None]
WarningCallback = Callable[[Segment, Exception], None]


class Corrector(Protocol):
    async def correct(self, raw_text: str, context_hint: str | None = None) -> str: ...


class CorrectionDispatcher:
    """Fire-and-forget correction of segments.

    Each dispatched segment is corrected in its own asyncio task and handed to
    ``on_complete`` once resolved, in completion order. Failed calls resolve the
    segment as ``failed`` with its raw text; nothing is retried.
    """

    def __init__(
        self,
        corrector: Corrector,
        on_complete: CompletionCallback,
        *,
        min_chars: int = 3,
        on_warning: WarningCallback | None = None,
    ) -> None:
        self._corrector = corrector
        self._on_complete = on_complete
        self._on_warning = on_warning
        self._min_chars = min_chars
        self._pending: dict[tuple[str, int], tuple[CorrectionRequest, asyncio.Task]] = {}
        self._dispatched: dict[str, set[int]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def pending_sequences(self, session_id: str | None = None) -> list[int]:
        return sorted(
            seq
            for sid, seq in self._pending
            if session_id is None or sid == session_id
        )

    def dispatch(self, segment: Segment, context_hint: str | None = None) -> None:
        seen = self._dispatched.setdefault(segment.session_id, set())
        if segment.sequence_number in seen:
            logger.warning(
                "Segment %d of session %s already dispatched, ignoring",
                segment.sequence_number,
                segment.session_id,
            )
            return
        seen.add(segment.sequence_number)

        if len(segment.raw_text.strip()) < self._min_chars:
            logger.debug(
                "Segment %d below %d chars, skipping correction",
                segment.sequence_number,
                self._min_chars,
            )
            segment.resolve(segment.raw_text)
            self._on_complete(segment)
            return

        request = CorrectionRequest(
            segment=segment,
            context_hint=context_hint,
            submitted_at=time.monotonic(),
        )
        task = asyncio.create_task(
            self._run(request),
            name=f"correct-{segment.session_id[:8]}-{segment.sequence_number}",
        )
        key = segment.key
        self._pending[key] = (request, task)
        task.add_done_callback(lambda t, key=key: self._forget_task(key, t))

    async def _run(self, request: CorrectionRequest) -> None:
        segment = request.segment
        try:
            corrected = await self._corrector.correct(segment.raw_text, request.context_hint)
            if not corrected or not corrected.strip():
                raise ValueError("empty correction result")
        except Exception as e:
            segment.fail()
            logger.warning(
                "Correction of segment %d failed after %.2fs, using raw text: [%s] %s",
                segment.sequence_number,
                time.monotonic() - request.submitted_at,
                type(e).__name__,
                e,
            )
            if self._on_warning:
                self._on_warning(segment, e)
        else:
            segment.resolve(corrected)
            logger.info(
                "Segment %d corrected in %.2fs",
                segment.sequence_number,
                time.monotonic() - request.submitted_at,
            )

        self._pending.pop(segment.key, None)
        self._on_complete(segment)

    def _forget_task(self, key: tuple[str, int], task: asyncio.Task) -> None:
        entry = self._pending.get(key)
        if entry is not None and entry[1] is task:
            del self._pending[key]

    def cancel_session(self, session_id: str) -> list[int]:
        """Cancel every in-flight call of ``session_id``.

        Returns the sequence numbers whose results will never arrive.
        """
        keys = sorted(key for key in self._pending if key[0] == session_id)
        for key in keys:
            _, task = self._pending.pop(key)
            task.cancel()
        self._dispatched.pop(session_id, None)
        if keys:
            logger.info("Cancelled %d in-flight corrections of session %s", len(keys), session_id)
        return [seq for _, seq in keys]

    def cancel_all(self) -> dict[str, list[int]]:
        """Cancel every in-flight call and forget all dispatch history."""
        return {
            session_id: self.cancel_session(session_id)
            for session_id in list(self._dispatched)
        }

    async def drain(self) -> None:
        """Wait until no correction call is in flight."""
        while self._pending:
            tasks = [task for _, task in self._pending.values()]
            # asyncio.wait does not cancel the tasks if the waiter is cancelled
            await asyncio.wait(tasks)
            for key, (_, task) in list(self._pending.items()):
                if task.done():
                    del self._pending[key]
