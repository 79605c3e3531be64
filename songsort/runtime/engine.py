from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from songsort.core.ledger import DecisionLedger, KnownPreference
from songsort.core.models import ComparisonRequest, Decision, DecisionKind, Direction, Estimate


logger = logging.getLogger(__name__)

RequestListener = Callable[[ComparisonRequest], None]
NoticeListener = Callable[[str], None]


@dataclass
class _PendingComparison:
    request: ComparisonRequest
    future: asyncio.Future[Decision]


class ComparisonEngine:
    """Answers comparisons from the ledger, or suspends until someone resolves them.

    Only the head of the pending queue is the active request; the rest wait in
    arrival order. Sort strategies await ``compare`` while the UI side calls
    ``resolve`` or ``add_imported_decision``.
    """

    def __init__(self, *, notice_limit: int = 50, clock: Callable[[], float] = time.monotonic):
        self.ledger = DecisionLedger()
        self.estimate = Estimate()
        self.listeners: list[RequestListener] = []
        self.notice_listeners: list[NoticeListener] = []
        self._clock = clock
        self._queue: deque[_PendingComparison] = deque()
        self._notices: deque[str] = deque(maxlen=notice_limit)
        self._last_direct_at: float | None = None
        self._inferred_streak = 0

    @property
    def active_request(self) -> ComparisonRequest | None:
        return self._queue[0].request if self._queue else None

    @property
    def pending_requests(self) -> list[ComparisonRequest]:
        return [pending.request for pending in self._queue]

    @property
    def decisions(self) -> tuple[Decision, ...]:
        return self.ledger.decisions

    @property
    def notices(self) -> list[str]:
        return list(self._notices)

    def reset(self) -> None:
        self.ledger.clear()
        self.estimate = Estimate()
        self._queue.clear()
        self._notices.clear()
        self._last_direct_at = None
        self._inferred_streak = 0

    def notify(self, message: str) -> None:
        self._notices.append(message)
        logger.info(message)
        for listener in list(self.notice_listeners):
            listener(message)

    def flush_inferred_streak(self) -> None:
        if self._inferred_streak:
            self.notify(f"Inferred {self._inferred_streak} comparisons from known decisions")
            self._inferred_streak = 0

    def known_preference(self, a: str, b: str) -> KnownPreference:
        return self.ledger.known_preference(a, b)

    @staticmethod
    def _outcome(left: str, right: str, direction: Direction, kind: DecisionKind) -> Decision:
        if direction == Direction.LEFT:
            return Decision(chosen=left, rejected=right, kind=kind)
        return Decision(chosen=right, rejected=left, kind=kind)

    def _announce(self, request: ComparisonRequest) -> None:
        for listener in list(self.listeners):
            listener(request)

    async def compare(self, a: str, b: str) -> Decision:
        if a == b:
            raise ValueError(f"Cannot compare an item with itself: {a}")

        known = self.known_preference(a, b)
        if known.resolved:
            self._inferred_streak += 1
            outcome = self._outcome(a, b, known.direction, DecisionKind.INFERRED)
            logger.debug("Known comparison: %s > %s", outcome.chosen, outcome.rejected)
            return outcome

        self.flush_inferred_streak()
        pending = _PendingComparison(
            request=ComparisonRequest(left=a, right=b),
            future=asyncio.get_running_loop().create_future(),
        )
        self._queue.append(pending)
        if len(self._queue) == 1:
            self._announce(pending.request)
        return await pending.future

    def resolve(self, direction: Direction | str) -> Decision | None:
        if not self._queue:
            logger.debug("Ignoring resolve(%s): no comparison is pending", direction)
            return None

        direction = Direction(direction)
        pending = self._queue.popleft()
        outcome = self._outcome(pending.request.left, pending.request.right, direction, DecisionKind.DIRECT)
        if not pending.future.done():
            pending.future.set_result(outcome)
        if self._queue:
            self._announce(self._queue[0].request)
        return outcome

    def record(self, chosen: str, rejected: str, kind: DecisionKind = DecisionKind.DIRECT) -> Decision:
        self.estimate.completed += 1
        self._keep_estimates_consistent()

        if kind == DecisionKind.INFERRED and self.ledger.has_pair(chosen, rejected):
            return Decision(chosen=chosen, rejected=rejected, kind=kind)

        ordinal = None
        elapsed = None
        if kind == DecisionKind.DIRECT:
            now = self._clock()
            if self._last_direct_at is not None:
                elapsed = round(max(0.0, now - self._last_direct_at), 3)
            self._last_direct_at = now
            ordinal = self.ledger.direct_count + 1
            logger.info("Comparison #%s: %s > %s", self.estimate.completed, chosen, rejected)

        decision = Decision(
            chosen=chosen,
            rejected=rejected,
            kind=kind,
            ordinal=ordinal,
            elapsed_seconds=elapsed,
        )
        return self.ledger.append(decision)

    def add_imported_decision(self, decision: Decision) -> Decision:
        record = self.ledger.append(
            Decision(chosen=decision.chosen, rejected=decision.rejected, kind=DecisionKind.IMPORTED)
        )
        self._settle_pending()
        return record

    def _settle_pending(self) -> None:
        active_before = self._queue[0] if self._queue else None
        remaining: deque[_PendingComparison] = deque()
        for pending in self._queue:
            known = self.known_preference(pending.request.left, pending.request.right)
            if not known.resolved:
                remaining.append(pending)
                continue
            outcome = self._outcome(
                pending.request.left,
                pending.request.right,
                known.direction,
                DecisionKind.INFERRED,
            )
            logger.info("Import resolved pending comparison: %s > %s", outcome.chosen, outcome.rejected)
            self._inferred_streak += 1
            if not pending.future.done():
                pending.future.set_result(outcome)

        self._queue = remaining
        if self._queue and self._queue[0] is not active_before:
            self._announce(self._queue[0].request)

    def seed_estimates(self, *, best_case: int, worst_case: int) -> None:
        self.estimate = Estimate(completed=0, best_case=min(best_case, worst_case), worst_case=worst_case)

    def adjust_estimates(self, best_delta: int = 0, worst_delta: int = 0) -> None:
        self.estimate.best_case += best_delta
        self.estimate.worst_case += worst_delta
        self._keep_estimates_consistent()

    def finalize_estimates(self) -> None:
        self.estimate.best_case = self.estimate.completed
        self.estimate.worst_case = self.estimate.completed

    def _keep_estimates_consistent(self) -> None:
        estimate = self.estimate
        estimate.worst_case = max(estimate.worst_case, estimate.completed)
        estimate.best_case = min(estimate.best_case, estimate.worst_case)
