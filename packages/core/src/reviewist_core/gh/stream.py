"""Endless stream of review requests, one poll cycle after another.

The driver is a small state machine:

    IDLE → WAITING → FETCHING → FILTERING → IDLE
                         ↓
                       FAILED → IDLE

Transitions are pure functions of (state, input) returning the next state
and the events to emit. ``CycleStreamDriver.stream`` performs the side effect
each phase asks for (sleeping, fetching) and feeds the outcome back in.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field, replace
from enum import Enum

from reviewist_core.errors import ReviewistError
from reviewist_core.gh.polling import CycleResult, PollCycleOrchestrator
from reviewist_core.models import CycleEvent, FeedItem, PollCycleState
from reviewist_core.utils.logs import cycle_logger

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    FETCHING = "fetching"
    FILTERING = "filtering"
    FAILED = "failed"


@dataclass(frozen=True)
class DriverState:
    phase: Phase
    cycle: int
    poll: PollCycleState
    items: tuple[FeedItem, ...] = ()
    error: Exception | None = field(default=None, compare=False)


def initial_state(poll: PollCycleState | None = None) -> DriverState:
    return DriverState(phase=Phase.IDLE, cycle=0, poll=poll or PollCycleState.initial())


# --------------------------------------------------------------------------- #
# Transitions                                                                  #
# --------------------------------------------------------------------------- #


def _expect(state: DriverState, phase: Phase) -> None:
    if state.phase is not phase:
        raise ValueError(f"Invalid transition from {state.phase.value}; expected {phase.value}")


def start_cycle(state: DriverState) -> tuple[DriverState, list[CycleEvent]]:
    """IDLE → WAITING (or FETCHING when there is no wait pending)."""
    _expect(state, Phase.IDLE)
    phase = Phase.WAITING if state.poll.pending_wait_seconds is not None else Phase.FETCHING
    return replace(state, phase=phase, cycle=state.cycle + 1, items=(), error=None), []


def wait_finished(state: DriverState, poll: PollCycleState) -> tuple[DriverState, list[CycleEvent]]:
    """WAITING → FETCHING with the wait consumed."""
    _expect(state, Phase.WAITING)
    return replace(state, phase=Phase.FETCHING, poll=poll), []


def fetch_succeeded(state: DriverState, result: CycleResult) -> tuple[DriverState, list[CycleEvent]]:
    """FETCHING → FILTERING, adopting the poll state for the next cycle."""
    _expect(state, Phase.FETCHING)
    return replace(state, phase=Phase.FILTERING, poll=result.state, items=tuple(result.items)), []


def fetch_failed(
    state: DriverState, error: Exception, retry_after: int | None = None
) -> tuple[DriverState, list[CycleEvent]]:
    """FETCHING → FAILED. The previous cache validator is kept."""
    _expect(state, Phase.FETCHING)
    poll = replace(state.poll, pending_wait_seconds=retry_after)
    return replace(state, phase=Phase.FAILED, poll=poll, items=(), error=error), []


def filter_items(state: DriverState) -> tuple[DriverState, list[CycleEvent]]:
    """FILTERING → IDLE, emitting the cycle's review requests in feed order."""
    _expect(state, Phase.FILTERING)
    events = []
    for item in state.items:
        event = item.to_review_request()
        if event is not None:
            events.append(CycleEvent(event=event, cycle=state.cycle))
    return replace(state, phase=Phase.IDLE, items=()), events


def recover(state: DriverState) -> tuple[DriverState, list[CycleEvent]]:
    """FAILED → IDLE so the next cycle runs."""
    _expect(state, Phase.FAILED)
    return replace(state, phase=Phase.IDLE, error=None), []


# --------------------------------------------------------------------------- #
# Driver                                                                       #
# --------------------------------------------------------------------------- #


class CycleStreamDriver:
    def __init__(
        self,
        orchestrator: PollCycleOrchestrator,
        state: DriverState | None = None,
        failure_wait_seconds: int | None = None,
    ):
        self.orchestrator = orchestrator
        self.state = state or initial_state()
        self.failure_wait_seconds = failure_wait_seconds

    async def stream(self, max_cycles: int | None = None) -> AsyncIterator[CycleEvent]:
        """Yield review requests forever, or for ``max_cycles`` cycles.

        A cycle whose retries are exhausted is logged and skipped; it never
        ends the stream.
        """
        while True:
            state = self.state
            if state.phase is Phase.IDLE and max_cycles is not None and state.cycle >= max_cycles:
                return

            log = cycle_logger(logger, state.cycle)
            if state.phase is Phase.IDLE:
                state, events = start_cycle(state)
            elif state.phase is Phase.WAITING:
                poll = await self.orchestrator.wait(state.poll, log)
                state, events = wait_finished(state, poll)
            elif state.phase is Phase.FETCHING:
                try:
                    result = await self.orchestrator.fetch(state.poll, log)
                except ReviewistError as e:
                    state, events = fetch_failed(state, e, self.failure_wait_seconds)
                else:
                    state, events = fetch_succeeded(state, result)
            elif state.phase is Phase.FILTERING:
                state, events = filter_items(state)
                log.info("%d review request(s) in this cycle", len(events))
            else:
                log.error("Poll cycle failed: %s", state.error)
                state, events = recover(state)

            self.state = state
            for event in events:
                yield event
