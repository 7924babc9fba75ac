"""In-memory status bus for one pipeline run.

Holds the latest ``AgentStatus`` per agent and fans ``StatusEvent``s out to
subscribers. Publishing is synchronous and never awaits, so on a single event
loop each update to the status map is atomic.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

import structlog

from superarchitect.errors import StatusTransitionError
from superarchitect.models.contracts import AgentProfile, AgentState, AgentStatus, StatusEvent

logger = structlog.get_logger()

PROJECT_LEAD = "Project Lead"
CONCEPT_ARCHITECT = "Concept Architect"
VISUAL_SYNTHESIS = "Visual Synthesis AI"
MATERIALS_SPECIALIST = "Materials Specialist"
COST_ESTIMATOR = "Cost Estimator AI"
ECO_ANALYST = "Eco-Analyst AI"
COMPLIANCE = "Compliance AI"
DATA_INTEGRATOR = "Data Integrator"

AGENT_ROSTER: tuple[AgentProfile, ...] = (
    AgentProfile(agent_id=PROJECT_LEAD, role="Analyzes brief & coordinates team"),
    AgentProfile(agent_id=CONCEPT_ARCHITECT, role="Generates core design concepts"),
    AgentProfile(agent_id=VISUAL_SYNTHESIS, role="Generates all renders & plans"),
    AgentProfile(agent_id=MATERIALS_SPECIALIST, role="Details finishes and materials"),
    AgentProfile(agent_id=COST_ESTIMATOR, role="Estimates project costs & BOQ"),
    AgentProfile(agent_id=ECO_ANALYST, role="Analyzes sustainability factors"),
    AgentProfile(agent_id=COMPLIANCE, role="Performs regulatory checks"),
    AgentProfile(agent_id=DATA_INTEGRATOR, role="Assembles final project data"),
)

# Allowed moves; terminal states accept nothing.
_TRANSITIONS: dict[AgentState, frozenset[AgentState]] = {
    "pending": frozenset({"working"}),
    "working": frozenset({"working", "complete", "error"}),
    "complete": frozenset(),
    "error": frozenset(),
}

StatusCallback = Callable[[StatusEvent], None]


class StatusSubscription:
    """Async iterator over events published after the subscription was made."""

    def __init__(self, bus: StatusBus) -> None:
        self._bus = bus
        self._queue: asyncio.Queue[StatusEvent | None] = asyncio.Queue()

    def _push(self, event: StatusEvent | None) -> None:
        self._queue.put_nowait(event)

    def __aiter__(self) -> StatusSubscription:
        return self

    async def __anext__(self) -> StatusEvent:
        event = await self._queue.get()
        if event is None:
            self._bus._unsubscribe(self)
            raise StopAsyncIteration
        return event

    async def collect(self) -> list[StatusEvent]:
        """Drain until the bus closes."""
        return [event async for event in self]


class StatusBus:
    def __init__(
        self,
        agents: Iterable[AgentProfile] = AGENT_ROSTER,
        on_status: StatusCallback | None = None,
    ) -> None:
        self._statuses: dict[str, AgentStatus] = {
            a.agent_id: AgentStatus(agent_id=a.agent_id, role=a.role) for a in agents
        }
        self._on_status = on_status
        self._subscriptions: list[StatusSubscription] = []
        self._sequence = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> StatusSubscription:
        """Register a subscriber now; events published from here on are delivered."""
        subscription = StatusSubscription(self)
        if self._closed:
            subscription._push(None)
        else:
            self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: StatusSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, agent_id: str, state: AgentState, message: str) -> StatusEvent:
        """Record a transition for ``agent_id`` and notify subscribers.

        Raises:
            KeyError: unknown agent.
            StatusTransitionError: the move is not allowed from the current state.
        """
        current = self._statuses[agent_id]
        if state not in _TRANSITIONS[current.state]:
            raise StatusTransitionError(
                f"{agent_id}: cannot move from {current.state!r} to {state!r}"
            )
        self._statuses[agent_id] = current.model_copy(update={"state": state, "message": message})

        self._sequence += 1
        event = StatusEvent(sequence=self._sequence, agent_id=agent_id, state=state, message=message)
        logger.debug("agent_status", agent=agent_id, state=state, message=message)

        for subscription in self._subscriptions:
            subscription._push(event)
        if self._on_status is not None:
            self._on_status(event)
        return event

    def fail_working(self, message: str) -> list[StatusEvent]:
        """Move every agent still ``working`` to ``error`` after a halted run."""
        return [
            self.publish(status.agent_id, "error", message)
            for status in list(self._statuses.values())
            if status.state == "working"
        ]

    def status(self, agent_id: str) -> AgentStatus:
        return self._statuses[agent_id]

    def snapshot(self) -> list[AgentStatus]:
        return list(self._statuses.values())

    def close(self) -> None:
        """End every subscription. Further publishes still update the map."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription._push(None)
        self._subscriptions.clear()
