"""Tests for the in-memory status bus."""

from __future__ import annotations

import asyncio

import pytest

from superarchitect.engine.status import (
    AGENT_ROSTER,
    CONCEPT_ARCHITECT,
    PROJECT_LEAD,
    VISUAL_SYNTHESIS,
    StatusBus,
)
from superarchitect.errors import StatusTransitionError


class TestInitialState:
    def test_every_agent_starts_pending(self):
        bus = StatusBus()
        snapshot = bus.snapshot()
        assert [s.agent_id for s in snapshot] == [a.agent_id for a in AGENT_ROSTER]
        assert all(s.state == "pending" for s in snapshot)
        assert all(s.message == "Awaiting brief" for s in snapshot)

    def test_roster_has_eight_agents(self):
        assert len(AGENT_ROSTER) == 8
        assert len({a.agent_id for a in AGENT_ROSTER}) == 8


class TestTransitions:
    """Statuses only move forward: pending -> working -> complete | error."""

    def test_forward_path(self):
        bus = StatusBus()
        bus.publish(PROJECT_LEAD, "working", "Analyzing brief...")
        bus.publish(PROJECT_LEAD, "working", "Still going")
        bus.publish(PROJECT_LEAD, "complete", "Done")
        status = bus.status(PROJECT_LEAD)
        assert status.state == "complete"
        assert status.message == "Done"

    def test_cannot_skip_working(self):
        bus = StatusBus()
        with pytest.raises(StatusTransitionError):
            bus.publish(PROJECT_LEAD, "complete", "too early")

    @pytest.mark.parametrize("terminal", ["complete", "error"])
    @pytest.mark.parametrize("after", ["pending", "working", "complete", "error"])
    def test_terminal_states_are_final(self, terminal, after):
        bus = StatusBus()
        bus.publish(PROJECT_LEAD, "working", "go")
        bus.publish(PROJECT_LEAD, terminal, "end")
        with pytest.raises(StatusTransitionError):
            bus.publish(PROJECT_LEAD, after, "again")
        assert bus.status(PROJECT_LEAD).state == terminal

    def test_never_returns_to_pending(self):
        bus = StatusBus()
        bus.publish(PROJECT_LEAD, "working", "go")
        with pytest.raises(StatusTransitionError):
            bus.publish(PROJECT_LEAD, "pending", "reset")

    def test_unknown_agent(self):
        with pytest.raises(KeyError):
            StatusBus().publish("Ghost Agent", "working", "boo")


class TestEvents:
    def test_sequence_numbers_increase(self):
        bus = StatusBus()
        first = bus.publish(PROJECT_LEAD, "working", "a")
        second = bus.publish(CONCEPT_ARCHITECT, "working", "b")
        assert (first.sequence, second.sequence) == (1, 2)

    def test_callback_receives_each_event(self):
        seen = []
        bus = StatusBus(on_status=seen.append)
        bus.publish(PROJECT_LEAD, "working", "a")
        bus.publish(PROJECT_LEAD, "complete", "b")
        assert [(e.agent_id, e.state, e.message) for e in seen] == [
            (PROJECT_LEAD, "working", "a"),
            (PROJECT_LEAD, "complete", "b"),
        ]

    @pytest.mark.asyncio
    async def test_subscription_sees_events_until_close(self):
        bus = StatusBus()
        subscription = bus.subscribe()
        bus.publish(PROJECT_LEAD, "working", "a")
        bus.publish(PROJECT_LEAD, "complete", "b")
        bus.close()
        events = await subscription.collect()
        assert [e.state for e in events] == ["working", "complete"]

    @pytest.mark.asyncio
    async def test_multiple_subscribers_each_get_everything(self):
        bus = StatusBus()
        first, second = bus.subscribe(), bus.subscribe()
        bus.publish(VISUAL_SYNTHESIS, "working", "go")
        bus.close()
        assert len(await first.collect()) == 1
        assert len(await second.collect()) == 1

    @pytest.mark.asyncio
    async def test_late_subscriber_misses_earlier_events(self):
        bus = StatusBus()
        bus.publish(PROJECT_LEAD, "working", "before")
        subscription = bus.subscribe()
        bus.publish(PROJECT_LEAD, "complete", "after")
        bus.close()
        assert [e.message for e in await subscription.collect()] == ["after"]

    @pytest.mark.asyncio
    async def test_subscribe_after_close_ends_immediately(self):
        bus = StatusBus()
        bus.close()
        assert bus.closed
        events = await asyncio.wait_for(bus.subscribe().collect(), timeout=1)
        assert events == []

    @pytest.mark.asyncio
    async def test_consumer_waits_for_live_events(self):
        bus = StatusBus()
        subscription = bus.subscribe()

        async def producer() -> None:
            await asyncio.sleep(0.01)
            bus.publish(PROJECT_LEAD, "working", "late")
            bus.close()

        events, _ = await asyncio.gather(subscription.collect(), producer())
        assert [e.message for e in events] == ["late"]


class TestFailWorking:
    def test_moves_only_working_agents_to_error(self):
        bus = StatusBus()
        bus.publish(PROJECT_LEAD, "working", "a")
        bus.publish(PROJECT_LEAD, "complete", "b")
        bus.publish(CONCEPT_ARCHITECT, "working", "c")
        events = bus.fail_working("Failed")
        assert [e.agent_id for e in events] == [CONCEPT_ARCHITECT]
        assert bus.status(CONCEPT_ARCHITECT).state == "error"
        assert bus.status(PROJECT_LEAD).state == "complete"
        assert bus.status(VISUAL_SYNTHESIS).state == "pending"
