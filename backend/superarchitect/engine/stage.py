"""Stage: one named phase of the pipeline bound to one agent identity."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

import structlog

from superarchitect.engine.status import StatusBus
from superarchitect.errors import FatalStageError

logger = structlog.get_logger()

InT = TypeVar("InT")
OutT = TypeVar("OutT")


class Stage(ABC, Generic[InT, OutT]):
    """Base class wrapping a stage body with status reporting.

    Subclasses set ``agent_id`` and implement ``execute``. ``run`` emits
    ``working`` on entry and ``complete`` on return. Any exception escaping
    ``execute`` is reported as ``error`` and re-raised as ``FatalStageError``;
    per-item failures must be absorbed inside ``execute``.
    """

    agent_id: str = ""

    def start_message(self, data: InT) -> str:
        return "Starting."

    def summary_message(self, result: OutT) -> str:
        return "Done."

    @abstractmethod
    async def execute(self, data: InT, bus: StatusBus) -> OutT:
        ...

    async def run(self, data: InT, bus: StatusBus) -> OutT:
        bus.publish(self.agent_id, "working", self.start_message(data))
        logger.info("stage_start", agent=self.agent_id)
        try:
            result = await self.execute(data, bus)
        except FatalStageError as exc:
            exc.agent_id = exc.agent_id or self.agent_id
            bus.publish(self.agent_id, "error", exc.message)
            logger.error("stage_failed", agent=self.agent_id, error=exc.message)
            raise
        except Exception as exc:
            message = f"{self.agent_id} failed unexpectedly: {type(exc).__name__}: {exc}"
            bus.publish(self.agent_id, "error", message)
            logger.exception("stage_crashed", agent=self.agent_id)
            raise FatalStageError(message, agent_id=self.agent_id) from exc
        bus.publish(self.agent_id, "complete", self.summary_message(result))
        logger.info("stage_complete", agent=self.agent_id)
        return result
