"""Project Lead assistant session.

Holds one conversation with the Project Lead and an avatar per agent. The
caller owns the session's lifetime; nothing here is process-global.
"""

from __future__ import annotations

import uuid

import structlog

from superarchitect.engine.status import AGENT_ROSTER
from superarchitect.errors import GenerationError
from superarchitect.generators.base import GenerationRequest, Generator
from superarchitect.models.contracts import AgentProfile, ChatMessage
from superarchitect.stages.prompts import PROJECT_LEAD_SYSTEM_INSTRUCTION, build_avatar_prompt

logger = structlog.get_logger()


class StudioSession:
    def __init__(
        self,
        generator: Generator,
        *,
        session_id: str | None = None,
        agents: tuple[AgentProfile, ...] = AGENT_ROSTER,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self.generator = generator
        self.history: list[ChatMessage] = []
        self._roles = {agent.agent_id: agent.role for agent in agents}
        self._avatars: dict[str, str] = {}

    @property
    def turns(self) -> int:
        return len(self.history) // 2

    async def ask_project_lead(self, message: str) -> str:
        """Send one user message and return the assistant's reply.

        History is only extended when the reply succeeds, so a failed turn
        can be retried without leaving an unanswered user message behind.
        """
        request = GenerationRequest(
            task="assistant",
            prompt=message,
            system_instruction=PROJECT_LEAD_SYSTEM_INSTRUCTION,
            history=list(self.history),
        )
        result = await self.generator.generate(request)
        if not result.text or not result.text.strip():
            raise GenerationError("Project Lead returned an empty reply")
        self.history.append(ChatMessage(role="user", content=message))
        self.history.append(ChatMessage(role="assistant", content=result.text))
        logger.info("assistant_turn", session_id=self.session_id, turns=self.turns)
        return result.text

    async def agent_avatar(self, agent_id: str) -> str:
        """Avatar image URI for ``agent_id``, generated once per session.

        Raises:
            KeyError: unknown agent.
        """
        if agent_id in self._avatars:
            return self._avatars[agent_id]
        role = self._roles[agent_id]
        result = await self.generator.generate(
            GenerationRequest(
                task="avatar",
                prompt=build_avatar_prompt(agent_id, role),
                modality="image",
                aspect_ratio="1:1",
            )
        )
        if not result.image_uri:
            raise GenerationError(f"No avatar returned for {agent_id}")
        self._avatars[agent_id] = result.image_uri
        return result.image_uri
