"""The external generator contract.

Every stage ultimately calls ``Generator.generate`` once per unit of work.
The pipeline only distinguishes a returned ``GenerationResult`` from a raised
exception; retry, rate limiting and auth belong to the implementation.
"""

from __future__ import annotations

from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel

from superarchitect.models.contracts import AspectRatio, ChatMessage


class GenerationRequest(BaseModel):
    task: str
    prompt: str
    modality: Literal["text", "image"] = "text"
    system_instruction: str | None = None
    temperature: float | None = None
    json_output: bool = False
    aspect_ratio: AspectRatio | None = None
    seed: int | None = None
    history: list[ChatMessage] = []

    def cache_key(self) -> list[str]:
        """Stable key parts for the response cache."""
        return [
            self.task,
            self.modality,
            self.prompt,
            self.system_instruction or "",
            "" if self.temperature is None else str(self.temperature),
            str(self.json_output),
            self.aspect_ratio or "",
            "" if self.seed is None else str(self.seed),
            *(f"{m.role}:{m.content}" for m in self.history),
        ]


class GenerationResult(BaseModel):
    text: str | None = None
    image_uri: str | None = None


@runtime_checkable
class Generator(Protocol):
    async def generate(self, request: GenerationRequest) -> GenerationResult: ...
