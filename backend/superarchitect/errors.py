"""Error taxonomy for the design pipeline.

Only ``FatalStageError``, ``ConfigurationError`` and ``BriefPreconditionError``
cross the pipeline boundary. ``ItemError`` and ``GenerationError`` are absorbed
inside stages and turned into placeholders or missing analysis fields.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures that end a pipeline run."""

    def __init__(self, message: str, *, agent_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.agent_id = agent_id


class FatalStageError(PipelineError):
    """A stage could not produce usable output and the run must halt."""


class ConfigurationError(PipelineError):
    """Invalid pipeline setup, raised before any work starts."""


class BriefPreconditionError(PipelineError):
    """The brief is structurally incomplete (e.g. no sub-spaces selected)."""


class ItemError(Exception):
    """Failure marker for one worker pool slot."""

    def __init__(self, index: int, cause: BaseException) -> None:
        super().__init__(f"item {index} failed: {type(cause).__name__}: {cause}")
        self.index = index
        self.cause = cause


class GenerationError(Exception):
    """The external generator failed to produce an artifact."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class StructuredOutputError(ValueError):
    """A generator reply did not match its expected schema."""


class StatusTransitionError(ValueError):
    """An agent status update would move backwards through its lifecycle."""
