# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Error hierarchy for backend loading and generation failures."""


class TokchatError(RuntimeError):
    """Base class for all tokchat runtime failures."""


class BackendLoadError(TokchatError):
    """Raised when the model backend cannot be initialized."""


class PromptIngestionError(TokchatError):
    """Raised when a prompt chunk fails to evaluate; no tokens were sampled."""

    def __init__(self, chunk_index: int, message: str | None = None):
        self.chunk_index = chunk_index
        super().__init__(message or f"Prompt evaluation failed on chunk {chunk_index}")


class GenerationStepError(TokchatError):
    """Evaluation of a freshly sampled token failed mid-reply."""

    def __init__(self, token: int, partial_text: str):
        self.token = token
        self.partial_text = partial_text
        super().__init__(f"Evaluation failed while feeding back token {token}")
