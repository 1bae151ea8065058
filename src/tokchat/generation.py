# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""
Generation loop: prompt ingestion followed by token-by-token decoding.

One ``GenerationLoop`` drives one conversation. The backend, the recent-token
window and the random source are owned by the loop's caller and mutated here
in strict sequence; nothing runs concurrently.
"""

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import numpy as np

from ._models import GenerationParams
from .backend import ModelBackend
from .context_window import RecentTokenWindow
from .errors import GenerationStepError, PromptIngestionError
from .sampling import make_rng, sample_next_token
from .token_utils import IncrementalDecoder

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 512


class GenerationState(enum.Enum):
    IDLE = "idle"
    PROMPT_INGESTION = "prompt_ingestion"
    DECODING = "decoding"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class GenerationResult:
    state: GenerationState
    finish_reason: str  # "stop" | "length" | "error" | "cancelled"
    text: str = ""
    tokens: list[int] = field(default_factory=list)
    prompt_tokens: int = 0
    error: GenerationStepError | None = None


class GenerationLoop:
    """Feeds a prompt to the backend and streams sampled tokens back out."""

    def __init__(
        self,
        backend: ModelBackend,
        window: RecentTokenWindow,
        rng: np.random.Generator | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        stop_tokens: Sequence[int] = (),
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.backend = backend
        self.window = window
        self.rng = rng if rng is not None else make_rng()
        self.chunk_size = chunk_size
        self.stop_tokens = {backend.eos_token(), *stop_tokens}
        self.decoder = IncrementalDecoder(backend)
        self.state = GenerationState.IDLE

    def ingest_prompt(self, prompt_tokens: Sequence[int]) -> None:
        """Evaluate *prompt_tokens* chunk by chunk, in order.

        Raises ``PromptIngestionError`` on the first chunk the backend rejects;
        tokens of that chunk are not recorded in the window.
        """
        self.state = GenerationState.PROMPT_INGESTION
        for index, start in enumerate(range(0, len(prompt_tokens), self.chunk_size)):
            chunk = list(prompt_tokens[start : start + self.chunk_size])
            logger.debug("Evaluating prompt chunk %d (%d tokens)", index, len(chunk))
            if not self.backend.evaluate(chunk):
                self.state = GenerationState.ABORTED
                raise PromptIngestionError(index)
            self.window.extend(chunk)

    def run(
        self,
        prompt_tokens: Sequence[int],
        params: GenerationParams,
        on_text: Callable[[str], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
        context_size: int | None = None,
    ) -> GenerationResult:
        """Run one turn: reset, ingest *prompt_tokens*, then decode.

        Text pieces are passed to *on_text* as soon as each token is accepted.
        *should_stop* is polled between decoding steps only. When
        *context_size* is given the decoding budget is capped so prompt plus
        reply never exceed it.
        """
        self.backend.reset()
        self.ingest_prompt(prompt_tokens)

        budget = params.max_new_tokens
        if context_size is not None:
            budget = max(0, min(budget, context_size - len(prompt_tokens)))

        self.state = GenerationState.DECODING
        self.decoder.reset()
        tokens: list[int] = []
        pieces: list[str] = []
        finish_reason = "length"
        error = None

        for _ in range(budget):
            if should_stop is not None and should_stop():
                finish_reason = "cancelled"
                break

            token = sample_next_token(
                self.backend.logits(), self.window.contents(), params, self.rng
            )
            if token in self.stop_tokens:
                finish_reason = "stop"
                break

            tokens.append(token)
            piece = self.decoder.decode(token)
            pieces.append(piece)
            if on_text is not None:
                on_text(piece)
            self.window.push(token)

            if not self.backend.evaluate([token]):
                error = GenerationStepError(token, "".join(pieces))
                finish_reason = "error"
                logger.warning("%s; keeping %d generated tokens", error, len(tokens))
                break

        if finish_reason in ("error", "cancelled"):
            self.state = GenerationState.ABORTED
        else:
            self.state = GenerationState.COMPLETED
        logger.debug("Turn finished: %s (%d tokens)", finish_reason, len(tokens))

        return GenerationResult(
            state=self.state,
            finish_reason=finish_reason,
            text="".join(pieces),
            tokens=tokens,
            prompt_tokens=len(prompt_tokens),
            error=error,
        )
