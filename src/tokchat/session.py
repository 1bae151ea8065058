# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Conversation state for one interactive session."""

import logging
from collections.abc import Callable

import numpy as np

from ._models import ChatMessage, GenerationParams
from .backend import ModelBackend
from .chat_format import PromptFormatter
from .context_window import DEFAULT_WINDOW_CAPACITY, RecentTokenWindow
from .generation import DEFAULT_CHUNK_SIZE, GenerationLoop, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class ChatSession:
    """Owns the message history and the recent-token window across turns.

    Only the backend's per-turn state is reset between turns; history and the
    window persist until ``reset`` starts a new conversation.
    """

    def __init__(
        self,
        backend: ModelBackend,
        formatter: PromptFormatter,
        params: GenerationParams,
        rng: np.random.Generator | None = None,
        system_prompt: str | None = DEFAULT_SYSTEM_PROMPT,
        window_capacity: int = DEFAULT_WINDOW_CAPACITY,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        context_size: int | None = None,
        stop_tokens: tuple[int, ...] = (),
    ):
        self.backend = backend
        self.formatter = formatter
        self.params = params
        self.system_prompt = system_prompt
        self.context_size = context_size
        self.window = RecentTokenWindow(window_capacity)
        self.loop = GenerationLoop(
            backend,
            self.window,
            rng=rng,
            chunk_size=chunk_size,
            stop_tokens=stop_tokens,
        )
        self.messages: list[ChatMessage] = []
        self.reset()

    def reset(self) -> None:
        """Start a new conversation: history back to the system prompt, window cleared."""
        self.messages = []
        if self.system_prompt:
            self.messages.append(ChatMessage(role="system", content=self.system_prompt))
        self.window.clear()

    def _encode(self, messages: list[ChatMessage]) -> list[int]:
        return self.backend.tokenize(self.formatter.format(messages), True)

    def _prompt_tokens(self) -> list[int]:
        """Tokenize the history, leaving out the oldest whole turns if it overflows.

        History itself is never modified; only the prompt sent to the backend
        is shortened. System messages and the newest turn are always kept.
        """
        tokens = self._encode(self.messages)
        if self.context_size is None or len(tokens) < self.context_size:
            return tokens

        # A turn starts at a user message and runs until the next one
        turn_starts = [i for i, m in enumerate(self.messages) if m.role == "user"]
        dropped = 0
        for keep_from in turn_starts[1:]:
            dropped += 1
            kept = [
                m for i, m in enumerate(self.messages)
                if m.role == "system" or i >= keep_from
            ]
            tokens = self._encode(kept)
            if len(tokens) < self.context_size:
                break
        if dropped:
            logger.warning(
                "Context window full (%d tokens); left %d earlier turn(s) out of the prompt",
                self.context_size,
                dropped,
            )
        return tokens

    def send(
        self,
        text: str,
        on_text: Callable[[str], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> GenerationResult:
        """Append the user's message, generate a reply and commit it to history.

        ``PromptIngestionError`` propagates with the user message kept and no
        assistant message added. Any other outcome, including an aborted or
        cancelled reply, commits the text produced so far.
        """
        self.messages.append(ChatMessage(role="user", content=text))
        prompt_tokens = self._prompt_tokens()

        result = self.loop.run(
            prompt_tokens,
            self.params,
            on_text=on_text,
            should_stop=should_stop,
            context_size=self.context_size,
        )
        self.messages.append(ChatMessage(role="assistant", content=result.text))
        return result
