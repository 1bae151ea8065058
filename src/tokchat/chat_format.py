# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Prompt templates: turn role-tagged history into one text blob for tokenization."""

import abc
from collections.abc import Sequence

from ._models import ChatMessage


class PromptFormatter(abc.ABC):
    @abc.abstractmethod
    def format(self, messages: Sequence[ChatMessage]) -> str: ...


class Llama2Formatter(PromptFormatter):
    """``[INST] <<SYS>> ... <</SYS>> user [/INST]`` blocks; system messages merge into the first."""

    def format(self, messages: Sequence[ChatMessage]) -> str:
        system = "\n".join(m.content for m in messages if m.role == "system")
        parts: list[str] = []
        first_user = True
        for m in messages:
            if m.role == "user":
                if first_user:
                    first_user = False
                    sys_block = f"<<SYS>>\n{system}\n<</SYS>>\n" if system else ""
                    parts.append(f"[INST] {sys_block}{m.content} [/INST]\n")
                else:
                    parts.append(f"[INST] {m.content} [/INST]\n")
            elif m.role == "assistant":
                parts.append(f"{m.content}\n")
        return "".join(parts)


class ChatMLFormatter(PromptFormatter):
    """``<|im_start|>role ... <|im_end|>`` turns, ending with an open assistant turn."""

    def format(self, messages: Sequence[ChatMessage]) -> str:
        parts = [f"<|im_start|>{m.role}\n{m.content}<|im_end|>\n" for m in messages]
        parts.append("<|im_start|>assistant\n")
        return "".join(parts)


class ChatTemplateFormatter(PromptFormatter):
    """Defers to the tokenizer's own Jinja chat template."""

    def __init__(self, tokenizer):
        self.tokenizer = tokenizer

    def format(self, messages: Sequence[ChatMessage]) -> str:
        return self.tokenizer.apply_chat_template(
            [m.model_dump() for m in messages],
            tokenize=False,
            add_generation_prompt=True,
        )


TEMPLATES = ("auto", "llama2", "chatml")


def make_formatter(name: str = "auto", tokenizer=None) -> PromptFormatter:
    """Pick a formatter. ``auto`` prefers the tokenizer's chat template, else Llama-2."""
    if name == "llama2":
        return Llama2Formatter()
    if name == "chatml":
        return ChatMLFormatter()
    if name == "auto":
        if getattr(tokenizer, "chat_template", None):
            return ChatTemplateFormatter(tokenizer)
        return Llama2Formatter()
    raise ValueError(f"Unknown template '{name}'. Choose from: {', '.join(TEMPLATES)}")
