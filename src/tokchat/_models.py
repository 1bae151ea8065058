# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Pydantic models for conversation messages and generation settings."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class GenerationParams(BaseModel):
    """Per-turn sampling configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    repeat_penalty: float = 1.1
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    max_new_tokens: int = 512

    @field_validator("temperature")
    @classmethod
    def _check_temperature(cls, v: float) -> float:
        if v < 0:
            raise ValueError("temperature must be >= 0")
        return v

    @field_validator("top_k")
    @classmethod
    def _check_top_k(cls, v: int) -> int:
        if v < 0:
            raise ValueError("top_k must be >= 0")
        return v

    @field_validator("top_p")
    @classmethod
    def _check_top_p(cls, v: float) -> float:
        if not (0 < v <= 1.0):
            raise ValueError("top_p must be in (0, 1]")
        return v

    @field_validator("repeat_penalty")
    @classmethod
    def _check_repeat_penalty(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("repeat_penalty must be >= 1")
        return v

    @field_validator("max_new_tokens")
    @classmethod
    def _check_max_new_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_new_tokens must be >= 1")
        return v


class BackendParams(BaseModel):
    """Settings handed to ``ModelBackend.load``."""

    model_config = ConfigDict(frozen=True)

    context_size: int = 4096
    threads: int = 8
    seed: int = 0  # 0 -> non-deterministic

    @field_validator("context_size")
    @classmethod
    def _check_context_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("context_size must be >= 1")
        return v

    @field_validator("threads")
    @classmethod
    def _check_threads(cls, v: int) -> int:
        if v < 0:
            raise ValueError("threads must be >= 0")
        return v

    @field_validator("seed")
    @classmethod
    def _check_seed(cls, v: int) -> int:
        if v < 0:
            raise ValueError("seed must be >= 0")
        return v
