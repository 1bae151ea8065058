# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Model backend capability interface and the registry of concrete backends."""

import abc
from collections.abc import Sequence

from ._models import BackendParams


class ModelBackend(abc.ABC):
    """Opaque autoregressive model: tokens in, next-position logits out.

    ``evaluate`` appends tokens at sequential positions of the backend's
    internal context and refreshes ``logits`` for the last supplied token.
    ``reset`` clears only that per-turn computation state.
    """

    @abc.abstractmethod
    def load(self, model_path: str, params: BackendParams) -> bool: ...

    @abc.abstractmethod
    def tokenize(self, text: str, add_bos: bool) -> list[int]: ...

    @abc.abstractmethod
    def detokenize(self, tokens: Sequence[int]) -> str: ...

    @abc.abstractmethod
    def reset(self) -> None: ...

    @abc.abstractmethod
    def evaluate(self, tokens: Sequence[int]) -> bool: ...

    @abc.abstractmethod
    def logits(self) -> Sequence[float]: ...

    @abc.abstractmethod
    def vocab_size(self) -> int: ...

    @abc.abstractmethod
    def eos_token(self) -> int: ...

    def bos_token(self) -> int | None:
        """Leading marker token, or None when the model does not use one."""
        return None

    @property
    def tokenizer(self):
        """Underlying tokenizer object, if the backend has one (used for chat templates)."""
        return None


def _transformers_backend():
    from .hf_backend import TransformersBackend

    return TransformersBackend


# name -> zero-arg factory returning the backend class (imports stay lazy)
BACKENDS = {
    "transformers": _transformers_backend,
}


def create_backend(name: str, **kwargs) -> ModelBackend:
    """Instantiate the backend registered under *name*, passing *kwargs* to its constructor."""
    try:
        factory = BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown backend '{name}'. Available: {', '.join(sorted(BACKENDS))}"
        ) from None
    return factory()(**kwargs)
