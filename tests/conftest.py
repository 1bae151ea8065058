# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
import string

import pytest

from tokchat._models import BackendParams, GenerationParams
from tokchat.backend import ModelBackend

EOS = 0
BOS = 1
SPECIALS = ["</s>", "<s>"]
CHARS = string.ascii_letters + string.digits + " .,!?[]<>/|_\n"


class FakeBackend(ModelBackend):
    """Character-level backend whose logits follow a script of next tokens.

    Each ``logits()`` call peaks at the next scripted token (``filler`` once the
    script runs out). ``fail_at`` makes the n-th ``evaluate`` call (0-based,
    counted since construction) report failure.
    """

    def __init__(self, script: str = "", end: bool = True, fail_at=None, filler: str = "x"):
        self.vocab = SPECIALS + list(CHARS)
        self._ids = {piece: i for i, piece in enumerate(self.vocab)}
        self.script = [self._ids[c] for c in script] + ([EOS] if end else [])
        self.filler = self._ids[filler]
        self.fail_at = set([fail_at] if isinstance(fail_at, int) else (fail_at or ()))
        self.evaluated: list[list[int]] = []
        self.reset_calls = 0
        self.logits_calls = 0

    def ids(self, text: str) -> list[int]:
        return [self._ids[c] for c in text]

    def load(self, model_path, params: BackendParams) -> bool:
        return True

    def tokenize(self, text, add_bos):
        tokens = [self._ids[c] for c in text if c in self._ids]
        return [BOS] + tokens if add_bos else tokens

    def detokenize(self, tokens):
        return "".join(self.vocab[t] for t in tokens if t not in (EOS, BOS))

    def reset(self):
        self.reset_calls += 1

    def evaluate(self, tokens):
        call = len(self.evaluated)
        self.evaluated.append(list(tokens))
        return call not in self.fail_at

    def logits(self):
        step = self.logits_calls
        self.logits_calls += 1
        target = self.script[step] if step < len(self.script) else self.filler
        out = [0.0] * len(self.vocab)
        out[target] = 10.0
        return out

    def vocab_size(self):
        return len(self.vocab)

    def eos_token(self):
        return EOS

    def bos_token(self):
        return BOS


@pytest.fixture
def greedy():
    return GenerationParams(
        temperature=0.0,
        top_k=0,
        top_p=1.0,
        repeat_penalty=1.0,
        max_new_tokens=32,
    )


@pytest.fixture
def make_backend():
    return FakeBackend
