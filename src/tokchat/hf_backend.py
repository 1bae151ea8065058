# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Model backend over a Hugging Face ``transformers`` causal LM, run on CPU with a KV cache."""

import logging
import os
from collections.abc import Sequence

import torch
from transformers import AutoModelForCausalLM

from ._models import BackendParams
from .backend import ModelBackend
from .utils import load_tokenizer

logger = logging.getLogger(__name__)


class TransformersBackend(ModelBackend):
    def __init__(self, trust_remote_code: bool = False):
        self.trust_remote_code = trust_remote_code
        self.model = None
        self._tokenizer = None
        self._context_size = 0
        self._past = None
        self._pos = 0
        self._logits: list[float] | None = None
        self._vocab_size = 0
        self._eos: int | None = None
        self._bos: int | None = None

    @property
    def tokenizer(self):
        return self._tokenizer

    def load(self, model_path: str, params: BackendParams) -> bool:
        if not os.path.isdir(model_path):
            logger.error("Model directory not found: %s", model_path)
            return False
        if params.threads:
            torch.set_num_threads(params.threads)
        if params.seed:
            torch.manual_seed(params.seed)
        try:
            self._tokenizer = load_tokenizer(model_path, trust_remote_code=self.trust_remote_code)
            self.model = AutoModelForCausalLM.from_pretrained(
                model_path,
                torch_dtype="auto",
                trust_remote_code=self.trust_remote_code,
            )
        except (OSError, ValueError) as e:
            logger.error("Failed to load model from %s: %s", model_path, e)
            return False
        self.model.eval()

        self._context_size = params.context_size
        self._vocab_size = self.model.config.vocab_size
        self._eos = self._tokenizer.eos_token_id
        if self._eos is None:
            self._eos = self.model.config.eos_token_id
            if isinstance(self._eos, list):
                self._eos = self._eos[0]
        if self._eos is None:
            logger.error("Model at %s defines no end-of-sequence token", model_path)
            return False
        self._bos = self._tokenizer.bos_token_id
        logger.debug("Loaded %s (vocab=%d, eos=%s, bos=%s)", model_path, self._vocab_size, self._eos, self._bos)
        return True

    def tokenize(self, text: str, add_bos: bool) -> list[int]:
        tokens = self._tokenizer.encode(text, add_special_tokens=False)
        if add_bos and self._bos is not None and (not tokens or tokens[0] != self._bos):
            tokens.insert(0, self._bos)
        return tokens

    def detokenize(self, tokens: Sequence[int]) -> str:
        return self._tokenizer.decode(list(tokens), skip_special_tokens=True)

    def reset(self) -> None:
        self._past = None
        self._pos = 0
        self._logits = None

    def evaluate(self, tokens: Sequence[int]) -> bool:
        if not tokens:
            return True
        if self._pos + len(tokens) > self._context_size:
            logger.error(
                "Context overflow: %d + %d tokens exceeds %d",
                self._pos,
                len(tokens),
                self._context_size,
            )
            return False
        input_ids = torch.tensor([list(tokens)], dtype=torch.long)
        try:
            with torch.inference_mode():
                outputs = self.model(
                    input_ids=input_ids,
                    past_key_values=self._past,
                    use_cache=True,
                )
        except (RuntimeError, IndexError, ValueError) as e:
            logger.error("Forward pass failed at position %d: %s", self._pos, e)
            return False
        self._past = outputs.past_key_values
        self._pos += len(tokens)
        self._logits = outputs.logits[0, -1].float().tolist()
        return True

    def logits(self) -> list[float]:
        if self._logits is None:
            raise RuntimeError("logits requested before any tokens were evaluated")
        return self._logits

    def vocab_size(self) -> int:
        return self._vocab_size

    def eos_token(self) -> int:
        return self._eos

    def bos_token(self) -> int | None:
        return self._bos
