# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Shared helpers for reading a model directory: tokenizer and generation defaults."""

import importlib.util
import json
import logging
import os

from transformers import AutoTokenizer

logger = logging.getLogger(__name__)

_BUILTIN_TOKENIZER_CLASSES = ("", "PreTrainedTokenizer", "PreTrainedTokenizerFast")


def _read_json(path: str) -> dict:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}


def _custom_tokenizer_class(model_path: str, trust_remote_code: bool):
    """The tokenizer class shipped as ``tokenization_*.py`` in *model_path*, if any.

    Code from the model directory is only executed when *trust_remote_code*
    is set; otherwise a warning is logged and ``None`` returned.
    """
    class_name = _read_json(os.path.join(model_path, "tokenizer_config.json")).get("tokenizer_class") or ""
    if class_name in _BUILTIN_TOKENIZER_CLASSES:
        return None

    module_name = f"tokenization_{class_name.lower().replace('tokenizer', '')}"
    source = os.path.join(model_path, f"{module_name}.py")
    if not os.path.exists(source):
        return None
    if not trust_remote_code:
        logger.warning(
            "%s ships custom tokenizer code (%s.py); pass --trust-remote-code to use it. "
            "Falling back to AutoTokenizer.",
            model_path,
            module_name,
        )
        return None

    spec = importlib.util.spec_from_file_location(module_name, source)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    cls = getattr(module, class_name, None)
    if cls is None:
        logger.warning("%s.py defines no class %s; falling back to AutoTokenizer", module_name, class_name)
    return cls


def load_tokenizer(model_path: str, trust_remote_code: bool = False):
    """Tokenizer for the model in *model_path*, preferring a bundled custom class."""
    cls = _custom_tokenizer_class(model_path, trust_remote_code)
    if cls is not None:
        logger.debug("Using custom tokenizer %s", cls.__name__)
        return cls.from_pretrained(model_path)
    return AutoTokenizer.from_pretrained(model_path, trust_remote_code=trust_remote_code)


def _read_generation_config(model_dir: str) -> dict:
    return _read_json(os.path.join(model_dir, "generation_config.json"))


# generation_config.json key -> GenerationParams field
_GEN_CONFIG_KEYS = {
    "temperature": "temperature",
    "top_k": "top_k",
    "top_p": "top_p",
    "repetition_penalty": "repeat_penalty",
    "max_new_tokens": "max_new_tokens",
}


def load_default_params(model_dir: str) -> dict:
    """Sampling overrides found in the model's generation_config.json (may be empty)."""
    gen_config = _read_generation_config(model_dir)
    return {
        field: gen_config[key]
        for key, field in _GEN_CONFIG_KEYS.items()
        if gen_config.get(key) is not None
    }


def load_stop_tokens(model_dir: str) -> tuple[int, ...]:
    """All ``eos_token_id`` entries from generation_config.json."""
    eos = _read_generation_config(model_dir).get("eos_token_id")
    if eos is None:
        return ()
    if isinstance(eos, int):
        return (eos,)
    return tuple(int(t) for t in eos)
