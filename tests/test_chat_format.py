# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
import pytest

from tokchat._models import ChatMessage
from tokchat.chat_format import (
    ChatMLFormatter,
    ChatTemplateFormatter,
    Llama2Formatter,
    make_formatter,
)

HISTORY = [
    ChatMessage(role="system", content="Be brief."),
    ChatMessage(role="user", content="Hi"),
    ChatMessage(role="assistant", content="Hello!"),
    ChatMessage(role="system", content="Use English."),
    ChatMessage(role="user", content="Bye"),
]


class _TemplatedTokenizer:
    chat_template = "{{ messages }}"

    def __init__(self):
        self.calls = []

    def apply_chat_template(self, messages, tokenize, add_generation_prompt):
        self.calls.append((messages, tokenize, add_generation_prompt))
        return "|".join(f"{m['role']}:{m['content']}" for m in messages)


def test_llama2_merges_system_messages_into_first_turn():
    assert Llama2Formatter().format(HISTORY) == (
        "[INST] <<SYS>>\nBe brief.\nUse English.\n<</SYS>>\nHi [/INST]\n"
        "Hello!\n"
        "[INST] Bye [/INST]\n"
    )


def test_llama2_without_system():
    messages = [ChatMessage(role="user", content="Hi")]
    assert Llama2Formatter().format(messages) == "[INST] Hi [/INST]\n"


def test_chatml_opens_assistant_turn():
    out = ChatMLFormatter().format(HISTORY[:2])
    assert out == (
        "<|im_start|>system\nBe brief.<|im_end|>\n"
        "<|im_start|>user\nHi<|im_end|>\n"
        "<|im_start|>assistant\n"
    )


def test_chat_template_formatter_uses_tokenizer():
    tok = _TemplatedTokenizer()
    out = ChatTemplateFormatter(tok).format(HISTORY[:2])
    assert out == "system:Be brief.|user:Hi"
    assert tok.calls[0][1:] == (False, True)


def test_make_formatter_auto():
    assert isinstance(make_formatter("auto", _TemplatedTokenizer()), ChatTemplateFormatter)
    assert isinstance(make_formatter("auto", None), Llama2Formatter)
    assert isinstance(make_formatter("chatml"), ChatMLFormatter)
    assert isinstance(make_formatter("llama2", _TemplatedTokenizer()), Llama2Formatter)


def test_make_formatter_unknown():
    with pytest.raises(ValueError):
        make_formatter("alpaca")
