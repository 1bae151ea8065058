# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
import logging

from tokchat import utils


class _AutoTokenizer:
    @staticmethod
    def from_pretrained(path, trust_remote_code=False):
        return ("auto", path, trust_remote_code)


def _custom_tokenizer_dir(path):
    (path / "tokenizer_config.json").write_text('{"tokenizer_class": "DemoTokenizer"}', encoding="utf-8")
    (path / "tokenization_demo.py").write_text(
        "class DemoTokenizer:\n"
        "    @classmethod\n"
        "    def from_pretrained(cls, path):\n"
        "        return ('custom', path)\n",
        encoding="utf-8",
    )
    return str(path)


def test_tokenizer_defaults_to_auto(tmp_path, monkeypatch):
    monkeypatch.setattr(utils, "AutoTokenizer", _AutoTokenizer)
    assert utils.load_tokenizer(str(tmp_path)) == ("auto", str(tmp_path), False)


def test_custom_tokenizer_loaded_when_trusted(tmp_path, monkeypatch):
    monkeypatch.setattr(utils, "AutoTokenizer", _AutoTokenizer)
    model_dir = _custom_tokenizer_dir(tmp_path)
    assert utils.load_tokenizer(model_dir, trust_remote_code=True) == ("custom", model_dir)


def test_custom_tokenizer_skipped_when_untrusted(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(utils, "AutoTokenizer", _AutoTokenizer)
    model_dir = _custom_tokenizer_dir(tmp_path)

    with caplog.at_level(logging.WARNING, logger="tokchat.utils"):
        tokenizer = utils.load_tokenizer(model_dir)

    assert tokenizer == ("auto", model_dir, False)
    assert "--trust-remote-code" in caplog.text
