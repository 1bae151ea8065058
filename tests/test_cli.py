# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
import json

import pytest

from tokchat.chat_format import Llama2Formatter
from tokchat.cli import build_parser, main
from tokchat.inference import build_generation_params, run_chat_loop
from tokchat.sampling import make_rng
from tokchat.session import ChatSession
from tokchat.utils import load_default_params, load_stop_tokens


def _write_gen_config(path, **values):
    (path / "generation_config.json").write_text(json.dumps(values), encoding="utf-8")


def test_chat_arguments():
    args = build_parser().parse_args(
        ["chat", "models/tiny", "--temp", "0", "--top-k", "5", "--seed", "9", "--ctx", "1024"]
    )
    assert args.model == "models/tiny"
    assert args.temp == 0.0
    assert args.top_k == 5
    assert args.seed == 9
    assert args.ctx == 1024
    assert args.top_p is None
    assert args.backend == "transformers"
    assert args.window == 2048
    assert args.chunk_size == 512


def test_no_command_exits():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 1


def test_load_error_exits_with_message(tmp_path, capsys):
    missing = tmp_path / "missing"
    with pytest.raises(SystemExit) as excinfo:
        main(["chat", str(missing), "--backend", "transformers"])
    assert excinfo.value.code == 1
    assert "Error: Failed to load model" in capsys.readouterr().err


def test_parameter_layering(tmp_path):
    _write_gen_config(tmp_path, temperature=0.3, top_p=0.8, repetition_penalty=1.3, do_sample=True)

    params = build_generation_params(str(tmp_path), {"temperature": 0.9, "top_k": None})

    assert params.temperature == 0.9  # flag beats generation_config.json
    assert params.top_p == 0.8  # generation_config.json beats default
    assert params.repeat_penalty == 1.3
    assert params.top_k == 40  # built-in default


def test_invalid_override_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        build_generation_params(str(tmp_path), {"repeat_penalty": 0.5})


def test_default_params_without_config(tmp_path):
    assert load_default_params(str(tmp_path)) == {}


@pytest.mark.parametrize("eos, expected", [(2, (2,)), ([2, 32000], (2, 32000)), (None, ())])
def test_stop_tokens_from_generation_config(tmp_path, eos, expected):
    _write_gen_config(tmp_path, eos_token_id=eos)
    assert load_stop_tokens(str(tmp_path)) == expected


def test_chat_loop_commands(make_backend, greedy, capsys):
    backend = make_backend("yes")
    session = ChatSession(backend, Llama2Formatter(), greedy, rng=make_rng(1))
    lines = iter(["hello", "   ", "/new", "again", "/exit", "never read"])

    run_chat_loop(session, "tiny", read_line=lambda: next(lines))

    out = capsys.readouterr().out
    assert "Assistant> yes" in out
    assert "Starting new conversation." in out
    # /new cleared the first exchange; the second reply hit the exhausted script
    assert [m.role for m in session.messages] == ["system", "user", "assistant"]
    assert session.messages[1].content == "again"


def test_chat_loop_stops_at_end_of_input(make_backend, greedy):
    session = ChatSession(make_backend(""), Llama2Formatter(), greedy, rng=make_rng(1))

    def _eof():
        raise EOFError

    run_chat_loop(session, "tiny", read_line=_eof)
    assert [m.role for m in session.messages] == ["system"]


def test_chat_loop_reports_ingestion_failure(make_backend, greedy, capsys):
    backend = make_backend("", fail_at=0)
    session = ChatSession(backend, Llama2Formatter(), greedy, rng=make_rng(1))
    lines = iter(["hello", "q"])

    run_chat_loop(session, "tiny", read_line=lambda: next(lines))

    assert "Prompt evaluation failed on chunk 0" in capsys.readouterr().err
    assert [m.role for m in session.messages] == ["system", "user"]
