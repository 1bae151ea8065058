# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Interactive line-oriented chat: read a user line, stream the reply, repeat."""

import os
import signal
import subprocess
import sys
import tempfile
import threading
from contextlib import contextmanager

from prompt_toolkit import prompt as better_input
from prompt_toolkit.key_binding import KeyBindings

from tokchat._models import BackendParams, GenerationParams
from tokchat.backend import create_backend
from tokchat.chat_format import make_formatter
from tokchat.errors import BackendLoadError, PromptIngestionError
from tokchat.model_store import resolve_model_dir
from tokchat.sampling import make_rng
from tokchat.session import ChatSession
from tokchat.utils import load_default_params, load_stop_tokens

QUIT_COMMANDS = ("q", "/exit")


def _make_key_bindings():
    """Create key bindings for the chat prompt. Ctrl+G opens $EDITOR."""
    kb = KeyBindings()

    @kb.add("c-g")
    def _open_editor(event):
        editor = os.environ.get("VISUAL") or os.environ.get("EDITOR", "vi")
        buf = event.app.current_buffer
        with tempfile.NamedTemporaryFile(suffix=".txt", mode="w+", delete=False) as f:
            f.write(buf.text)
            tmp_path = f.name
        try:
            subprocess.call([editor, tmp_path])
            with open(tmp_path) as f:
                text = f.read()
            buf.text = text
            buf.cursor_position = len(text)
        finally:
            os.unlink(tmp_path)

    return kb


def _make_reader():
    """Return a zero-arg callable yielding the next user line; raises EOFError at end of input."""
    if sys.stdin.isatty():
        kb = _make_key_bindings()
        return lambda: better_input("> ", key_bindings=kb)

    def _read():
        line = sys.stdin.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n")

    return _read


@contextmanager
def _cancel_on_interrupt():
    """While active, Ctrl+C sets the yielded event instead of raising KeyboardInterrupt."""
    cancelled = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancelled.set())
    try:
        yield cancelled
    finally:
        signal.signal(signal.SIGINT, previous)


def _print_piece(text: str) -> None:
    print(text, end="", flush=True)


def build_generation_params(model_dir: str, overrides: dict) -> GenerationParams:
    """Built-in defaults < generation_config.json < explicitly passed overrides."""
    values = load_default_params(model_dir)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return GenerationParams(**values)


def run_chat_loop(session: ChatSession, model_name: str, read_line=None) -> None:
    """Drive *session* until a quit directive or end of input."""
    read_line = read_line or _make_reader()
    print(f"Talk to {model_name} ('q' or '/exit' to quit, '/new' for new conversation, Ctrl+G for editor)")
    while True:
        try:
            query = read_line()
        except (EOFError, KeyboardInterrupt):
            break

        command = query.strip()
        if command in QUIT_COMMANDS:
            break
        if command == "/new":
            session.reset()
            print("Starting new conversation.")
            continue
        if not command:
            continue

        print("Assistant> ", end="", flush=True)
        with _cancel_on_interrupt() as cancelled:
            try:
                result = session.send(query, on_text=_print_piece, should_stop=cancelled.is_set)
            except PromptIngestionError as e:
                print()
                print(f"Error: {e}", file=sys.stderr)
                continue
        print()

        if result.error is not None:
            print(f"Error: {result.error}", file=sys.stderr)
        elif result.finish_reason == "cancelled":
            print("[interrupted]", file=sys.stderr)


def main(args) -> None:
    """Load the model named by *args* and start the interactive loop."""
    model_dir = resolve_model_dir(args.model)

    backend = create_backend(args.backend, trust_remote_code=args.trust_remote_code)
    backend_params = BackendParams(context_size=args.ctx, threads=args.threads, seed=args.seed)
    if not backend.load(model_dir, backend_params):
        raise BackendLoadError(f"Failed to load model: {model_dir}")

    params = build_generation_params(
        model_dir,
        {
            "temperature": args.temp,
            "top_k": args.top_k,
            "top_p": args.top_p,
            "repeat_penalty": args.repeat_penalty,
            "frequency_penalty": args.freq_penalty,
            "presence_penalty": args.presence_penalty,
            "max_new_tokens": args.max_tokens,
        },
    )

    session = ChatSession(
        backend,
        make_formatter(args.template, backend.tokenizer),
        params,
        rng=make_rng(args.seed),
        system_prompt=args.system,
        window_capacity=args.window,
        chunk_size=args.chunk_size,
        context_size=backend_params.context_size,
        stop_tokens=load_stop_tokens(model_dir),
    )
    run_chat_loop(session, os.path.basename(os.path.normpath(model_dir)))
