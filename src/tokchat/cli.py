# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Unified CLI entry point for tokchat."""

import argparse
import logging
import sys

from tokchat.backend import BACKENDS
from tokchat.chat_format import TEMPLATES
from tokchat.context_window import DEFAULT_WINDOW_CAPACITY
from tokchat.generation import DEFAULT_CHUNK_SIZE
from tokchat.session import DEFAULT_SYSTEM_PROMPT


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _cmd_chat(args):
    """Run interactive chat."""
    try:
        from tokchat.inference import main

        main(args)
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _cmd_pull(args):
    """Pull a model snapshot from HuggingFace."""
    try:
        from tokchat.model_store import pull_model

        pull_model(
            args.model_id,
            revision=args.revision,
            token=args.token,
            force=args.force,
        )
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokchat",
        description="tokchat: interactive chat over a local language model",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # --- chat ---
    p_chat = sub.add_parser("chat", help="Interactive chat with a model")
    p_chat.add_argument("model", help="Path to model directory or HuggingFace model ID")
    p_chat.add_argument("--backend", default="transformers", choices=sorted(BACKENDS), help="Model backend")
    p_chat.add_argument("--threads", type=int, default=8, help="Number of threads (0 = backend default)")
    p_chat.add_argument("--ctx", type=int, default=4096, help="Context size in tokens")
    p_chat.add_argument("--seed", type=int, default=0, help="Random seed (0 = random)")
    # Sampling flags default to None so generation_config.json values survive
    p_chat.add_argument("--max-tokens", type=int, default=None, help="Max new tokens per reply (default 512)")
    p_chat.add_argument("--temp", type=float, default=None, help="Temperature, 0 = greedy (default 0.7)")
    p_chat.add_argument("--top-k", type=int, default=None, help="Top-k, 0 = disabled (default 40)")
    p_chat.add_argument("--top-p", type=float, default=None, help="Top-p, 1 = disabled (default 0.95)")
    p_chat.add_argument("--repeat-penalty", type=float, default=None, help="Repetition penalty, 1 = disabled (default 1.1)")
    p_chat.add_argument("--freq-penalty", type=float, default=None, help="Frequency penalty (default 0)")
    p_chat.add_argument("--presence-penalty", type=float, default=None, help="Presence penalty (default 0)")
    p_chat.add_argument("--window", type=int, default=DEFAULT_WINDOW_CAPACITY, help="Recent-token window for penalties")
    p_chat.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, help="Prompt evaluation chunk size")
    p_chat.add_argument("--template", default="auto", choices=TEMPLATES, help="Prompt template")
    p_chat.add_argument("--system", default=DEFAULT_SYSTEM_PROMPT, help="System prompt ('' for none)")
    p_chat.add_argument("--trust-remote-code", action="store_true", help="Allow loading custom tokenizer code from model directory")
    p_chat.set_defaults(func=_cmd_chat)

    # --- pull ---
    p_pull = sub.add_parser("pull", help="Download a model from HuggingFace")
    p_pull.add_argument("model_id", help="HuggingFace model ID (e.g. TinyLlama/TinyLlama-1.1B-Chat-v1.0)")
    p_pull.add_argument("--revision", help="Branch, tag, or commit hash")
    p_pull.add_argument("--token", help="HuggingFace token for gated/private repos")
    p_pull.add_argument("--force", "-f", action="store_true", help="Re-download even if exists")
    p_pull.set_defaults(func=_cmd_pull)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
