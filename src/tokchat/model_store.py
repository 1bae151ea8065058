# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""Local model store under ``~/.tokchat/models``.

A chat model is addressed either by a directory path or by a HuggingFace
repository id (``org/name``). Ids are looked up in the store; ``tokchat pull``
fills it.
"""

import logging
import re
from pathlib import Path

from huggingface_hub import snapshot_download
from huggingface_hub.errors import GatedRepoError, RepositoryNotFoundError, RevisionNotFoundError

logger = logging.getLogger(__name__)

MODELS_DIR = Path.home() / ".tokchat" / "models"

_REPO_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")

# A causal LM directory the transformers backend can load needs the model
# config plus at least one of the tokenizer files.
REQUIRED_FILES = ("config.json",)
TOKENIZER_FILES = ("tokenizer.json", "tokenizer.model", "tokenizer_config.json")


def is_repo_id(arg: str) -> bool:
    if arg.startswith(("/", ".", "~")):
        return False
    return bool(_REPO_ID_RE.match(arg))


def store_path(repo_id: str) -> Path:
    return MODELS_DIR / repo_id


def missing_model_files(model_dir: Path) -> list[str]:
    """Names of files a chat model directory lacks (empty when it is usable)."""
    missing = [name for name in REQUIRED_FILES if not (model_dir / name).is_file()]
    if not any((model_dir / name).is_file() for name in TOKENIZER_FILES):
        missing.append(" or ".join(TOKENIZER_FILES))
    return missing


def resolve_model_dir(arg: str) -> str:
    """Turn the ``chat`` model argument into a directory path.

    Existing directories (after ``~`` expansion) win. A repository id must
    already be in the store. Anything else is passed through so the backend
    can report the missing path.
    """
    path = Path(arg).expanduser()
    if path.is_dir():
        return str(path)

    if is_repo_id(arg):
        local = store_path(arg)
        if local.is_dir():
            logger.debug("Resolved %s to %s", arg, local)
            return str(local)
        raise RuntimeError(f"Model '{arg}' not found locally. Run: tokchat pull {arg}")

    return arg


def pull_model(
    repo_id: str,
    revision: str | None = None,
    token: str | None = None,
    force: bool = False,
) -> Path:
    """Download *repo_id* into the store and check it holds a chat model.

    An existing copy is kept unless *force* is set. Hub errors are turned into
    ``RuntimeError`` with a message fit for the command line.
    """
    if not is_repo_id(repo_id):
        raise RuntimeError(f"'{repo_id}' is not a HuggingFace repository id (expected org/name)")

    local = store_path(repo_id)
    if local.is_dir() and not force:
        print(f"Model '{repo_id}' is already at {local} (use --force to download again)")
        return local

    local.parent.mkdir(parents=True, exist_ok=True)
    print(f"Pulling {repo_id} ...")
    try:
        snapshot_download(repo_id, local_dir=str(local), revision=revision, token=token)
    except GatedRepoError as e:
        # Subclass of RepositoryNotFoundError, so it goes first
        raise RuntimeError(f"'{repo_id}' is a gated repository. Pass --token or run: hf auth login") from e
    except RepositoryNotFoundError as e:
        raise RuntimeError(f"Repository '{repo_id}' not found on HuggingFace") from e
    except RevisionNotFoundError as e:
        raise RuntimeError(f"Revision '{revision}' not found in '{repo_id}'") from e

    missing = missing_model_files(local)
    if missing:
        raise RuntimeError(
            f"'{repo_id}' does not look like a chat model; missing: {', '.join(missing)}"
        )

    print(f"Downloaded to {local}")
    return local
