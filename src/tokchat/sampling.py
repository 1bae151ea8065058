# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""
Next-token selection from a logits vector.

The pipeline is penalties -> temperature/top-k/top-p candidate selection ->
a cumulative draw from the candidate list. A temperature of zero bypasses the
distribution entirely and picks the arg-max, so greedy decoding never touches
the random source.
"""

import logging
from collections import Counter
from collections.abc import Sequence

import numpy as np

from ._models import GenerationParams

logger = logging.getLogger(__name__)

Candidates = list[tuple[int, float]]


def make_rng(seed: int | None = None) -> np.random.Generator:
    """Return the per-session random source. Seed 0 or None draws from OS entropy."""
    return np.random.default_rng(seed or None)


def apply_penalties(
    logits: Sequence[float] | np.ndarray,
    recent_tokens: Sequence[int] | np.ndarray,
    repeat_penalty: float = 1.0,
    frequency_penalty: float = 0.0,
    presence_penalty: float = 0.0,
) -> np.ndarray:
    """Return a penalized copy of *logits*; the input is never modified.

    Every token id seen in *recent_tokens* gets the repetition penalty
    (divide positive logits, multiply non-positive ones, so both move down),
    then ``frequency_penalty * count`` and a flat ``presence_penalty``.
    Ids outside the vocabulary are ignored.
    """
    adjusted = np.array(logits, dtype=np.float64)
    if len(recent_tokens) == 0:
        return adjusted

    counts = Counter(int(t) for t in recent_tokens)
    vocab_size = adjusted.shape[0]
    ids = np.array([t for t in counts if 0 <= t < vocab_size], dtype=np.int64)
    if ids.size == 0:
        return adjusted
    occurrences = np.array([counts[t] for t in ids.tolist()], dtype=np.float64)

    values = adjusted[ids]
    if repeat_penalty != 1.0:
        values = np.where(values > 0, values / repeat_penalty, values * repeat_penalty)
    values = values - frequency_penalty * occurrences - presence_penalty
    adjusted[ids] = values
    return adjusted


def greedy_argmax(logits: Sequence[float] | np.ndarray) -> int:
    """Index of the largest logit; ties go to the lowest index."""
    return int(np.argmax(np.asarray(logits)))


def select_candidates(
    logits: Sequence[float] | np.ndarray,
    temperature: float,
    top_k: int = 0,
    top_p: float = 1.0,
) -> Candidates:
    """Build the renormalized candidate list, ordered by descending probability.

    With ``temperature <= 0``, or when the retained mass is not positive, the
    result is the single arg-max token with probability 1.0.

    The nucleus cut is taken on the cumulative probability *normalized over the
    retained (post top-k) set*: the shortest prefix whose share of that mass
    reaches ``top_p`` is kept, and at least one candidate always survives.
    """
    logits = np.asarray(logits, dtype=np.float64)
    if temperature <= 0:
        return [(greedy_argmax(logits), 1.0)]

    with np.errstate(invalid="ignore", over="ignore"):
        weights = np.exp((logits - logits.max()) / temperature)

    vocab_size = weights.shape[0]
    if 0 < top_k < vocab_size:
        indices = np.argpartition(-weights, top_k - 1)[:top_k]
    else:
        indices = np.arange(vocab_size)

    indices = indices[np.argsort(-weights[indices], kind="stable")]
    kept = weights[indices]

    if top_p < 1.0:
        mass = kept.sum()
        if mass > 0:
            cumulative = np.cumsum(kept) / mass
            cutoff = int(np.searchsorted(cumulative, top_p, side="left")) + 1
            cutoff = min(cutoff, kept.shape[0])
            indices = indices[:cutoff]
            kept = kept[:cutoff]

    total = kept.sum()
    if not np.isfinite(total) or total <= 0:
        token = greedy_argmax(logits)
        logger.warning("Degenerate candidate distribution; falling back to arg-max token %d", token)
        return [(token, 1.0)]

    probs = kept / total
    return list(zip(indices.tolist(), probs.tolist()))


def draw(candidates: Candidates, rng: np.random.Generator) -> int:
    """Pick a token by walking the cumulative mass of *candidates* in order."""
    if not candidates:
        raise ValueError("cannot draw from an empty candidate list")
    r = rng.random()
    acc = 0.0
    for token, prob in candidates:
        acc += prob
        if r <= acc:
            return token
    # Rounding left the walk short of r
    return candidates[-1][0]


def sample_next_token(
    logits: Sequence[float] | np.ndarray,
    recent_tokens: Sequence[int] | np.ndarray,
    params: GenerationParams,
    rng: np.random.Generator,
) -> int:
    """Apply penalties, build candidates and draw the next token."""
    adjusted = apply_penalties(
        logits,
        recent_tokens,
        repeat_penalty=params.repeat_penalty,
        frequency_penalty=params.frequency_penalty,
        presence_penalty=params.presence_penalty,
    )
    if params.temperature <= 0:
        return greedy_argmax(adjusted)

    candidates = select_candidates(adjusted, params.temperature, params.top_k, params.top_p)
    return draw(candidates, rng)
