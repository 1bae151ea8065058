# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""
Incremental detokenization for streamed replies.

Decoding one token at a time loses the leading space that sentencepiece-style
tokenizers fold into the next piece, so each token is decoded as a pair with
its predecessor and only the new suffix is emitted.
"""


class IncrementalDecoder:
    """Decodes token IDs one at a time, preserving inter-token spacing."""

    def __init__(self, backend):
        self.backend = backend
        self.prev_token = None

    def decode(self, token_id: int) -> str:
        """Decode a single token ID to its text fragment."""
        if self.prev_token is None:
            text = self.backend.detokenize([token_id])
        else:
            pair = self.backend.detokenize([self.prev_token, token_id])
            prev_alone = self.backend.detokenize([self.prev_token])
            if pair.startswith(prev_alone):
                text = pair[len(prev_alone) :]
            else:
                text = self.backend.detokenize([token_id])
        self.prev_token = token_id
        return text

    def reset(self):
        """Reset state for a new generation sequence."""
        self.prev_token = None
