# Copyright (c) 2026 Tokchat. Licensed under the MIT License. See LICENSE.
"""tokchat: sampling engine and generation loop for interactive chat"""

import os as _os
_os.environ.setdefault("TRANSFORMERS_NO_ADVISORY_WARNINGS", "1")

__all__ = ["ChatSession", "GenerationLoop", "GenerationParams", "RecentTokenWindow", "sample_next_token"]


def __getattr__(name: str):
    if name == "ChatSession":
        from .session import ChatSession

        return ChatSession
    if name == "GenerationLoop":
        from .generation import GenerationLoop

        return GenerationLoop
    if name == "GenerationParams":
        from ._models import GenerationParams

        return GenerationParams
    if name == "RecentTokenWindow":
        from .context_window import RecentTokenWindow

        return RecentTokenWindow
    if name == "sample_next_token":
        from .sampling import sample_next_token

        return sample_next_token
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
