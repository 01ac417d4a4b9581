"""Exit-code contract for the Riffsmith CLI."""
from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Standardised CLI exit codes.

    0 — success
    1 — user error (bad arguments, nothing to recall)
    2 — the generation turn failed (network, HTTP, stream, extraction)
    3 — internal error
    4 — code was applied and saved but the engine rejected it
    """

    SUCCESS = 0
    USER_ERROR = 1
    GENERATION_FAILED = 2
    INTERNAL_ERROR = 3
    ENGINE_ERROR = 4
