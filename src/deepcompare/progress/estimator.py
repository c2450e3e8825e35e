"""Synthetic progress shown while a worker has no server progress yet."""

import math

from ..core.constants import (
    SYNTHETIC_CAP,
    SYNTHETIC_DELAY_BASE_S,
    SYNTHETIC_DELAY_STEP_S,
    SYNTHETIC_RATE_BASE,
    SYNTHETIC_RATE_STEP,
)


def synthetic_progress(elapsed_s: float, index: int) -> int:
    """Estimated percentage for the worker at ``index`` after ``elapsed_s``.

    Each position gets its own onset delay and growth rate so workers started
    together drift apart. Non-decreasing in ``elapsed_s`` and never above
    SYNTHETIC_CAP.
    """
    delay = SYNTHETIC_DELAY_BASE_S + SYNTHETIC_DELAY_STEP_S * index
    rate = SYNTHETIC_RATE_BASE + SYNTHETIC_RATE_STEP * index
    if elapsed_s <= delay:
        return 0
    return min(SYNTHETIC_CAP, math.floor((elapsed_s - delay) * rate))
