"""Flight status codes and the random picker oracles answer with."""

from __future__ import annotations

from typing import Optional

import numpy as np

STATUS_CODE_UNKNOWN = 0
STATUS_CODE_ON_TIME = 10
STATUS_CODE_LATE_AIRLINE = 20
STATUS_CODE_LATE_WEATHER = 30
STATUS_CODE_LATE_TECHNICAL = 40
STATUS_CODE_LATE_OTHER = 50

STATUS_CODES: tuple[int, ...] = (
    STATUS_CODE_UNKNOWN,
    STATUS_CODE_ON_TIME,
    STATUS_CODE_LATE_AIRLINE,
    STATUS_CODE_LATE_WEATHER,
    STATUS_CODE_LATE_TECHNICAL,
    STATUS_CODE_LATE_OTHER,
)

STATUS_NAMES: dict[int, str] = {
    STATUS_CODE_UNKNOWN: "UNKNOWN",
    STATUS_CODE_ON_TIME: "ON_TIME",
    STATUS_CODE_LATE_AIRLINE: "LATE_AIRLINE",
    STATUS_CODE_LATE_WEATHER: "LATE_WEATHER",
    STATUS_CODE_LATE_TECHNICAL: "LATE_TECHNICAL",
    STATUS_CODE_LATE_OTHER: "LATE_OTHER",
}


class StatusPicker:
    """Uniform random choice over ``STATUS_CODES``.

    Pass a *seed* (or a ready ``numpy.random.Generator``) for reproducible
    sequences.  Not thread-safe: responders pick on the event loop thread.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        codes: tuple[int, ...] = STATUS_CODES,
    ):
        if not codes:
            raise ValueError("codes must be non-empty")
        self.codes = tuple(codes)
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    def pick(self) -> int:
        return self.codes[int(self._rng.integers(0, len(self.codes)))]

    def __call__(self) -> int:
        return self.pick()


class FixedSequencePicker:
    """Replays a fixed list of codes, cycling when exhausted."""

    def __init__(self, codes: list[int]):
        if not codes:
            raise ValueError("codes must be non-empty")
        unknown = [c for c in codes if c not in STATUS_NAMES]
        if unknown:
            raise ValueError(f"Unknown status codes: {unknown}")
        self._codes = list(codes)
        self._pos = 0

    def pick(self) -> int:
        code = self._codes[self._pos % len(self._codes)]
        self._pos += 1
        return code

    def __call__(self) -> int:
        return self.pick()
