"""Reproducible uniform random number streams with substreams.

A ``RandomStream`` wraps a numpy ``Generator`` seeded through a
``SeedSequence``.  Substream ``k`` is the child sequence with spawn key
``(k,)``, so every substream is reproducible on its own and streams created
from the same seed replay exactly.
"""

from __future__ import annotations

import numpy as np

__all__ = ["RandomStream"]

# uniforms are (k + 0.5) / 2**52, which keeps them strictly inside (0, 1)
# and makes the antithetic value 1 - u exact
_RESOLUTION = 2**52


class RandomStream:
    """Stream of U(0, 1) variates with antithetic and substream control.

    Parameters
    ----------
    seed : int | None, optional
        Entropy for the root ``SeedSequence``.  ``None`` draws fresh entropy
        from the operating system.
    antithetic : bool, optional
        Start with the antithetic option switched on.
    """

    def __init__(self, seed: int | None = None, *, antithetic: bool = False) -> None:
        self._root = np.random.SeedSequence(seed)
        self._substream = 0
        self.antithetic = antithetic
        self._generator = self._make_generator()

    def _make_generator(self) -> np.random.Generator:
        seq = np.random.SeedSequence(
            self._root.entropy, spawn_key=(*self._root.spawn_key, self._substream)
        )
        return np.random.default_rng(seq)

    @property
    def seed(self) -> int:
        return int(self._root.entropy)

    @property
    def substream(self) -> int:
        return self._substream

    def rand_u01(self, size: int | tuple[int, ...] | None = None) -> float | np.ndarray:
        """Draw uniforms strictly inside (0, 1); ``1 - u`` when antithetic is on."""
        k = self._generator.integers(0, _RESOLUTION, size=size)
        u = (k + 0.5) / _RESOLUTION
        if self.antithetic:
            u = 1.0 - u
        if size is None:
            return float(u)
        return u

    def reset_start_stream(self) -> None:
        """Rewind to the beginning of substream 0."""
        self._substream = 0
        self._generator = self._make_generator()

    def reset_start_substream(self) -> None:
        """Rewind to the beginning of the current substream."""
        self._generator = self._make_generator()

    def advance_to_next_substream(self) -> None:
        self._substream += 1
        self._generator = self._make_generator()
