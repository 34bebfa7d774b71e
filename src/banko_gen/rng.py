from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from typing import List, Sequence, TypeVar

try:  # optional dependency
    import numpy as _np  # type: ignore
except ImportError:  # pragma: no cover - optional
    _np = None

T = TypeVar("T")


@dataclass
class RandomSource:
    engine: str
    seed: int

    def randint(self, a: int, b: int) -> int:
        raise NotImplementedError

    def shuffle(self, arr: List[T]) -> None:
        raise NotImplementedError

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        raise NotImplementedError

    def spawn(self, index: int, purpose: str) -> "RandomSource":
        """Child source with independent state, stable for (seed, index, purpose)."""
        return create_rng(self.engine, derive_parallel_seed(self.seed, index, purpose))


class PyRandomSource(RandomSource):
    def __init__(self, seed: int):
        super().__init__(engine="py_random", seed=seed)
        self._rng = random.Random(seed)

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def shuffle(self, arr: List[T]) -> None:
        self._rng.shuffle(arr)

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        return self._rng.sample(list(seq), k)


class NumpyPCG64Source(RandomSource):  # pragma: no cover - covered when numpy present
    def __init__(self, seed: int):
        if _np is None:
            raise RuntimeError("numpy is not installed; install banko-gen[pcg]")
        super().__init__(engine="numpy_pcg64", seed=seed)
        self._rng = _np.random.Generator(_np.random.PCG64(seed))

    def randint(self, a: int, b: int) -> int:
        return int(self._rng.integers(low=a, high=b + 1))

    def shuffle(self, arr: List[T]) -> None:
        # Shuffle an index permutation so arbitrary element types stay untouched.
        order = self._rng.permutation(len(arr))
        arr[:] = [arr[int(i)] for i in order]

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        items = list(seq)
        idxs = self._rng.choice(len(items), size=k, replace=False)
        return [items[int(i)] for i in idxs]


def create_rng(engine: str, seed: int) -> RandomSource:
    engine = (engine or "py_random").strip().lower()
    if engine == "py_random":
        return PyRandomSource(seed)
    if engine == "numpy_pcg64":
        return NumpyPCG64Source(seed)
    raise ValueError(f"Unsupported RNG engine: {engine}")


def derive_parallel_seed(base_seed: int, index: int, purpose: str) -> int:
    """Derive per-task seed from base seed, index, and purpose using sha256.

    Returns a 63-bit positive integer suitable for seeding common RNGs.
    """
    s = f"{base_seed}|{index}|{purpose}".encode("utf-8")
    digest = hashlib.sha256(s).digest()
    return int.from_bytes(digest[:8], byteorder="big") & ((1 << 63) - 1)
