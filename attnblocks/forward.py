"""Parameter storage and the basic layers the transformer blocks are built from."""

from __future__ import annotations

import copy
import math
from collections.abc import Callable
from functools import reduce

import numpy as np

DTYPE = np.float32

Init = Callable[[np.random.Generator, tuple[int, ...]], np.ndarray]


def _kaiming_normal(fan_in: int) -> Init:
    std = math.sqrt(2.0) / math.sqrt(fan_in)
    return lambda rng, shape: rng.normal(0.0, std, size=shape)


def _uniform(bound: float) -> Init:
    return lambda rng, shape: rng.uniform(-bound, bound, size=shape)


def _const(value: float) -> Init:
    return lambda rng, shape: np.full(shape, value)


class VarStore:
    """A named store of trainable arrays, addressed through dotted prefixes.

    Views made with :meth:`pp` share the same storage and random generator.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._values: dict[str, np.ndarray] = {}
        self._prefix = ""
        self.rng = np.random.default_rng(seed)

    def _full(self, name: str) -> str:
        return f"{self._prefix}.{name}" if self._prefix else name

    def pp(self, name: str) -> VarStore:
        """Return a view of the store with ``name`` appended to the prefix."""
        child = copy.copy(self)
        child._prefix = self._full(name)
        return child

    def get(self, name: str, shape, init: Init) -> np.ndarray:
        """Return the array called ``name``, creating it with ``init`` if missing."""
        shape = tuple(int(dim) for dim in shape)
        full = self._full(name)
        existing = self._values.get(full)
        if existing is not None:
            if existing.shape != shape:
                raise ValueError(
                    f"shape mismatch for {full}: stored {existing.shape}, requested {shape}"
                )
            return existing
        value = np.asarray(init(self.rng, shape), dtype=DTYPE)
        if value.shape != shape:
            raise ValueError(
                f"initializer for {full} produced shape {value.shape}, expected {shape}"
            )
        self._values[full] = value
        return value

    def names(self) -> list[str]:
        """Full names of the arrays under this view's prefix, sorted."""
        if not self._prefix:
            return sorted(self._values)
        head = self._prefix + "."
        return sorted(name for name in self._values if name.startswith(head))


class Linear:
    """Affine map ``xs @ weight.T + bias`` with weight of shape (out_dim, in_dim)."""

    def __init__(self, in_dim: int, out_dim: int, vb: VarStore, bias: bool = True) -> None:
        self.in_dim = in_dim
        self.out_dim = out_dim
        self.weight = vb.get("weight", (out_dim, in_dim), _kaiming_normal(in_dim))
        self.bias = (
            vb.get("bias", (out_dim,), _uniform(1.0 / math.sqrt(in_dim))) if bias else None
        )

    def forward(self, xs: np.ndarray) -> np.ndarray:
        xs = np.asarray(xs, dtype=DTYPE)
        if xs.shape[-1] != self.in_dim:
            raise ValueError(f"expected last dimension {self.in_dim}, got {xs.shape[-1]}")
        out = xs @ self.weight.T
        if self.bias is not None:
            out = out + self.bias
        return out.astype(DTYPE)

    __call__ = forward


class LayerNorm:
    """Normalisation over the last dimension with a learned scale and shift."""

    def __init__(self, size: int, vb: VarStore, eps: float = 1e-5) -> None:
        self.eps = eps
        self.weight = vb.get("weight", (size,), _const(1.0))
        self.bias = vb.get("bias", (size,), _const(0.0))

    def forward(self, xs: np.ndarray) -> np.ndarray:
        xs = np.asarray(xs, dtype=DTYPE)
        mean = xs.mean(axis=-1, keepdims=True)
        centred = xs - mean
        var = (centred * centred).mean(axis=-1, keepdims=True)
        normed = centred / np.sqrt(var + self.eps)
        return (normed * self.weight + self.bias).astype(DTYPE)

    __call__ = forward


class Dropout:
    """Zeroes elements with probability ``p`` while training and rescales the rest."""

    def __init__(self, p: float, rng: np.random.Generator | None = None) -> None:
        if not 0.0 <= p < 1.0:
            raise ValueError(f"dropout probability has to be in [0, 1), got {p}")
        self.p = p
        self.rng = rng if rng is not None else np.random.default_rng()

    def forward(self, xs: np.ndarray, train: bool) -> np.ndarray:
        xs = np.asarray(xs, dtype=DTYPE)
        if not train or self.p == 0.0:
            return xs
        keep = self.rng.random(xs.shape) >= self.p
        return (xs * keep / (1.0 - self.p)).astype(DTYPE)


_erf = np.vectorize(math.erf, otypes=[np.float64])


def gelu(xs: np.ndarray) -> np.ndarray:
    """Exact GELU, ``x * Phi(x)`` using the error function."""
    xs = np.asarray(xs, dtype=DTYPE)
    return (0.5 * xs * (1.0 + _erf(xs / math.sqrt(2.0)))).astype(DTYPE)


def softmax(xs: np.ndarray, axis: int) -> np.ndarray:
    """Numerically stable softmax along ``axis``."""
    xs = np.asarray(xs, dtype=DTYPE)
    shifted = xs - xs.max(axis=axis, keepdims=True)
    exp = np.exp(shifted)
    return (exp / exp.sum(axis=axis, keepdims=True)).astype(DTYPE)


class FeedForward:
    """Position-wise feed-forward network: Linear(d, 4d), GELU, Linear(4d, d)."""

    def __init__(self, in_dim: int, drop_p: float, vb: VarStore) -> None:
        self.drop_p = drop_p
        self.layers: list[Callable[[np.ndarray], np.ndarray]] = [
            Linear(in_dim, 4 * in_dim, vb.pp("first_layer")),
            gelu,
            Linear(4 * in_dim, in_dim, vb.pp("second_layer")),
        ]

    def forward(self, xs: np.ndarray) -> np.ndarray:
        return reduce(lambda acc, layer: layer(acc), self.layers, np.asarray(xs, dtype=DTYPE))