"""Multi-head scaled dot-product attention, with causal and cross variants."""

from __future__ import annotations

import math

import numpy as np

from attnblocks.forward import DTYPE, Dropout, Linear, VarStore, softmax


def get_causal_mask(size: int) -> np.ndarray:
    """A (size, size) mask holding 1 where a position would look ahead (j > i)."""
    idx = np.arange(size)
    return (idx[None, :] > idx[:, None]).astype(np.uint32)


def masked_fill(on_false: np.ndarray, mask: np.ndarray, on_true: float) -> np.ndarray:
    """Replace entries of ``on_false`` by ``on_true`` wherever ``mask`` is non-zero."""
    on_false = np.asarray(on_false)
    mask = np.asarray(mask)
    return np.where(mask != 0, np.asarray(on_true, dtype=on_false.dtype), on_false)


def _dims3(xs: np.ndarray) -> tuple[int, int, int]:
    if xs.ndim != 3:
        raise ValueError(f"expected a 3-dimensional tensor, got shape {xs.shape}")
    return xs.shape


class MultiHeadAttention:
    """Multi-head attention with separate query, key, value and output projections."""

    def __init__(
        self,
        in_dim: int,
        out_dim: int,
        context_length: int,
        drop_p: float,
        num_heads: int,
        vb: VarStore,
        qkv_bias: bool,
    ) -> None:
        if out_dim % num_heads != 0:
            raise ValueError("out_dim must be divisible by num_heads")
        self.out_dim = out_dim
        self.num_heads = num_heads
        self.head_dim = out_dim // num_heads
        self.context_length = context_length
        self.w_query = Linear(in_dim, out_dim, vb.pp("w_query"), bias=qkv_bias)
        self.w_key = Linear(in_dim, out_dim, vb.pp("w_key"), bias=qkv_bias)
        self.w_value = Linear(in_dim, out_dim, vb.pp("w_value"), bias=qkv_bias)
        self.out_proj = Linear(out_dim, out_dim, vb.pp("out_proj"), bias=qkv_bias)
        self.dropout = Dropout(drop_p, vb.rng)

    def _split_heads(self, xs: np.ndarray, batch: int, tokens: int) -> np.ndarray:
        # (b, tokens, out_dim) -> (b, heads, tokens, head_dim)
        return xs.reshape(batch, tokens, self.num_heads, self.head_dim).transpose(0, 2, 1, 3)

    def _merge_heads(self, xs: np.ndarray, batch: int, tokens: int) -> np.ndarray:
        return xs.transpose(0, 2, 1, 3).reshape(batch, tokens, self.out_dim)

    def forward(self, xs: np.ndarray, train: bool) -> np.ndarray:
        """Causal self-attention over ``xs`` of shape (batch, tokens, out_dim)."""
        xs = np.asarray(xs, dtype=DTYPE)
        b, num_tokens, d_in = _dims3(xs)
        if d_in != self.out_dim:
            raise ValueError(f"input dimension {d_in} does not match out_dim {self.out_dim}")

        queries = self._split_heads(self.w_query.forward(xs), b, num_tokens)
        keys = self._split_heads(self.w_key.forward(xs), b, num_tokens)
        values = self._split_heads(self.w_value.forward(xs), b, num_tokens)

        attn_scores = queries @ keys.swapaxes(-2, -1)
        mask = np.broadcast_to(get_causal_mask(num_tokens), attn_scores.shape)
        masked = masked_fill(attn_scores, mask, -np.inf)

        scaling_factor = 1.0 / math.sqrt(self.head_dim)
        attn_weights = softmax(masked * scaling_factor, -1)
        attn_weights = self.dropout.forward(attn_weights, train)

        context = self._merge_heads(attn_weights @ values, b, num_tokens)
        return self.out_proj.forward(context)

    def forward_cross(self, xs: np.ndarray, kv_xs: np.ndarray, train: bool) -> np.ndarray:
        """Cross-attention: queries from ``xs``, keys and values from ``kv_xs``."""
        xs = np.asarray(xs, dtype=DTYPE)
        kv_xs = np.asarray(kv_xs, dtype=DTYPE)
        b, num_tokens_q, _ = _dims3(xs)
        b_kv, num_tokens_kv, _ = _dims3(kv_xs)
        if b != b_kv:
            raise ValueError(f"batch size mismatch: {b} queries vs {b_kv} keys/values")

        queries = self._split_heads(self.w_query.forward(xs), b, num_tokens_q)
        keys = self._split_heads(self.w_key.forward(kv_xs), b, num_tokens_kv)
        values = self._split_heads(self.w_value.forward(kv_xs), b, num_tokens_kv)

        scaling_factor = 1.0 / math.sqrt(self.head_dim)
        attn_scores = (queries @ keys.swapaxes(-2, -1)) * scaling_factor
        attn_weights = softmax(attn_scores, -1)
        attn_weights = self.dropout.forward(attn_weights, train)

        context = self._merge_heads(attn_weights @ values, b, num_tokens_q)
        return self.out_proj.forward(context)